"""Constants for OpenTelemetry metrics."""

# Metric name prefixes
METRIC_PREFIX = "rank_sync"

# Riot API metrics
RIOT_API_CALLS_TOTAL = f"{METRIC_PREFIX}.riot_api.calls_total"
RIOT_API_CALL_DURATION = f"{METRIC_PREFIX}.riot_api.call_duration"
RIOT_API_RATE_LIMITS = f"{METRIC_PREFIX}.riot_api.rate_limits_total"

# Sync run metrics
SYNC_RUNS_TOTAL = f"{METRIC_PREFIX}.sync.runs_total"
SYNC_RUN_DURATION = f"{METRIC_PREFIX}.sync.run_duration"
SYNC_ACCOUNTS_TOTAL = f"{METRIC_PREFIX}.sync.accounts_total"
RANK_SNAPSHOTS_WRITTEN = f"{METRIC_PREFIX}.sync.snapshots_written_total"

# Common label keys
LABEL_ENDPOINT_TYPE = "endpoint_type"
LABEL_STATUS_CODE = "status_code"
LABEL_ERROR_TYPE = "error_type"
LABEL_RUN_STATUS = "run_status"
LABEL_OUTCOME = "outcome"
LABEL_FINAL_STATE = "final_state"
