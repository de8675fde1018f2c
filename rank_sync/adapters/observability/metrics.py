"""OpenTelemetry metrics for rank sync.

Metrics are off unless OTEL_ENABLED is set. When off, every ``record_*``
call returns immediately, so callers never need to check.
"""

import logging
from typing import Dict, Optional

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import SERVICE_NAME, Resource

from ...config import Config
from .constants import (
    LABEL_ENDPOINT_TYPE,
    LABEL_ERROR_TYPE,
    LABEL_FINAL_STATE,
    LABEL_OUTCOME,
    LABEL_RUN_STATUS,
    LABEL_STATUS_CODE,
    RANK_SNAPSHOTS_WRITTEN,
    RIOT_API_CALL_DURATION,
    RIOT_API_CALLS_TOTAL,
    RIOT_API_RATE_LIMITS,
    SYNC_ACCOUNTS_TOTAL,
    SYNC_RUN_DURATION,
    SYNC_RUNS_TOTAL,
)

logger = logging.getLogger(__name__)

# name -> (kind, unit, description)
INSTRUMENTS = {
    RIOT_API_CALLS_TOTAL: ("counter", "1", "Riot API calls by endpoint and status"),
    RIOT_API_CALL_DURATION: ("histogram", "s", "Riot API call latency"),
    RIOT_API_RATE_LIMITS: ("counter", "1", "429 responses from the Riot API"),
    SYNC_RUNS_TOTAL: ("counter", "1", "Sync runs by final status"),
    SYNC_RUN_DURATION: ("histogram", "s", "Wall time of sync runs"),
    SYNC_ACCOUNTS_TOTAL: ("counter", "1", "Per-account sync outcomes"),
    RANK_SNAPSHOTS_WRITTEN: ("counter", "1", "Rank snapshots appended to history"),
}


class MetricsProvider:
    """Owns the meter provider and the instruments of the rank sync service."""

    def __init__(self, config: Config):
        self.config = config
        self._meter_provider: Optional[MeterProvider] = None
        self._instruments: Dict[str, object] = {}
        self._initialized = False

    @property
    def enabled(self) -> bool:
        return bool(self._instruments)

    def _build_exporter(self) -> Optional[MetricExporter]:
        exporter_type = self.config.otel_exporter_type
        if exporter_type == "console":
            return ConsoleMetricExporter()
        if exporter_type == "otlp":
            return OTLPMetricExporter(endpoint=self.config.otel_otlp_endpoint, insecure=True)
        return None

    def initialize(self) -> None:
        """Set up the meter provider and instruments if metrics are enabled."""
        if self._initialized:
            logger.warning("Metrics provider already initialized")
            return
        self._initialized = True

        if not self.config.otel_enabled:
            logger.info("OpenTelemetry metrics disabled")
            return

        exporter = self._build_exporter()
        if exporter is None:
            logger.info("OpenTelemetry metrics enabled without an exporter; nothing is recorded")
            return

        reader = PeriodicExportingMetricReader(
            exporter=exporter,
            export_interval_millis=self.config.otel_export_interval_millis,
            export_timeout_millis=self.config.otel_export_timeout_millis,
        )
        resource = Resource.create({
            SERVICE_NAME: self.config.otel_service_name,
            "environment": self.config.environment.value,
        })

        try:
            self._meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
            metrics.set_meter_provider(self._meter_provider)
            meter = metrics.get_meter(__name__)
        except Exception as e:
            logger.error(f"Failed to initialize metrics provider: {e}")
            self._initialized = False
            raise

        for name, (kind, unit, description) in INSTRUMENTS.items():
            create = meter.create_counter if kind == "counter" else meter.create_histogram
            self._instruments[name] = create(name=name, unit=unit, description=description)

        logger.info(
            f"OpenTelemetry metrics enabled ({self.config.otel_exporter_type} exporter, "
            f"every {self.config.otel_export_interval_millis} ms)"
        )

    def shutdown(self) -> None:
        """Flush pending metrics and stop the exporter."""
        self._instruments.clear()
        if self._meter_provider is None:
            return
        try:
            self._meter_provider.shutdown()
            logger.info("Metrics provider shut down")
        except Exception as e:
            logger.error(f"Error shutting down metrics provider: {e}")
        self._meter_provider = None

    def _add(self, name: str, labels: Optional[Dict[str, str]] = None) -> None:
        instrument = self._instruments.get(name)
        if instrument is not None:
            instrument.add(1, labels or {})

    def _record(self, name: str, value: float, labels: Dict[str, str]) -> None:
        instrument = self._instruments.get(name)
        if instrument is not None:
            instrument.record(value, labels)

    def record_riot_api_call(
        self,
        endpoint_type: str,
        status_code: int,
        duration: float,
        error_type: Optional[str] = None,
    ) -> None:
        """Count one Riot API call and its latency; 0 means no response."""
        if not self.enabled:
            return

        labels = {LABEL_ENDPOINT_TYPE: endpoint_type, LABEL_STATUS_CODE: str(status_code)}
        if error_type:
            labels[LABEL_ERROR_TYPE] = error_type

        self._add(RIOT_API_CALLS_TOTAL, labels)
        self._record(RIOT_API_CALL_DURATION, duration, labels)
        if status_code == 429:
            self._add(RIOT_API_RATE_LIMITS, {LABEL_ENDPOINT_TYPE: endpoint_type})

    def record_sync_run(self, run_status: str, duration: Optional[float] = None) -> None:
        if not self.enabled:
            return

        labels = {LABEL_RUN_STATUS: run_status}
        self._add(SYNC_RUNS_TOTAL, labels)
        if duration is not None:
            self._record(SYNC_RUN_DURATION, duration, labels)

    def record_account_outcome(self, outcome: str, final_state: str) -> None:
        if self.enabled:
            self._add(SYNC_ACCOUNTS_TOTAL, {LABEL_OUTCOME: outcome, LABEL_FINAL_STATE: final_state})

    def record_snapshot_written(self) -> None:
        if self.enabled:
            self._add(RANK_SNAPSHOTS_WRITTEN)


# Global metrics provider instance
_metrics_provider: Optional[MetricsProvider] = None


def get_metrics_provider() -> Optional[MetricsProvider]:
    """Get the global metrics provider instance."""
    return _metrics_provider


def initialize_metrics(config: Config) -> MetricsProvider:
    """Create and initialize the global metrics provider (once)."""
    global _metrics_provider

    if _metrics_provider is not None:
        logger.warning("Metrics provider already initialized")
        return _metrics_provider

    _metrics_provider = MetricsProvider(config)
    _metrics_provider.initialize()
    return _metrics_provider


def shutdown_metrics() -> None:
    """Shut down and drop the global metrics provider."""
    global _metrics_provider

    if _metrics_provider is not None:
        _metrics_provider.shutdown()
        _metrics_provider = None
