"""Tests for the OpenTelemetry metrics provider."""

from rank_sync.adapters.observability import (
    MetricsProvider,
    get_metrics_provider,
    initialize_metrics,
    shutdown_metrics,
)


def test_disabled_by_default(test_config):
    provider = MetricsProvider(test_config)
    provider.initialize()

    assert not provider.enabled
    # No-ops when disabled
    provider.record_riot_api_call("account", 200, 0.1)
    provider.record_sync_run("COMPLETED", 1.0)
    provider.record_account_outcome("synced", "SNAPSHOTTED")
    provider.record_snapshot_written()
    provider.shutdown()


def test_enabled_without_exporter_records_nothing(test_config):
    test_config.otel_enabled = True
    test_config.otel_exporter_type = "none"
    provider = MetricsProvider(test_config)
    provider.initialize()

    assert not provider.enabled


def test_console_exporter(test_config):
    test_config.otel_enabled = True
    test_config.otel_exporter_type = "console"
    test_config.otel_export_interval_millis = 3600000
    provider = MetricsProvider(test_config)
    provider.initialize()

    try:
        assert provider.enabled
        provider.record_riot_api_call("league", 429, 0.2, error_type="429")
        provider.record_sync_run("COLLISION")
        provider.record_account_outcome("failed", "ABORTED")
        provider.record_snapshot_written()
    finally:
        provider.shutdown()

    assert not provider.enabled


def test_global_provider_lifecycle(test_config, caplog):
    assert get_metrics_provider() is None

    provider = initialize_metrics(test_config)
    assert get_metrics_provider() is provider
    assert initialize_metrics(test_config) is provider
    assert "already initialized" in caplog.text

    shutdown_metrics()
    assert get_metrics_provider() is None
