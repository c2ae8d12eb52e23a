"""Unit tests for sensors and the Prometheus monitor."""

import pytest
from prometheus_client import CollectorRegistry
from sympozium.sensors import OperatorSensor, SensorDelegate, PrometheusMonitor
from conftest import api_error, NAMESPACE


class FailingSensor(OperatorSensor):
    def on_reconcile_start(self, instance_name, namespace, trigger_source):
        raise RuntimeError("sensor down")

    def on_status_update(self, instance_name, namespace, phase, active_runs):
        raise RuntimeError("sensor down")


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def monitor(registry):
    return PrometheusMonitor(registry=registry)


def sample(registry, name, **labels):
    return registry.get_sample_value(name, labels)


class TestPrometheusMonitor:
    def test_reconcile_metrics(self, monitor, registry):
        state = monitor.on_reconcile_start("my-agent", NAMESPACE, "timer")
        monitor.on_reconcile_complete("my-agent", NAMESPACE, state, True)
        assert (
            sample(
                registry,
                "sympozium_reconcile_total",
                instance="my-agent",
                namespace=NAMESPACE,
                trigger_source="timer",
                result="success",
            )
            == 1.0
        )

    def test_reconcile_errors_by_type(self, monitor, registry):
        state = monitor.on_reconcile_start("my-agent", NAMESPACE, "event")
        monitor.on_reconcile_complete(
            "my-agent", NAMESPACE, state, False, api_error(409, "Conflict")
        )
        assert (
            sample(
                registry,
                "sympozium_reconcile_errors_total",
                instance="my-agent",
                namespace=NAMESPACE,
                error_type="conflict",
            )
            == 1.0
        )

    def test_resource_sync(self, monitor, registry):
        state = monitor.on_resource_sync_start(
            "my-agent", "my-agent-channel-slack", NAMESPACE, "deployment"
        )
        monitor.on_resource_sync_complete(
            "my-agent",
            "my-agent-channel-slack",
            NAMESPACE,
            "deployment",
            state,
            "create",
            True,
        )
        assert (
            sample(
                registry,
                "sympozium_resource_sync_total",
                instance="my-agent",
                namespace=NAMESPACE,
                resource_type="deployment",
                operation="create",
                result="success",
            )
            == 1.0
        )

    def test_active_runs_gauge_removed_with_finalizer(self, monitor, registry):
        monitor.on_status_update("my-agent", NAMESPACE, "Running", 3)
        labels = dict(instance="my-agent", namespace=NAMESPACE)
        assert sample(registry, "sympozium_instance_active_runs", **labels) == 3.0

        monitor.on_finalizer_transition("my-agent", NAMESPACE, "Removed")
        assert sample(registry, "sympozium_instance_active_runs", **labels) is None
        # Removing twice is harmless
        monitor.on_finalizer_transition("my-agent", NAMESPACE, "Removed")

    def test_tolerated_failures(self, monitor, registry):
        monitor.on_tolerated_failure(
            "my-agent", NAMESPACE, "delete_memory_store", api_error(500)
        )
        assert (
            sample(
                registry,
                "sympozium_tolerated_failures_total",
                instance="my-agent",
                namespace=NAMESPACE,
                operation="delete_memory_store",
            )
            == 1.0
        )


class TestSensorDelegate:
    def test_fans_out_and_hands_back_state(self, monitor, registry):
        delegate = SensorDelegate()
        delegate.add(monitor)
        state = delegate.on_reconcile_start("my-agent", NAMESPACE, "delete")
        assert monitor in state
        delegate.on_reconcile_complete("my-agent", NAMESPACE, state, True)
        assert (
            sample(
                registry,
                "sympozium_reconcile_duration_seconds_count",
                instance="my-agent",
                namespace=NAMESPACE,
                trigger_source="delete",
                result="success",
            )
            == 1.0
        )

    def test_failing_sensor_does_not_interrupt(self, monitor, registry):
        delegate = SensorDelegate()
        delegate.add(FailingSensor())
        delegate.add(monitor)
        delegate.on_status_update("my-agent", NAMESPACE, "Running", 1)
        assert delegate.on_reconcile_start("my-agent", NAMESPACE, "event") is not None
        assert (
            sample(
                registry,
                "sympozium_instance_active_runs",
                instance="my-agent",
                namespace=NAMESPACE,
            )
            == 1.0
        )

    def test_asdict(self, monitor):
        delegate = SensorDelegate()
        delegate.add(monitor)
        assert delegate.asdict() == {
            "type": "SensorDelegate",
            "sensors": [{"type": "PrometheusMonitor"}],
        }

    def test_remove(self, monitor):
        delegate = SensorDelegate()
        delegate.add(monitor)
        delegate.remove(monitor)
        assert delegate.on_reconcile_start("my-agent", NAMESPACE, "event") is None
