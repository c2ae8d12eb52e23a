"""Prometheus monitoring backend for the Sympozium operator.

PrometheusMonitor collects operator lifecycle events and exposes them as
Prometheus metrics:

1. Reconciliation loop health - duration, throughput, errors
2. Child resource operations - create/delete counts and latency
3. Instance bookkeeping - finalizer transitions, phase, active runs, tolerated failures
"""

from typing import Dict, Optional, Any
import time
import logging

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, Gauge

from sympozium.sensors.base import OperatorSensor
from sympozium.utils.errors import error_type

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the Sympozium operator.

    Metrics are registered with `registry`, the process wide default registry
    unless another is given.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            "sympozium_reconcile_duration_seconds",
            "Time spent in one reconcile pass",
            labelnames=["instance", "namespace", "trigger_source", "result"],
            buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            "sympozium_reconcile_total",
            "Total number of reconcile passes",
            labelnames=["instance", "namespace", "trigger_source", "result"],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            "sympozium_reconcile_errors_total",
            "Total number of reconcile passes returning an error",
            labelnames=["instance", "namespace", "error_type"],
            registry=registry,
        )

        # =============================================================================
        # Child Resource Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            "sympozium_resource_sync_duration_seconds",
            "Time spent creating or deleting child resources",
            labelnames=["instance", "namespace", "resource_type", "operation", "result"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
            registry=registry,
        )

        self.resource_sync_total = Counter(
            "sympozium_resource_sync_total",
            "Total number of child resource operations",
            labelnames=["instance", "namespace", "resource_type", "operation", "result"],
            registry=registry,
        )

        # =============================================================================
        # Instance Bookkeeping Metrics
        # =============================================================================

        self.finalizer_transitions = Counter(
            "sympozium_finalizer_transitions_total",
            "Total number of finalizer additions and removals",
            labelnames=["instance", "namespace", "transition"],
            registry=registry,
        )

        self.active_runs = Gauge(
            "sympozium_instance_active_runs",
            "Agent runs in phase Running at the last status patch",
            labelnames=["instance", "namespace"],
            registry=registry,
        )

        self.status_updates = Counter(
            "sympozium_status_updates_total",
            "Total number of status patches sent, by phase",
            labelnames=["instance", "namespace", "phase"],
            registry=registry,
        )

        self.tolerated_failures = Counter(
            "sympozium_tolerated_failures_total",
            "Failures that were logged without failing the reconcile pass",
            labelnames=["instance", "namespace", "operation"],
            registry=registry,
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self, instance_name: str, namespace: str, trigger_source: str
    ) -> Optional[Dict[str, Any]]:
        """Record reconciliation start time."""
        return {"start_time": time.time(), "trigger_source": trigger_source}

    def on_reconcile_complete(
        self,
        instance_name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record reconciliation duration and result."""
        if state:
            result = "success" if success else "failure"
            labels = dict(
                instance=instance_name,
                namespace=namespace,
                trigger_source=state["trigger_source"],
                result=result,
            )
            self.reconcile_duration.labels(**labels).observe(
                time.time() - state["start_time"]
            )
            self.reconcile_total.labels(**labels).inc()

        if error:
            self.reconcile_errors.labels(
                instance=instance_name,
                namespace=namespace,
                error_type=error_type(error),
            ).inc()

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self, instance_name: str, resource_name: str, namespace: str, resource_type: str
    ) -> Optional[Dict[str, Any]]:
        return {"start_time": time.time()}

    def on_resource_sync_complete(
        self,
        instance_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        labels = dict(
            instance=instance_name,
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            result="success" if success else "failure",
        )
        if state:
            self.resource_sync_duration.labels(**labels).observe(
                time.time() - state["start_time"]
            )
        self.resource_sync_total.labels(**labels).inc()

    # =============================================================================
    # Instance Bookkeeping Hooks
    # =============================================================================

    def on_finalizer_transition(
        self, instance_name: str, namespace: str, transition: str
    ) -> None:
        self.finalizer_transitions.labels(
            instance=instance_name, namespace=namespace, transition=transition
        ).inc()
        if transition == "Removed":
            # The instance is about to disappear, stop exporting its gauge.
            try:
                self.active_runs.remove(instance_name, namespace)
            except KeyError:
                pass

    def on_status_update(
        self, instance_name: str, namespace: str, phase: str, active_runs: int
    ) -> None:
        self.status_updates.labels(
            instance=instance_name, namespace=namespace, phase=phase
        ).inc()
        self.active_runs.labels(instance=instance_name, namespace=namespace).set(
            active_runs
        )

    def on_tolerated_failure(
        self, instance_name: str, namespace: str, operation: str, error: Exception
    ) -> None:
        self.tolerated_failures.labels(
            instance=instance_name, namespace=namespace, operation=operation
        ).inc()
