"""Sensor delegation for fan-out pattern.

SensorDelegate routes sensor events to multiple monitoring backends at once.
Each backend receives the same events and keeps its own state. A failing
backend is logged and never interrupts reconciliation.
"""

from typing import Set, Dict, Optional, Any
import logging

from sympozium.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    Example:
        delegate = SensorDelegate()
        delegate.add(PrometheusMonitor())

        state = delegate.on_reconcile_start("my-instance", "default", "timer")
        delegate.on_reconcile_complete("my-instance", "default", state, True)
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def remove(self, sensor: OperatorSensor) -> None:
        logger.info(f"Removing sensor: {sensor.__class__.__name__}")
        self._sensors.discard(sensor)

    def _each(self, hook: str, *args) -> Dict[OperatorSensor, Any]:
        """Call `hook` on every sensor, collecting non-None return values."""
        results = {}
        for sensor in self._sensors:
            try:
                result = getattr(sensor, hook)(*args)
                if result is not None:
                    results[sensor] = result
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )
        return results

    def _each_with_state(
        self, hook: str, state: Optional[Dict[OperatorSensor, Any]], *args, **kwargs
    ) -> None:
        """Call a complete hook, handing each sensor the state its start hook returned."""
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                getattr(sensor, hook)(*args, sensor_state, **kwargs)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self, instance_name: str, namespace: str, trigger_source: str
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._each("on_reconcile_start", instance_name, namespace, trigger_source) or None

    def on_reconcile_complete(
        self,
        instance_name: str,
        namespace: str,
        state: Optional[Dict[OperatorSensor, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        self._each_with_state(
            "on_reconcile_complete",
            state,
            instance_name,
            namespace,
            success=success,
            error=error,
        )

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self, instance_name: str, resource_name: str, namespace: str, resource_type: str
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return (
            self._each(
                "on_resource_sync_start",
                instance_name,
                resource_name,
                namespace,
                resource_type,
            )
            or None
        )

    def on_resource_sync_complete(
        self,
        instance_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[OperatorSensor, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        self._each_with_state(
            "on_resource_sync_complete",
            state,
            instance_name,
            resource_name,
            namespace,
            resource_type,
            operation=operation,
            success=success,
            error=error,
        )

    # =============================================================================
    # Instance Bookkeeping Hooks
    # =============================================================================

    def on_finalizer_transition(
        self, instance_name: str, namespace: str, transition: str
    ) -> None:
        self._each("on_finalizer_transition", instance_name, namespace, transition)

    def on_status_update(
        self, instance_name: str, namespace: str, phase: str, active_runs: int
    ) -> None:
        self._each("on_status_update", instance_name, namespace, phase, active_runs)

    def on_tolerated_failure(
        self, instance_name: str, namespace: str, operation: str, error: Exception
    ) -> None:
        self._each("on_tolerated_failure", instance_name, namespace, operation, error)

    def asdict(self) -> Dict[str, Any]:
        return {
            "type": self.__class__.__name__,
            "sensors": [sensor.asdict() for sensor in self._sensors],
        }
