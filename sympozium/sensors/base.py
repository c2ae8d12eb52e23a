"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring reconciliation of SympoziumInstances. All hooks are no-ops by
default, allowing subclasses to override only the events they care about.

Hooks come in pairs where an operation has a duration:
- Start hooks return an optional state dict
- Complete hooks receive the state dict from their corresponding start hook
"""

from typing import Dict, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for Sympozium operator monitoring.

    This class defines lifecycle hooks for three categories:
    1. Reconciliation lifecycle (one reconcile pass of an instance)
    2. Child resource operations (create/delete of workloads, volumes, config maps)
    3. Instance bookkeeping (finalizer transitions, status writes, tolerated failures)

    Example:
        class LoggingSensor(OperatorSensor):
            def on_reconcile_start(self, instance_name, namespace, trigger_source):
                return {'start_time': time.time()}

            def on_reconcile_complete(self, instance_name, namespace, state, success, error=None):
                duration = time.time() - state['start_time']
                logger.info(f"Reconciled {instance_name} in {duration}s")
    """

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        instance_name: str,
        namespace: str,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Called when a reconcile pass begins.

        Args:
            instance_name: SympoziumInstance name
            namespace: Kubernetes namespace
            trigger_source: What triggered reconciliation (event, timer, delete, ...)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        instance_name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a reconcile pass completes.

        Args:
            instance_name: SympoziumInstance name
            namespace: Kubernetes namespace
            state: State dict returned from on_reconcile_start
            success: Whether the pass converged
            error: Error returned to the driver, if any
        """
        pass

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        instance_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        """Called before a child resource is created or deleted."""
        pass

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
        """Called after a child resource was created or deleted.

        Args:
            operation: "create" or "delete"
        """
        pass

    # =============================================================================
    # Instance Bookkeeping Hooks
    # =============================================================================

    def on_finalizer_transition(
        self, instance_name: str, namespace: str, transition: str
    ) -> None:
        """Called when the finalizer marker is added or removed."""
        pass

    def on_status_update(
        self, instance_name: str, namespace: str, phase: str, active_runs: int
    ) -> None:
        """Called after a status patch was sent for the instance."""
        pass

    def on_tolerated_failure(
        self, instance_name: str, namespace: str, operation: str, error: Exception
    ) -> None:
        """Called when a non-blocking operation failed and was only logged."""
        pass

    def asdict(self) -> Dict[str, Any]:
        """Return sensor state as dictionary (for debugging/introspection)."""
        return {"type": self.__class__.__name__}
