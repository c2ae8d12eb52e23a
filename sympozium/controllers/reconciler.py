import logging
from typing import List, Optional
from marshmallow import ValidationError
from sympozium.types.settings import Settings
from sympozium.types.models import ChannelStatus, InstancePhase, InstanceStatus
from sympozium.utils.errors import (
    ChannelConvergenceError,
    InvariantViolation,
    error_type,
)
from sympozium.resources.instance import SympoziumInstance
from sympozium.resources.memory import MemoryStore
from sympozium.resources.store import ResourceStore
from sympozium.controllers.channels import ChannelPlanner
from sympozium.controllers.finalizer import FinalizerState, FinalizerStateMachine
from sympozium.controllers.status import StatusAggregator
from sympozium.controllers.result import ReconcileResult
from sympozium.sensors import OperatorSensor

logger = logging.getLogger(__name__)


class InstanceReconciler:
    """Converges one SympoziumInstance towards its spec per call.

    Every decision is taken from state read during the call, nothing is
    remembered between calls. Failures are returned in the result together
    with the delay before the next attempt; only programming faults raise.
    """

    store: ResourceStore
    conf: Settings
    sensor: OperatorSensor

    def __init__(
        self,
        store: ResourceStore,
        conf: Settings = None,
        sensor: OperatorSensor = None,
        logger: logging.Logger = logger,
    ):
        if store is None:
            raise InvariantViolation("InstanceReconciler requires a resource store.")
        self.store = store
        self.conf = conf or Settings()
        self.sensor = sensor or OperatorSensor()
        self.logger = logger
        self.planner = ChannelPlanner(store, self.conf, self.sensor, logger)
        self.finalizer = FinalizerStateMachine(store, self.conf, self.sensor, logger)
        self.aggregator = StatusAggregator(store)

    async def reconcile(
        self, namespace: str, name: str, trigger_source: str = "event"
    ) -> ReconcileResult:
        """Run one reconcile pass of the instance `namespace/name`."""
        sensor_state = self.sensor.on_reconcile_start(name, namespace, trigger_source)
        result = ReconcileResult()
        try:
            result = await self._reconcile(namespace, name)
        except InvariantViolation as ex:
            result = ReconcileResult(None, ex)
            raise
        except Exception as ex:
            # Unclassified API failures are worth another attempt.
            self.logger.warning(
                f"Reconcile of `{namespace}/{name}` failed ({error_type(ex)}): {ex}"
            )
            result = ReconcileResult(self.conf.error_requeue_seconds, ex)
        finally:
            self.sensor.on_reconcile_complete(
                name, namespace, sensor_state, result.succeeded, result.error
            )
        return result

    async def _reconcile(self, namespace: str, name: str) -> ReconcileResult:
        instance = await SympoziumInstance.fetch(self.store, namespace, name)
        if instance is None:
            self.logger.debug(f"SympoziumInstance `{namespace}/{name}` is gone")
            return ReconcileResult()

        if self.finalizer.state(instance) in (
            FinalizerState.CLEANING,
            FinalizerState.REMOVED,
        ):
            return await self.finalizer.finalize(instance)

        if await self.finalizer.ensure(instance):
            instance = await instance.refresh()
            if instance is None:
                return ReconcileResult()

        try:
            channels = await self.planner.plan(instance)
        except (ChannelConvergenceError, ValidationError) as ex:
            # Patched against the body read before convergence started.
            return await self.fail(instance, ex)

        await self.converge_memory(instance)

        active_runs = await self.aggregator.count_active_runs(instance)

        await self.write_status(instance, channels, active_runs)
        return ReconcileResult(self.conf.resync_interval_seconds)

    async def fail(self, instance: SympoziumInstance, error: Exception) -> ReconcileResult:
        """Report a failed channel convergence in the instance phase."""
        self.logger.warning(f"Instance `{instance.name}` failed to converge: {error}")
        try:
            patched = await instance.patch_status(phase=InstancePhase.ERROR)
        except Exception as ex:
            self.logger.warning(
                f"Failed to set phase {InstancePhase.ERROR} on `{instance.name}`: {ex}"
            )
        else:
            if patched is not None:
                self.sensor.on_status_update(
                    instance.name,
                    instance.namespace,
                    InstancePhase.ERROR,
                    int(instance.status.get("activeRuns") or 0),
                )
        return ReconcileResult(self.conf.error_requeue_seconds, error)

    async def converge_memory(self, instance: SympoziumInstance) -> None:
        """Create the memory store of the instance if enabled. Failures are only logged."""
        if not instance.memory_enabled:
            return
        try:
            if await MemoryStore(instance, self.sensor).create(self.store.core_v1_api):
                self.logger.info(f"Created memory store of `{instance.name}`")
        except InvariantViolation:
            raise
        except Exception as ex:
            self.logger.warning(
                f"Failed to converge memory store of `{instance.name}`: {ex}"
            )
            self.sensor.on_tolerated_failure(
                instance.name, instance.namespace, "create_memory_store", ex
            )

    async def write_status(
        self,
        instance: SympoziumInstance,
        channels: List[ChannelStatus],
        active_runs: int,
    ) -> Optional[dict]:
        status = InstanceStatus(
            phase=InstancePhase.RUNNING, channels=channels, active_runs=active_runs
        )
        patched = await instance.write_status(status)
        if patched is not None:
            self.sensor.on_status_update(
                instance.name, instance.namespace, status.phase, active_runs
            )
        return patched
