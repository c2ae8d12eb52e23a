import logging
from sympozium.types.settings import Settings
from sympozium.types.models import InstanceResources
from sympozium.common.models.labels import Labels
from sympozium.utils.errors import InvariantViolation, error_type
from sympozium.resources.base import BaseResource
from sympozium.resources.instance import SympoziumInstance
from sympozium.resources.memory import MemoryStore
from sympozium.resources.store import ResourceStore
from sympozium.controllers.result import ReconcileResult
from sympozium.sensors import OperatorSensor

logger = logging.getLogger(__name__)


class FinalizerState:
    NO_FINALIZER = "NoFinalizer"
    FINALIZER_PRESENT = "FinalizerPresent"
    CLEANING = "Cleaning"
    REMOVED = "Removed"


class FinalizerStateMachine(BaseResource):
    """Guards an instance against removal until its children are torn down.

    NoFinalizer -> FinalizerPresent happens on the first pass of a live
    instance. Once deletion is requested the instance is Cleaning until every
    channel workload is confirmed gone, only then the marker is removed.
    """

    store: ResourceStore
    conf: Settings
    sensor: OperatorSensor

    def __init__(
        self,
        store: ResourceStore,
        conf: Settings,
        sensor: OperatorSensor = None,
        logger: logging.Logger = logger,
    ):
        super().__init__()
        self.store = store
        self.conf = conf
        self.sensor = sensor or OperatorSensor()
        self.logger = logger

    @staticmethod
    def state(instance: SympoziumInstance) -> str:
        if not instance.has_finalizer:
            return (
                FinalizerState.REMOVED
                if instance.being_deleted
                else FinalizerState.NO_FINALIZER
            )
        if instance.being_deleted:
            return FinalizerState.CLEANING
        return FinalizerState.FINALIZER_PRESENT

    async def ensure(self, instance: SympoziumInstance) -> bool:
        """Add the finalizer marker if missing. Returns True when it was added."""
        if self.state(instance) != FinalizerState.NO_FINALIZER:
            return False
        await instance.add_finalizer()
        self.logger.info(f"Added finalizer to `{instance.name}`")
        self.sensor.on_finalizer_transition(
            instance.name, instance.namespace, FinalizerState.FINALIZER_PRESENT
        )
        return True

    async def finalize(self, instance: SympoziumInstance) -> ReconcileResult:
        """Tear down the children of a deleted instance and release it.

        The marker is only removed after every channel workload was deleted;
        a failure there ends the pass and the teardown is retried as a whole.
        """
        if self.state(instance) != FinalizerState.CLEANING:
            # Cleanup already completed, or never guarded by this operator.
            return ReconcileResult()

        try:
            await self.delete_channel_workloads(instance)
        except InvariantViolation:
            raise
        except Exception as ex:
            self.logger.warning(
                f"Failed to delete channel workloads of `{instance.name}`: {ex}"
            )
            return ReconcileResult(self.conf.error_requeue_seconds, ex)

        await self.delete_credential_stores(instance)
        await self.delete_memory_store(instance)

        try:
            await instance.remove_finalizer()
        except Exception as ex:
            self.logger.warning(
                f"Failed to remove finalizer of `{instance.name}` "
                f"({error_type(ex)}): {ex}"
            )
            return ReconcileResult(self.conf.error_requeue_seconds, ex)

        self.logger.info(f"Removed finalizer from `{instance.name}`")
        self.sensor.on_finalizer_transition(
            instance.name, instance.namespace, FinalizerState.REMOVED
        )
        return ReconcileResult()

    def channel_selector(self, instance: SympoziumInstance):
        return Labels.instance_selector(
            instance.name, Labels.CHANNEL_COMPONENT
        ).as_dict()

    async def delete_channel_workloads(self, instance: SympoziumInstance) -> int:
        """Delete every channel workload labelled with the instance. Returns the number deleted."""
        deployments = await self.list_deployments(
            self.store.apps_v1_api,
            instance.namespace,
            self.channel_selector(instance),
        )
        for deployment in deployments:
            name = deployment.metadata.name
            await self.instrumented(
                self.sensor,
                instance.name,
                instance.namespace,
                name,
                "deployment",
                "delete",
                self.delete_deployment(self.store.apps_v1_api, name, instance.namespace),
            )
            self.logger.info(f"Deleted channel workload `{name}`")
        return len(deployments)

    async def delete_credential_stores(self, instance: SympoziumInstance) -> None:
        """Delete credential stores labelled with the instance, logging failures."""
        try:
            claims = await self.list_persistent_volume_claims(
                self.store.core_v1_api,
                instance.namespace,
                self.channel_selector(instance),
            )
            for claim in claims:
                name = claim.metadata.name
                await self.instrumented(
                    self.sensor,
                    instance.name,
                    instance.namespace,
                    name,
                    "credential_store",
                    "delete",
                    self.delete_persistent_volume_claim(
                        self.store.core_v1_api, name, instance.namespace
                    ),
                )
        except Exception as ex:
            self.logger.warning(
                f"Failed to delete credential stores of `{instance.name}`: {ex}"
            )
            self.sensor.on_tolerated_failure(
                instance.name, instance.namespace, "delete_credential_store", ex
            )

    async def delete_memory_store(self, instance: SympoziumInstance) -> None:
        """Delete the memory store, logging failures."""
        try:
            await MemoryStore(instance, self.sensor).delete(self.store.core_v1_api)
        except Exception as ex:
            self.logger.warning(
                f"Failed to delete memory store "
                f"`{InstanceResources.memory_store_name(instance.name)}`: {ex}"
            )
            self.sensor.on_tolerated_failure(
                instance.name, instance.namespace, "delete_memory_store", ex
            )
