from sympozium.utils.objects import cached_property
from sympozium.types.models import InstanceResources
from sympozium.common.models.labels import Labels
from sympozium.resources.base import BaseResource
from sympozium.resources.instance import SympoziumInstance
from sympozium.sensors import OperatorSensor
from kubernetes_asyncio.client import CoreV1Api, V1ConfigMap, V1ObjectMeta


class MemoryStore(BaseResource):
    """Persistent memory of an instance, kept in a ConfigMap.

    The operator only seeds the store. Agents append to it afterwards, so an
    existing store is never overwritten.
    """

    MEMORY_KEY = "MEMORY.md"
    SEED_CONTENT = "# Agent Memory\n\nNo memories recorded yet.\n"

    instance: SympoziumInstance
    sensor: OperatorSensor
    name: str

    def __init__(self, instance: SympoziumInstance, sensor: OperatorSensor = None):
        labels = Labels.generate_memory_labels(
            instance.name, self.SYMPOZIUM_OPERATOR_NAME
        )
        super().__init__(namespace=instance.namespace, labels=labels)
        self.instance = instance
        self.sensor = sensor or OperatorSensor()
        self.name = InstanceResources.memory_store_name(instance.name)

    @cached_property
    def config_map(self) -> V1ConfigMap:
        return self.prepare_config_map()

    def prepare_config_map(self) -> V1ConfigMap:
        return V1ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=V1ObjectMeta(
                name=self.name,
                namespace=self.namespace,
                labels=self.labels.as_dict(),
                owner_references=self.prepare_owner_references(self.instance.owner()),
            ),
            data={self.MEMORY_KEY: self.SEED_CONTENT},
        )

    async def create(self, core_v1_api: CoreV1Api) -> bool:
        """Create the store with its seed content if it does not exist yet.

        Returns True when a store was created.
        """
        existing = await self.fetch_config_map(core_v1_api, self.name, self.namespace)
        if existing is not None:
            return False
        return await self.instrumented(
            self.sensor,
            self.instance.name,
            self.namespace,
            self.name,
            "memory_store",
            "create",
            self.create_config_map(core_v1_api, self.namespace, self.config_map),
        )

    async def delete(self, core_v1_api: CoreV1Api) -> None:
        await self.instrumented(
            self.sensor,
            self.instance.name,
            self.namespace,
            self.name,
            "memory_store",
            "delete",
            self.delete_config_map(core_v1_api, self.name, self.namespace),
        )
