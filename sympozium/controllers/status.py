from benedict import benedict
from sympozium.common.models.labels import Labels
from sympozium.resources.base import BaseResource
from sympozium.resources.instance import SympoziumInstance
from sympozium.resources.store import ResourceStore

AGENT_RUN_GROUP = "sympozium.ai"
AGENT_RUN_VERSION = "v1alpha1"
AGENT_RUN_PLURAL = "agentruns"
AGENT_RUN_RUNNING = "Running"


class StatusAggregator(BaseResource):
    """Derives observed figures of an instance from the runs labelled with it.

    Nothing is carried over between passes; every count is a fresh query.
    """

    store: ResourceStore

    def __init__(self, store: ResourceStore):
        super().__init__()
        self.store = store

    async def count_active_runs(self, instance: SympoziumInstance) -> int:
        """Number of agent runs of `instance` currently in phase Running."""
        runs = await self.list_custom_objects(
            self.store.custom_objects_api,
            namespace=instance.namespace,
            group=AGENT_RUN_GROUP,
            version=AGENT_RUN_VERSION,
            plural=AGENT_RUN_PLURAL,
            labels=Labels.instance_selector(instance.name).as_dict(),
        )
        return sum(1 for run in runs if self.run_phase(run) == AGENT_RUN_RUNNING)

    @staticmethod
    def run_phase(run) -> str:
        # status keys may contain dots, no keypath lookups
        status = benedict(run.get("status") or {}, keypath_separator=None)
        return status.get("phase")
