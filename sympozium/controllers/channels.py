import logging
from typing import List
from sympozium.types.settings import Settings
from sympozium.types.models import ChannelStatus
from sympozium.utils.errors import ChannelConvergenceError, InvariantViolation
from sympozium.resources.channel import ChannelResource
from sympozium.resources.instance import SympoziumInstance
from sympozium.resources.store import ResourceStore
from sympozium.sensors import OperatorSensor

logger = logging.getLogger(__name__)


class ChannelPlanner:
    """Ensures the child resources of every channel declared by an instance.

    Channels are converged in declaration order and the first failing channel
    aborts the pass; the statuses of channels converged before it are dropped.
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
        self.store = store
        self.conf = conf
        self.sensor = sensor or OperatorSensor()
        self.logger = logger

    def resource(self, instance: SympoziumInstance, channel) -> ChannelResource:
        return ChannelResource(instance, channel, self.conf, self.sensor)

    async def plan(self, instance: SympoziumInstance) -> List[ChannelStatus]:
        """Converge all channels, returning their statuses in spec order.

        Raises:
            ChannelConvergenceError: for the first channel that failed.
        """
        statuses = []
        for channel in instance.spec.channels or []:
            try:
                resource = self.resource(instance, channel)
                status = await resource.synchronize(
                    self.store.apps_v1_api, self.store.core_v1_api
                )
            except InvariantViolation:
                raise
            except Exception as ex:
                raise ChannelConvergenceError(channel.type, ex) from ex
            self.logger.debug(
                f"Channel `{channel.type}` of `{instance.name}` is {status.status}"
            )
            statuses.append(status)
        return statuses
