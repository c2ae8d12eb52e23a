from typing import List, Optional
from sympozium.utils.objects import cached_property
from sympozium.types.settings import Settings
from sympozium.types.models import (
    ChannelSpec,
    ChannelStatus,
    ChannelConnectivity,
    InstanceResources,
)
from sympozium.common.models.labels import Labels
from sympozium.resources.base import BaseResource
from sympozium.resources.instance import SympoziumInstance
from sympozium.sensors import OperatorSensor
from kubernetes_asyncio.client import (
    AppsV1Api,
    CoreV1Api,
    V1ObjectMeta,
    V1Deployment,
    V1DeploymentSpec,
    V1DeploymentStrategy,
    V1LabelSelector,
    V1PodTemplateSpec,
    V1PodSpec,
    V1Container,
    V1EnvVar,
    V1EnvFromSource,
    V1SecretEnvSource,
    V1Volume,
    V1VolumeMount,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimSpec,
    V1PersistentVolumeClaimVolumeSource,
    V1VolumeResourceRequirements,
)


class ChannelResource(BaseResource):
    """Child resources of one channel of a SympoziumInstance.

    The workload is created once and only observed afterwards. Channel types
    that keep a session on disk get a credential store, created before the
    workload that mounts it.
    """

    CONTAINER_NAME = "channel"
    DEFAULT_REPLICAS = 1
    CREDENTIAL_STORE_ACCESS_MODE = "ReadWriteOnce"

    #: Channel types whose adapter keeps durable session state (e.g. a linked device).
    CREDENTIAL_CHANNEL_TYPES = frozenset({"whatsapp"})

    conf: Settings
    sensor: OperatorSensor
    instance: SympoziumInstance
    channel: ChannelSpec
    workload_name: str
    credential_store_name: str

    def __init__(
        self,
        instance: SympoziumInstance,
        channel: ChannelSpec,
        conf: Settings,
        sensor: OperatorSensor = None,
    ):
        labels = Labels.generate_channel_labels(
            instance.name, channel.type, self.SYMPOZIUM_OPERATOR_NAME
        )
        super().__init__(namespace=instance.namespace, labels=labels)
        self.instance = instance
        self.channel = channel
        self.conf = conf
        self.sensor = sensor or OperatorSensor()
        self.workload_name = InstanceResources.channel_workload_name(
            instance.name, channel.type
        )
        self.credential_store_name = InstanceResources.credential_store_name(
            instance.name, channel.type
        )

    @property
    def channel_type(self) -> str:
        return self.channel.type

    @property
    def requires_credential_store(self) -> bool:
        return self.channel_type in self.CREDENTIAL_CHANNEL_TYPES

    @property
    def config_secret(self) -> Optional[str]:
        config_ref = self.channel.config_ref
        return (config_ref.secret or None) if config_ref else None

    @cached_property
    def credential_store(self) -> V1PersistentVolumeClaim:
        return self.prepare_credential_store()

    @cached_property
    def deployment(self) -> V1Deployment:
        return self.prepare_deployment()

    def prepare_credential_store(self) -> V1PersistentVolumeClaim:
        """Build the volume claim holding the channel's session credentials."""
        return V1PersistentVolumeClaim(
            api_version="v1",
            kind="PersistentVolumeClaim",
            metadata=V1ObjectMeta(
                name=self.credential_store_name,
                namespace=self.namespace,
                labels=self.labels.as_dict(),
                owner_references=self.prepare_owner_references(self.instance.owner()),
            ),
            spec=V1PersistentVolumeClaimSpec(
                access_modes=[self.CREDENTIAL_STORE_ACCESS_MODE],
                resources=V1VolumeResourceRequirements(
                    requests={"storage": self.conf.credential_store_size}
                ),
                storage_class_name=self.conf.credential_store_storage_class,
            ),
        )

    def prepare_env_vars(self) -> List[V1EnvVar]:
        return [
            V1EnvVar(name="INSTANCE_NAME", value=self.instance.name),
            V1EnvVar(name="EVENT_BUS_URL", value=self.conf.event_bus_url),
        ]

    def prepare_env_from(self) -> Optional[List[V1EnvFromSource]]:
        """All keys of the referenced config secret become environment variables."""
        if not self.config_secret:
            return None
        return [V1EnvFromSource(secret_ref=V1SecretEnvSource(name=self.config_secret))]

    def prepare_volumes(self) -> Optional[List[V1Volume]]:
        if not self.requires_credential_store:
            return None
        return [
            V1Volume(
                name=InstanceResources.credential_volume_name(self.channel_type),
                persistent_volume_claim=V1PersistentVolumeClaimVolumeSource(
                    claim_name=self.credential_store_name
                ),
            )
        ]

    def prepare_volume_mounts(self) -> Optional[List[V1VolumeMount]]:
        if not self.requires_credential_store:
            return None
        return [
            V1VolumeMount(
                name=InstanceResources.credential_volume_name(self.channel_type),
                mount_path=self.conf.credential_store_mount_path,
            )
        ]

    def prepare_strategy(self) -> Optional[V1DeploymentStrategy]:
        """Replace pods only after the old one is gone.

        Two adapter processes sharing one session credential would corrupt it.
        """
        if not self.requires_credential_store:
            return None
        return V1DeploymentStrategy(type="Recreate")

    def prepare_container(self) -> V1Container:
        return V1Container(
            name=self.CONTAINER_NAME,
            image=self.conf.channel_image(self.channel_type),
            image_pull_policy="IfNotPresent",
            env=self.prepare_env_vars(),
            env_from=self.prepare_env_from(),
            volume_mounts=self.prepare_volume_mounts(),
        )

    def prepare_deployment(self) -> V1Deployment:
        """Build the single replica workload running the channel adapter."""
        selector_labels = self.labels.selector_labels().as_dict()
        return V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=V1ObjectMeta(
                name=self.workload_name,
                namespace=self.namespace,
                labels=self.labels.as_dict(),
                owner_references=self.prepare_owner_references(self.instance.owner()),
            ),
            spec=V1DeploymentSpec(
                replicas=self.DEFAULT_REPLICAS,
                selector=V1LabelSelector(match_labels=selector_labels),
                strategy=self.prepare_strategy(),
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(labels=selector_labels),
                    spec=V1PodSpec(
                        containers=[self.prepare_container()],
                        volumes=self.prepare_volumes(),
                    ),
                ),
            ),
        )

    def observe(self, deployment: V1Deployment) -> ChannelStatus:
        """Connectivity of an existing workload from its ready replica count."""
        ready = (deployment.status.ready_replicas or 0) if deployment.status else 0
        return ChannelStatus(
            type=self.channel_type,
            status=ChannelConnectivity.CONNECTED
            if ready >= 1
            else ChannelConnectivity.DISCONNECTED,
        )

    async def sync_credential_store(self, core_v1_api: CoreV1Api) -> None:
        """Create the credential store if it does not exist, never modify an existing one."""
        if not self.requires_credential_store:
            return
        existing = await self.fetch_persistent_volume_claim(
            core_v1_api, self.credential_store_name, self.namespace
        )
        if existing is not None:
            return
        await self.instrumented(
            self.sensor,
            self.instance.name,
            self.namespace,
            self.credential_store_name,
            "credential_store",
            "create",
            self.create_persistent_volume_claim(
                core_v1_api, self.namespace, self.credential_store
            ),
        )

    async def sync_workload(self, apps_v1_api: AppsV1Api) -> ChannelStatus:
        """Create the workload if it does not exist, otherwise report its connectivity."""
        existing = await self.fetch_deployment(
            apps_v1_api, self.workload_name, self.namespace
        )
        if existing is not None:
            return self.observe(existing)
        await self.instrumented(
            self.sensor,
            self.instance.name,
            self.namespace,
            self.workload_name,
            "deployment",
            "create",
            self.create_deployment(apps_v1_api, self.namespace, self.deployment),
        )
        return ChannelStatus(type=self.channel_type, status=ChannelConnectivity.PENDING)

    async def synchronize(
        self, apps_v1_api: AppsV1Api, core_v1_api: CoreV1Api
    ) -> ChannelStatus:
        """Converge the credential store, then the workload, of this channel."""
        await self.sync_credential_store(core_v1_api)
        return await self.sync_workload(apps_v1_api)
