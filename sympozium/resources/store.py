from sympozium.utils.objects import cached_property
from kubernetes_asyncio.client import AppsV1Api, CoreV1Api, CustomObjectsApi
from kubernetes_asyncio.client.api_client import ApiClient


class ResourceStore:
    """Kubernetes API handles sharing one ApiClient.

    Handed to the reconciler explicitly. Individual handles may be passed in
    directly, otherwise they are built on first use from `api_client`.
    """

    def __init__(
        self,
        api_client: ApiClient = None,
        apps_v1_api: AppsV1Api = None,
        core_v1_api: CoreV1Api = None,
        custom_objects_api: CustomObjectsApi = None,
    ):
        self.api_client = api_client
        if apps_v1_api is not None:
            self.apps_v1_api = apps_v1_api
        if core_v1_api is not None:
            self.core_v1_api = core_v1_api
        if custom_objects_api is not None:
            self.custom_objects_api = custom_objects_api

    @cached_property
    def apps_v1_api(self) -> AppsV1Api:
        return AppsV1Api(self.api_client)

    @cached_property
    def core_v1_api(self) -> CoreV1Api:
        return CoreV1Api(self.api_client)

    @cached_property
    def custom_objects_api(self) -> CustomObjectsApi:
        return CustomObjectsApi(self.api_client)

    async def close(self):
        """Release the underlying connection pool."""
        if self.api_client is not None:
            await self.api_client.close()
