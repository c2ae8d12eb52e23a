from typing import Any, Awaitable, Dict, List, Mapping, Optional
from sympozium.common.models.labels import Labels
from sympozium.utils.errors import already_exists_error, not_found_error
from sympozium.utils.helpers import label_selector
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    V1ConfigMap,
    V1DeleteOptions,
    V1Deployment,
    V1OwnerReference,
    V1PersistentVolumeClaim,
)


class BaseResource:
    """Base resource model.

    Create operations are create-if-absent: an object that already exists is
    never replaced, the call reports that nothing was created instead.
    Fetch operations return None for objects that do not exist and delete
    operations treat "not found" as done.
    """

    SYMPOZIUM_OPERATOR_NAME = "sympozium-operator"

    _namespace: str
    _labels: Labels

    def __init__(self, namespace: str = None, labels: Labels = None):
        self._namespace = namespace
        self._labels = labels or Labels.empty()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def labels(self) -> Labels:
        return self._labels

    def prepare_owner_references(self, owner: Mapping) -> List[V1OwnerReference]:
        """Controller reference to the owning custom resource, used for cascade deletion."""
        metadata = owner["metadata"]
        return [
            V1OwnerReference(
                api_version=owner["apiVersion"],
                kind=owner["kind"],
                name=metadata["name"],
                uid=metadata["uid"],
                controller=True,
                block_owner_deletion=True,
            )
        ]

    async def fetch_deployment(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str
    ) -> Optional[V1Deployment]:
        """Retrieve the latest state of a deployment"""
        try:
            return await apps_v1_api.read_namespaced_deployment(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_deployment(
        self, apps_v1_api: AppsV1Api, namespace: str, deployment: V1Deployment
    ) -> bool:
        try:
            await apps_v1_api.create_namespaced_deployment(
                namespace=namespace, body=deployment
            )
        except ApiException as ex:
            if already_exists_error(ex):
                return False
            raise
        return True

    async def list_deployments(
        self, apps_v1_api: AppsV1Api, namespace: str, labels: Mapping[str, str]
    ) -> List[V1Deployment]:
        result = await apps_v1_api.list_namespaced_deployment(
            namespace=namespace, label_selector=label_selector(labels)
        )
        return list(result.items or [])

    async def delete_deployment(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str
    ) -> None:
        try:
            await apps_v1_api.delete_namespaced_deployment(
                name=name,
                namespace=namespace,
                body=V1DeleteOptions(propagation_policy="Background"),
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise

    async def fetch_persistent_volume_claim(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1PersistentVolumeClaim]:
        try:
            return await core_v1_api.read_namespaced_persistent_volume_claim(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_persistent_volume_claim(
        self, core_v1_api: CoreV1Api, namespace: str, pvc: V1PersistentVolumeClaim
    ) -> bool:
        try:
            await core_v1_api.create_namespaced_persistent_volume_claim(
                namespace=namespace, body=pvc
            )
        except ApiException as ex:
            if already_exists_error(ex):
                return False
            raise
        return True

    async def list_persistent_volume_claims(
        self, core_v1_api: CoreV1Api, namespace: str, labels: Mapping[str, str]
    ) -> List[V1PersistentVolumeClaim]:
        result = await core_v1_api.list_namespaced_persistent_volume_claim(
            namespace=namespace, label_selector=label_selector(labels)
        )
        return list(result.items or [])

    async def delete_persistent_volume_claim(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> None:
        try:
            await core_v1_api.delete_namespaced_persistent_volume_claim(
                name=name, namespace=namespace, body=V1DeleteOptions()
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise

    async def fetch_config_map(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1ConfigMap]:
        try:
            return await core_v1_api.read_namespaced_config_map(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_config_map(
        self, core_v1_api: CoreV1Api, namespace: str, config_map: V1ConfigMap
    ) -> bool:
        try:
            await core_v1_api.create_namespaced_config_map(
                namespace=namespace, body=config_map
            )
        except ApiException as ex:
            if already_exists_error(ex):
                return False
            raise
        return True

    async def delete_config_map(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> None:
        try:
            await core_v1_api.delete_namespaced_config_map(
                name=name, namespace=namespace, body=V1DeleteOptions()
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise

    async def get_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
    ) -> Optional[Dict[str, Any]]:
        try:
            return await custom_objects_api.get_namespaced_custom_object(
                group=group,
                version=version,
                namespace=namespace,
                plural=plural,
                name=name,
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def list_custom_objects(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        labels: Mapping[str, str] = None,
    ) -> List[Dict[str, Any]]:
        result = await custom_objects_api.list_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            label_selector=label_selector(labels) if labels else None,
        )
        return list((result or {}).get("items") or [])

    async def patch_custom_object(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
        patch: Dict[str, Any],
    ) -> Dict[str, Any]:
        return await custom_objects_api.patch_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            name=name,
            body=patch,
        )

    async def patch_custom_object_status(
        self,
        custom_objects_api: CustomObjectsApi,
        namespace: str,
        group: str,
        version: str,
        plural: str,
        name: str,
        patch: Dict[str, Any],
    ) -> Dict[str, Any]:
        return await custom_objects_api.patch_namespaced_custom_object_status(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            name=name,
            body=patch,
        )

    async def instrumented(
        self,
        sensor,
        instance_name: str,
        namespace: str,
        resource_name: str,
        resource_type: str,
        operation: str,
        call: Awaitable,
    ) -> Any:
        """Await a create or delete call, reporting it to `sensor`."""
        sensor_state = sensor.on_resource_sync_start(
            instance_name, resource_name, namespace, resource_type
        )
        success = True
        error = None
        try:
            return await call
        except Exception as e:
            success = False
            error = e
            raise
        finally:
            sensor.on_resource_sync_complete(
                instance_name,
                resource_name,
                namespace,
                resource_type,
                sensor_state,
                operation,
                success,
                error,
            )
