"""In-memory stand-ins for the Kubernetes APIs used by the operator."""

import json
import uuid
import pytest
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple
from kubernetes_asyncio.client import (
    ApiException,
    V1DeploymentList,
    V1DeploymentStatus,
    V1PersistentVolumeClaimList,
)
from sympozium.types.settings import Settings
from sympozium.resources.store import ResourceStore
from sympozium.resources.instance import SympoziumInstance
from sympozium.sensors import OperatorSensor
from sympozium.controllers.reconciler import InstanceReconciler

NAMESPACE = "default"

Key = Tuple[str, str]


def api_error(status: int, reason: str = "") -> ApiException:
    """An ApiException as raised by the client for a Status response."""
    ex = ApiException(status=status, reason=reason)
    ex.body = json.dumps(
        {"kind": "Status", "status": "Failure", "reason": reason, "code": status}
    )
    return ex


def parse_selector(label_selector: Optional[str]) -> Dict[str, str]:
    if not label_selector:
        return {}
    return dict(term.split("=", 1) for term in label_selector.split(","))


def matches(labels: Optional[Dict[str, str]], selector: Dict[str, str]) -> bool:
    labels = labels or {}
    return all(labels.get(k) == v for k, v in selector.items())


def apply_merge_patch(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return deepcopy(patch)
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = apply_merge_patch(result.get(key), value)
    return result


class FakeCluster:
    """Objects by kind, with failure injection per operation.

    `fail("create_deployment", api_error(500))` makes every create fail,
    optionally only for one object `name` and only `times` times.
    """

    def __init__(self):
        self.deployments: Dict[Key, Any] = {}
        self.pvcs: Dict[Key, Any] = {}
        self.config_maps: Dict[Key, Any] = {}
        self.custom_objects: Dict[str, Dict[Key, Dict]] = {}
        self.calls: List[Tuple[str, str]] = []
        self._failures: List[Dict[str, Any]] = []
        self._resource_version = 0

    # -- failure injection --------------------------------------------------

    def fail(self, operation: str, error: Exception, name: str = None, times: int = None):
        self._failures.append(
            {"operation": operation, "error": error, "name": name, "times": times}
        )

    def heal(self):
        self._failures.clear()

    def check(self, operation: str, name: str = None):
        self.calls.append((operation, name))
        for failure in self._failures:
            if failure["operation"] != operation:
                continue
            if failure["name"] is not None and failure["name"] != name:
                continue
            if failure["times"] is not None:
                if failure["times"] <= 0:
                    continue
                failure["times"] -= 1
            raise failure["error"]

    def operations(self, operation: str) -> List[str]:
        return [name for op, name in self.calls if op == operation]

    # -- custom objects -----------------------------------------------------

    def next_resource_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def objects(self, plural: str) -> Dict[Key, Dict]:
        return self.custom_objects.setdefault(plural, {})

    def add_instance(
        self,
        name: str,
        channels: List[Dict] = None,
        memory: Dict = None,
        finalizers: List[str] = None,
        namespace: str = NAMESPACE,
        status: Dict = None,
    ) -> Dict:
        spec = {"channels": channels or []}
        if memory is not None:
            spec["memory"] = memory
        body = {
            "apiVersion": "sympozium.ai/v1alpha1",
            "kind": "SympoziumInstance",
            "metadata": {
                "name": name,
                "namespace": namespace,
                "uid": str(uuid.uuid4()),
                "resourceVersion": self.next_resource_version(),
                "finalizers": list(finalizers or []),
            },
            "spec": spec,
        }
        if status is not None:
            body["status"] = status
        self.objects(SympoziumInstance.PLURAL_NAME)[(namespace, name)] = body
        return body

    def instance(self, name: str, namespace: str = NAMESPACE) -> Optional[Dict]:
        return self.objects(SympoziumInstance.PLURAL_NAME).get((namespace, name))

    def update_instance_spec(self, name: str, spec: Dict, namespace: str = NAMESPACE):
        body = self.instance(name, namespace)
        body["spec"] = spec
        body["metadata"]["resourceVersion"] = self.next_resource_version()

    def request_deletion(self, name: str, namespace: str = NAMESPACE):
        """Set the deletion timestamp, removing the object if nothing guards it."""
        body = self.instance(name, namespace)
        body["metadata"]["deletionTimestamp"] = "2026-01-01T00:00:00Z"
        body["metadata"]["resourceVersion"] = self.next_resource_version()
        self._maybe_remove(SympoziumInstance.PLURAL_NAME, (namespace, name))

    def add_agent_run(
        self, name: str, instance: str, phase: str = None, namespace: str = NAMESPACE
    ) -> Dict:
        body = {
            "apiVersion": "sympozium.ai/v1alpha1",
            "kind": "AgentRun",
            "metadata": {
                "name": name,
                "namespace": namespace,
                "labels": {"sympozium.ai/instance": instance},
            },
        }
        if phase is not None:
            body["status"] = {"phase": phase}
        self.objects("agentruns")[(namespace, name)] = body
        return body

    def set_ready(self, name: str, ready_replicas: int, namespace: str = NAMESPACE):
        self.deployments[(namespace, name)].status = V1DeploymentStatus(
            ready_replicas=ready_replicas
        )

    def _maybe_remove(self, plural: str, key: Key):
        body = self.objects(plural).get(key)
        metadata = body["metadata"]
        if metadata.get("deletionTimestamp") and not metadata.get("finalizers"):
            del self.objects(plural)[key]

    def _patch(self, plural: str, namespace: str, name: str, patch: Dict, status_only: bool):
        key = (namespace, name)
        body = self.objects(plural).get(key)
        if body is None:
            raise api_error(404, "NotFound")
        patch = deepcopy(patch)
        expected = (patch.get("metadata") or {}).pop("resourceVersion", None)
        if expected is not None and expected != body["metadata"]["resourceVersion"]:
            raise api_error(409, "Conflict")
        if status_only:
            patch = {"status": patch["status"]} if "status" in patch else {}
        else:
            # The status subresource is not writable through the main resource.
            patch.pop("status", None)
        updated = apply_merge_patch(body, patch)
        updated["metadata"]["resourceVersion"] = self.next_resource_version()
        self.objects(plural)[key] = updated
        self._maybe_remove(plural, key)
        return deepcopy(updated)


class FakeAppsV1Api:
    def __init__(self, cluster: FakeCluster):
        self.cluster = cluster

    async def read_namespaced_deployment(self, name, namespace, **kwargs):
        self.cluster.check("read_deployment", name)
        try:
            return self.cluster.deployments[(namespace, name)]
        except KeyError:
            raise api_error(404, "NotFound")

    async def create_namespaced_deployment(self, namespace, body, **kwargs):
        name = body.metadata.name
        self.cluster.check("create_deployment", name)
        if (namespace, name) in self.cluster.deployments:
            raise api_error(409, "AlreadyExists")
        self.cluster.deployments[(namespace, name)] = body
        return body

    async def list_namespaced_deployment(self, namespace, label_selector=None, **kwargs):
        self.cluster.check("list_deployments")
        selector = parse_selector(label_selector)
        return V1DeploymentList(
            items=[
                d
                for (ns, _), d in self.cluster.deployments.items()
                if ns == namespace and matches(d.metadata.labels, selector)
            ]
        )

    async def delete_namespaced_deployment(self, name, namespace, body=None, **kwargs):
        self.cluster.check("delete_deployment", name)
        if self.cluster.deployments.pop((namespace, name), None) is None:
            raise api_error(404, "NotFound")


class FakeCoreV1Api:
    def __init__(self, cluster: FakeCluster):
        self.cluster = cluster

    async def read_namespaced_persistent_volume_claim(self, name, namespace, **kwargs):
        self.cluster.check("read_pvc", name)
        try:
            return self.cluster.pvcs[(namespace, name)]
        except KeyError:
            raise api_error(404, "NotFound")

    async def create_namespaced_persistent_volume_claim(self, namespace, body, **kwargs):
        name = body.metadata.name
        self.cluster.check("create_pvc", name)
        if (namespace, name) in self.cluster.pvcs:
            raise api_error(409, "AlreadyExists")
        self.cluster.pvcs[(namespace, name)] = body
        return body

    async def list_namespaced_persistent_volume_claim(
        self, namespace, label_selector=None, **kwargs
    ):
        self.cluster.check("list_pvcs")
        selector = parse_selector(label_selector)
        return V1PersistentVolumeClaimList(
            items=[
                p
                for (ns, _), p in self.cluster.pvcs.items()
                if ns == namespace and matches(p.metadata.labels, selector)
            ]
        )

    async def delete_namespaced_persistent_volume_claim(
        self, name, namespace, body=None, **kwargs
    ):
        self.cluster.check("delete_pvc", name)
        if self.cluster.pvcs.pop((namespace, name), None) is None:
            raise api_error(404, "NotFound")

    async def read_namespaced_config_map(self, name, namespace, **kwargs):
        self.cluster.check("read_config_map", name)
        try:
            return self.cluster.config_maps[(namespace, name)]
        except KeyError:
            raise api_error(404, "NotFound")

    async def create_namespaced_config_map(self, namespace, body, **kwargs):
        name = body.metadata.name
        self.cluster.check("create_config_map", name)
        if (namespace, name) in self.cluster.config_maps:
            raise api_error(409, "AlreadyExists")
        self.cluster.config_maps[(namespace, name)] = body
        return body

    async def delete_namespaced_config_map(self, name, namespace, body=None, **kwargs):
        self.cluster.check("delete_config_map", name)
        if self.cluster.config_maps.pop((namespace, name), None) is None:
            raise api_error(404, "NotFound")


class FakeCustomObjectsApi:
    def __init__(self, cluster: FakeCluster):
        self.cluster = cluster

    async def get_namespaced_custom_object(self, group, version, namespace, plural, name, **kwargs):
        self.cluster.check("get_custom_object", name)
        body = self.cluster.objects(plural).get((namespace, name))
        if body is None:
            raise api_error(404, "NotFound")
        return deepcopy(body)

    async def list_namespaced_custom_object(
        self, group, version, namespace, plural, label_selector=None, **kwargs
    ):
        self.cluster.check("list_custom_objects", plural)
        selector = parse_selector(label_selector)
        return {
            "items": [
                deepcopy(o)
                for (ns, _), o in self.cluster.objects(plural).items()
                if ns == namespace and matches(o["metadata"].get("labels"), selector)
            ]
        }

    async def patch_namespaced_custom_object(
        self, group, version, namespace, plural, name, body, **kwargs
    ):
        self.cluster.check("patch_custom_object", name)
        return self.cluster._patch(plural, namespace, name, body, status_only=False)

    async def patch_namespaced_custom_object_status(
        self, group, version, namespace, plural, name, body, **kwargs
    ):
        self.cluster.check("patch_custom_object_status", name)
        return self.cluster._patch(plural, namespace, name, body, status_only=True)


class RecordingSensor(OperatorSensor):
    """Sensor remembering the hooks it received."""

    def __init__(self):
        self.events: List[Tuple] = []

    def on_reconcile_start(self, instance_name, namespace, trigger_source):
        self.events.append(("reconcile_start", instance_name, trigger_source))
        return {"trigger_source": trigger_source}

    def on_reconcile_complete(self, instance_name, namespace, state, success, error=None):
        self.events.append(("reconcile_complete", instance_name, success, error))

    def on_resource_sync_start(self, instance_name, resource_name, namespace, resource_type):
        self.events.append(("resource_sync_start", resource_name, namespace, resource_type))

    def on_resource_sync_complete(
        self,
        instance_name,
        resource_name,
        namespace,
        resource_type,
        state,
        operation,
        success,
        error=None,
    ):
        self.events.append(
            ("resource_sync", resource_name, resource_type, operation, success)
        )

    def on_finalizer_transition(self, instance_name, namespace, transition):
        self.events.append(("finalizer", instance_name, transition))

    def on_status_update(self, instance_name, namespace, phase, active_runs):
        self.events.append(("status", instance_name, phase, active_runs))

    def on_tolerated_failure(self, instance_name, namespace, operation, error):
        self.events.append(("tolerated", instance_name, operation))

    def named(self, kind: str) -> List[Tuple]:
        return [e for e in self.events if e[0] == kind]


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def store(cluster):
    return ResourceStore(
        apps_v1_api=FakeAppsV1Api(cluster),
        core_v1_api=FakeCoreV1Api(cluster),
        custom_objects_api=FakeCustomObjectsApi(cluster),
    )


@pytest.fixture
def conf():
    return Settings(
        event_bus_url="nats://nats.test.svc:4222",
        channel_image_registry="ghcr.io/example/sympozium",
        image_tag="v1.2.3",
        credential_store_size="256Mi",
        credential_store_mount_path="/data",
        error_requeue_seconds=30.0,
        resync_interval_seconds=60.0,
    )


@pytest.fixture
def sensor():
    return RecordingSensor()


@pytest.fixture
def reconciler(store, conf, sensor):
    return InstanceReconciler(store, conf=conf, sensor=sensor)


@pytest.fixture
def fetch_instance(store):
    async def fetch(name: str, namespace: str = NAMESPACE):
        return await SympoziumInstance.fetch(store, namespace, name)

    return fetch
