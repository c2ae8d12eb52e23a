from typing import Any, Dict, List, Optional
from sympozium.utils.objects import cached_property
from sympozium.utils.errors import InvariantViolation
from sympozium.utils.helpers import snapshot, optimistic_merge_patch
from sympozium.types.models import InstanceSpec, InstanceStatus
from sympozium.types.schemas import InstanceSpecSchema, InstanceStatusSchema
from sympozium.resources.base import BaseResource
from sympozium.resources.store import ResourceStore


class SympoziumInstance(BaseResource):
    """A SympoziumInstance as last read from the cluster.

    Every write is a merge patch computed against the body this object was
    read with and carries its resourceVersion, so a concurrent change makes
    the write fail with 409 Conflict instead of overwriting it.
    """

    KIND = "SympoziumInstance"
    GROUP_NAME = "sympozium.ai"
    GROUP_VERSION = "v1alpha1"
    PLURAL_NAME = "sympoziuminstances"
    FINALIZER = "sympozium.ai/finalizer"

    store: ResourceStore
    body: Dict[str, Any]

    def __init__(self, store: ResourceStore, body: Dict[str, Any]):
        metadata = body.get("metadata") or {}
        super().__init__(namespace=metadata.get("namespace"))
        self.store = store
        self.body = body

    @classmethod
    async def fetch(
        cls, store: ResourceStore, namespace: str, name: str
    ) -> Optional["SympoziumInstance"]:
        """Read the instance, None if it does not exist."""
        body = await BaseResource().get_custom_object(
            store.custom_objects_api,
            namespace=namespace,
            group=cls.GROUP_NAME,
            version=cls.GROUP_VERSION,
            plural=cls.PLURAL_NAME,
            name=name,
        )
        if body is None:
            return None
        return cls(store, body)

    async def refresh(self) -> Optional["SympoziumInstance"]:
        return await self.fetch(self.store, self.namespace, self.name)

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.body.get("metadata") or {}

    @property
    def name(self) -> str:
        return self.metadata.get("name")

    @property
    def uid(self) -> str:
        return self.metadata.get("uid")

    @property
    def deletion_timestamp(self) -> Optional[str]:
        return self.metadata.get("deletionTimestamp")

    @property
    def being_deleted(self) -> bool:
        return bool(self.deletion_timestamp)

    @property
    def finalizers(self) -> List[str]:
        return list(self.metadata.get("finalizers") or [])

    @property
    def has_finalizer(self) -> bool:
        return self.FINALIZER in self.finalizers

    @property
    def status(self) -> Dict[str, Any]:
        return self.body.get("status") or {}

    @cached_property
    def spec(self) -> InstanceSpec:
        """Desired state. Raises marshmallow.ValidationError for a malformed spec."""
        return InstanceSpecSchema().load(self.body.get("spec") or {})

    @property
    def memory_enabled(self) -> bool:
        memory = self.spec.memory
        return bool(memory and memory.enabled)

    def owner(self) -> Dict[str, Any]:
        """Owner of every child resource. Children can't be adopted without a uid."""
        if not self.uid or not self.name:
            raise InvariantViolation(
                f"{self.KIND} `{self.namespace}/{self.name}` has no uid, "
                "children would be created without an owner."
            )
        return {
            "apiVersion": self.body.get(
                "apiVersion", f"{self.GROUP_NAME}/{self.GROUP_VERSION}"
            ),
            "kind": self.body.get("kind", self.KIND),
            "metadata": {"name": self.name, "uid": self.uid},
        }

    async def add_finalizer(self) -> Optional[Dict[str, Any]]:
        """Add the finalizer marker, patching only metadata.finalizers."""
        working = snapshot(self.body)
        finalizers = self.finalizers
        if self.FINALIZER not in finalizers:
            finalizers.append(self.FINALIZER)
        working.setdefault("metadata", {})["finalizers"] = finalizers
        return await self._patch(working)

    async def remove_finalizer(self) -> Optional[Dict[str, Any]]:
        """Remove the finalizer marker, leaving markers of other controllers in place."""
        working = snapshot(self.body)
        working.setdefault("metadata", {})["finalizers"] = [
            f for f in self.finalizers if f != self.FINALIZER
        ]
        return await self._patch(working)

    async def patch_status(self, **fields: Any) -> Optional[Dict[str, Any]]:
        """Patch selected status fields, given by their serialized names.

        Nothing is sent when the status already holds these values.
        """
        working = snapshot(self.body)
        status = dict(working.get("status") or {})
        status.update(fields)
        working["status"] = status
        patch = optimistic_merge_patch(self.body, working)
        if not patch:
            return None
        return await self.patch_custom_object_status(
            self.store.custom_objects_api,
            namespace=self.namespace,
            group=self.GROUP_NAME,
            version=self.GROUP_VERSION,
            plural=self.PLURAL_NAME,
            name=self.name,
            patch=patch,
        )

    async def write_status(self, status: InstanceStatus) -> Optional[Dict[str, Any]]:
        """Write the full observed status, in the schema consumed by the API server."""
        return await self.patch_status(**InstanceStatusSchema().dump(status))

    async def _patch(self, working: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        patch = optimistic_merge_patch(self.body, working)
        if not patch:
            return None
        return await self.patch_custom_object(
            self.store.custom_objects_api,
            namespace=self.namespace,
            group=self.GROUP_NAME,
            version=self.GROUP_VERSION,
            plural=self.PLURAL_NAME,
            name=self.name,
            patch=patch,
        )
