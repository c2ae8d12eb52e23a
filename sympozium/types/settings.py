import os
from typing import Any, Optional

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Cluster-internal address of the event bus, injected into every channel workload
EVENT_BUS_URL = str(_getenv("EVENT_BUS_URL", "nats://nats.sympozium-system.svc:4222"))

#: Image repository prefix of channel adapter images
CHANNEL_IMAGE_REGISTRY = str(
    _getenv("CHANNEL_IMAGE_REGISTRY", "ghcr.io/alexsjones/sympozium")
)

#: Release tag of channel adapter images
IMAGE_TAG = str(_getenv("IMAGE_TAG", "latest"))

#: Requested size of credential store volumes
CREDENTIAL_STORE_SIZE = str(_getenv("CREDENTIAL_STORE_SIZE", "256Mi"))

#: Storage class of credential store volumes (cluster default when unset)
CREDENTIAL_STORE_STORAGE_CLASS = _getenv("CREDENTIAL_STORE_STORAGE_CLASS", None)

#: Path the credential store is mounted at inside the channel container
CREDENTIAL_STORE_MOUNT_PATH = str(_getenv("CREDENTIAL_STORE_MOUNT_PATH", "/data"))

#: Seconds to wait before retrying a failed reconciliation
ERROR_REQUEUE_SECONDS = float(_getenv("ERROR_REQUEUE_SECONDS", 30.0))

#: Seconds between periodic reconciliations, catches drift missed by watch events
RESYNC_INTERVAL_SECONDS = float(_getenv("RESYNC_INTERVAL_SECONDS", 60.0))

#: Maximum number of instances reconciled concurrently
RECONCILE_WORKER_LIMIT = int(_getenv("RECONCILE_WORKER_LIMIT", 4))


class Settings:
    """Operator settings"""

    event_bus_url: str = EVENT_BUS_URL
    channel_image_registry: str = CHANNEL_IMAGE_REGISTRY
    image_tag: str = IMAGE_TAG
    credential_store_size: str = CREDENTIAL_STORE_SIZE
    credential_store_storage_class: Optional[str] = CREDENTIAL_STORE_STORAGE_CLASS
    credential_store_mount_path: str = CREDENTIAL_STORE_MOUNT_PATH
    error_requeue_seconds: float = ERROR_REQUEUE_SECONDS
    resync_interval_seconds: float = RESYNC_INTERVAL_SECONDS
    reconcile_worker_limit: int = RECONCILE_WORKER_LIMIT

    def __init__(
        self,
        *args,
        event_bus_url: str = None,
        channel_image_registry: str = None,
        image_tag: str = None,
        credential_store_size: str = None,
        credential_store_storage_class: str = None,
        credential_store_mount_path: str = None,
        error_requeue_seconds: float = None,
        resync_interval_seconds: float = None,
        reconcile_worker_limit: int = None,
        **kwargs,
    ):
        if event_bus_url is not None:
            self.event_bus_url = event_bus_url

        if channel_image_registry is not None:
            self.channel_image_registry = channel_image_registry

        if image_tag is not None:
            self.image_tag = image_tag

        if credential_store_size is not None:
            self.credential_store_size = credential_store_size

        if credential_store_storage_class is not None:
            self.credential_store_storage_class = credential_store_storage_class

        if credential_store_mount_path is not None:
            self.credential_store_mount_path = credential_store_mount_path

        if error_requeue_seconds is not None:
            self.error_requeue_seconds = error_requeue_seconds

        if resync_interval_seconds is not None:
            self.resync_interval_seconds = resync_interval_seconds

        if reconcile_worker_limit is not None:
            self.reconcile_worker_limit = reconcile_worker_limit

    def channel_image(self, channel_type: str) -> str:
        """Image of the adapter process for a channel type."""
        return f"{self.channel_image_registry}/channel-{channel_type}:{self.image_tag or 'latest'}"
