import kopf
import logging
import sympozium.handlers.instance as instance
import sympozium.handlers.probes as probes
from sympozium.types.settings import Settings
from sympozium.resources.store import ResourceStore
from sympozium.controllers.reconciler import InstanceReconciler
from sympozium.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient


# Configure Kopf settings
@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    # Load Kubernetes config - try in-cluster first (for production), then local kubeconfig (for dev)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    memo.conf = Settings()

    # One ApiClient for all API handles to prevent connection leaks
    memo.store = ResourceStore(ApiClient())
    logger.info("Shared Kubernetes API client initialized")

    # Initialize sensor infrastructure
    sensor_delegate = SensorDelegate()
    sensor_delegate.add(PrometheusMonitor())
    memo.sensor = sensor_delegate
    logger.info("Sensor infrastructure initialized with PrometheusMonitor")

    # Initialize Prometheus metrics server
    try:
        init_metrics_server()
    except Exception as e:
        logger.error(f"Failed to start metrics server: {e}")
        # Don't fail operator startup if metrics server fails
        logger.warning("Continuing without metrics server")

    memo.reconciler = InstanceReconciler(
        memo.store, conf=memo.conf, sensor=memo.sensor
    )

    # Limit the number of concurrent workers to prevent flooding the API
    settings.batching.worker_limit = memo.conf.reconcile_worker_limit

    # Keep handler progress in annotations, the status belongs to the reconciler
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix="sympozium.ai"
    )

    # Only post events to the Kubernetes API for logging >= Warning
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(memo: kopf.Memo, logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    store = getattr(memo, "store", None)
    if store is not None:
        await store.close()
        logger.info("Shared API client closed")

    logger.info("Operator shutdown complete")


__all__ = [
    "instance",
    "probes",
]
