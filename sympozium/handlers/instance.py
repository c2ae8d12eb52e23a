import asyncio
import kopf
import logging
from collections import defaultdict
from typing import Dict
from sympozium.types.settings import RESYNC_INTERVAL_SECONDS
from sympozium.utils.errors import ChannelConvergenceError, error_type
from sympozium.resources.instance import SympoziumInstance
from sympozium.controllers.reconciler import InstanceReconciler
from sympozium.controllers.result import ReconcileResult

KIND = SympoziumInstance.KIND

RECONCILE_FAILED = "ReconcileFailed"
CHANNEL_CONVERGENCE_FAILED = "ChannelConvergenceFailed"

# One reconcile at a time per instance, whichever handler triggered it
reconcile_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)


class TimerLogFilter(logging.Filter):
    def filter(self, record):
        """Timer logs are noisy so we filter them out."""
        return "Timer " not in record.getMessage()


kopf_logger = logging.getLogger("kopf.objects")
kopf_logger.addFilter(TimerLogFilter())


def forget_lock(namespace: str, name: str) -> None:
    lock = reconcile_locks.get(f"{namespace}/{name}")
    if lock is not None and not lock.locked():
        del reconcile_locks[f"{namespace}/{name}"]


def get_reconciler(memo: kopf.Memo) -> InstanceReconciler:
    reconciler = getattr(memo, "reconciler", None)
    if reconciler is None:
        raise kopf.PermanentError("Operator started without a reconciler.")
    return reconciler


async def reconcile(
    memo: kopf.Memo,
    body,
    name: str,
    namespace: str,
    trigger_source: str,
    logger: logging.Logger,
) -> ReconcileResult:
    """Run a reconcile pass under the instance lock and post failures as events."""
    reconciler = get_reconciler(memo)
    async with reconcile_locks[f"{namespace}/{name}"]:
        result = await reconciler.reconcile(
            namespace, name, trigger_source=trigger_source
        )
    if result.error is not None:
        reason = (
            CHANNEL_CONVERGENCE_FAILED
            if isinstance(result.error, ChannelConvergenceError)
            else RECONCILE_FAILED
        )
        logger.warning(f"Reconcile failed ({error_type(result.error)}): {result.error}")
        kopf.warn(body, reason=reason, message=str(result.error))
    return result


@kopf.on.resume(kind=KIND)
@kopf.on.create(kind=KIND)
@kopf.on.update(kind=KIND, field="spec")
async def on_change(body, name, namespace, memo: kopf.Memo, logger, **kwargs):
    """Reconcile a created, resumed or re-specified instance."""
    result = await reconcile(memo, body, name, namespace, "event", logger)
    if result.error is not None:
        raise kopf.TemporaryError(str(result.error), delay=result.requeue_after)


@kopf.timer(kind=KIND, initial_delay=5.0, interval=RESYNC_INTERVAL_SECONDS)
async def resync(body, name, namespace, memo: kopf.Memo, logger, **kwargs):
    """Periodic full reconcile, catches drift missed by watch events."""
    result = await reconcile(memo, body, name, namespace, "timer", logger)
    if result.error is not None:
        raise kopf.TemporaryError(str(result.error), delay=result.requeue_after)


@kopf.on.delete(kind=KIND, optional=True)
async def on_delete(body, name, namespace, memo: kopf.Memo, logger, **kwargs):
    """Teardown of a deleted instance, retried until the finalizer is released."""
    result = await reconcile(memo, body, name, namespace, "delete", logger)
    if result.error is not None:
        raise kopf.TemporaryError(str(result.error), delay=result.requeue_after)
    # Released, no further passes for this key
    forget_lock(namespace, name)
