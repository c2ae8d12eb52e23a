from typing import NamedTuple, Optional


class ReconcileResult(NamedTuple):
    """Outcome of one reconcile pass.

    `requeue_after` is the delay in seconds before the next pass (None when
    the driver need not come back), `error` the failure of this pass if any.
    """

    requeue_after: Optional[float] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
