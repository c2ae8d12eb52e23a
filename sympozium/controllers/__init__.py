from .result import ReconcileResult
from .channels import ChannelPlanner
from .finalizer import FinalizerState, FinalizerStateMachine
from .status import StatusAggregator
from .reconciler import InstanceReconciler

__all__ = [
    "ReconcileResult",
    "ChannelPlanner",
    "FinalizerState",
    "FinalizerStateMachine",
    "StatusAggregator",
    "InstanceReconciler",
]
