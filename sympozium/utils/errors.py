import json
import kubernetes_asyncio

_ALREADY_EXISTS = "alreadyexists"
_CONFLICT = "conflict"

#: Status codes worth retrying as-is. Anything else needs a change in the cluster first.
_TRANSIENT_STATUSES = (408, 429, 500, 502, 503, 504)


class InvariantViolation(Exception):
    """A programming fault, e.g. a missing required dependency.

    Never returned to the driver as a retryable result; it propagates.
    """


class ChannelConvergenceError(Exception):
    """Creating or observing the resources of one channel failed."""

    def __init__(self, channel_type: str, reason: Exception) -> None:
        self.channel_type = channel_type
        self.reason = reason
        super().__init__(f"Channel `{channel_type}` failed to converge: {reason}")


def _reason(ex: kubernetes_asyncio.client.ApiException) -> str:
    """Machine readable reason from the Status body of an API error."""
    try:
        err = json.loads(ex.body) if ex.body else {}
    except (TypeError, ValueError):
        return ""
    return (err.get("reason") or "").lower() if isinstance(err, dict) else ""


def not_found_error(ex: Exception) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 404


def already_exists_error(ex: Exception) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 409 and _reason(ex) == _ALREADY_EXISTS


def conflict_error(ex: Exception) -> bool:
    """True when an optimistic update lost against a concurrent writer."""
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 409 and _reason(ex) in (_CONFLICT, "")


def transient_error(ex: Exception) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status in _TRANSIENT_STATUSES or ex.status == 0


def error_type(ex: Exception) -> str:
    """Coarse error category used for logs and metric labels."""
    if isinstance(ex, ChannelConvergenceError):
        return "convergence"
    if conflict_error(ex):
        return "conflict"
    if transient_error(ex):
        return "transient"
    if isinstance(ex, kubernetes_asyncio.client.ApiException):
        return f"api_{ex.status}"
    return type(ex).__name__
