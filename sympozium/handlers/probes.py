import datetime
import kopf


# Liveness probe
@kopf.on.probe(id="now")
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


# Readiness, the reconciler is built at startup
@kopf.on.probe(id="reconciler")
def get_reconciler_ready(memo: kopf.Memo, **kwargs):
    return getattr(memo, "reconciler", None) is not None
