import jsonpickle
from copy import deepcopy
from typing import Any, Dict, Mapping


def sort_dict_keys(d):
    """Recursively sort dictionary keys and handle nested structures.

    Args:
        d: Data structure (dict, list, or primitive type)

    Returns:
        Sorted version of the data structure
    """
    if isinstance(d, dict):
        return {key: sort_dict_keys(value) for key, value in sorted(d.items())}
    elif isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    else:
        return d


def canonicalize_dict(data):
    """
    Returns a canonical JSON representation of a dictionary.

    Keys are sorted recursively so the representation stays the same
    regardless of insertion order. Handles nested dicts and lists.
    """
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)


def snapshot(obj: Mapping) -> Dict[str, Any]:
    """Deep copy of an object as read from the cluster.

    Callers mutate the copy and diff it against the snapshot with
    :func:`merge_patch`; the snapshot itself is never modified.
    """
    return deepcopy(dict(obj))


def merge_patch(original: Mapping, modified: Mapping) -> Dict[str, Any]:
    """Compute a JSON merge patch (RFC 7386) turning `original` into `modified`.

    Lists are replaced as a whole, keys missing from `modified` are set to None.
    Returns an empty dict when both are equal.
    """
    patch: Dict[str, Any] = {}
    for key in original:
        if key not in modified:
            patch[key] = None
    for key, value in modified.items():
        old = original.get(key) if key in original else None
        if key in original and canonicalize_dict(old) == canonicalize_dict(value):
            continue
        if isinstance(value, Mapping) and isinstance(old, Mapping):
            nested = merge_patch(old, value)
            if nested:
                patch[key] = nested
        else:
            patch[key] = deepcopy(value)
    return patch


def optimistic_merge_patch(original: Mapping, modified: Mapping) -> Dict[str, Any]:
    """Merge patch that fails with 409 Conflict if the object changed since `original` was read.

    The resourceVersion of the snapshot is sent along with the changed fields.
    Returns an empty dict when there is nothing to change.
    """
    patch = merge_patch(original, modified)
    if not patch:
        return patch
    resource_version = (original.get("metadata") or {}).get("resourceVersion")
    if resource_version:
        patch.setdefault("metadata", {})["resourceVersion"] = resource_version
    return patch


def label_selector(labels: Mapping[str, str]) -> str:
    """Render an equality based label selector."""
    return ",".join(f"{k}={v}" for k, v in labels.items())
