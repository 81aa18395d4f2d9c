"""Stable fingerprints of document-shaped state.

Two structures that differ only in mapping key order (or in whether a
player id key is written as 1 or "1") hash identically, so a state that
went through a JSON document store compares equal to the local original.
"""

import hashlib
import json
from datetime import date, datetime
from enum import Enum


def canonicalize(value):
    """Convert `value` to plain JSON types with string mapping keys."""
    if isinstance(value, Enum):
        return canonicalize(value.value)
    if isinstance(value, dict):
        return {str(k): canonicalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((canonicalize(v) for v in value), key=canonical_json)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "to_dict"):
        return canonicalize(value.to_dict())
    raise TypeError(f"cannot canonicalize {type(value).__name__}")


def canonical_json(value) -> str:
    """Deterministic JSON text: sorted keys, no insignificant whitespace."""
    return json.dumps(canonicalize(value), sort_keys=True,
                      separators=(",", ":"), ensure_ascii=False)


def stable_hash(value) -> str:
    """SHA-256 hex digest of the canonical JSON form of `value`."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()
