"""
Cache Key Codec

Builds colon-joined cache keys from heterogeneous parts.

    generate_key("user", "123", "profile")   -> "user:123:profile"
    generate_key("cache", {"b": 2, "a": 1})   -> "cache:<md5 of {"a":1,"b":2}>"

Scalars (str, int, float, bool, None) are stringified with ``:`` and ``\\``
backslash-escaped, so a scalar can never forge an extra segment. Structured
parts (mappings, sequences, sets, pydantic models, dataclasses) are
canonicalised with orjson OPT_SORT_KEYS, nested keys included, and reduced
to a 32-character MD5 fingerprint. MD5 is fine here: a collision costs at
worst a wrong cache hit on keys that are already namespaced by prefix.
"""

import dataclasses
import hashlib
from collections.abc import Mapping
from typing import Any

import orjson
from pydantic import BaseModel

from modernfinance.core.config.constants import KEY_SEPARATOR

_STRUCTURED = (Mapping, list, tuple, set, frozenset, BaseModel)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace(KEY_SEPARATOR, "\\" + KEY_SEPARATOR)


def _to_jsonable(obj: Any) -> Any:
    """orjson ``default`` hook for values it cannot encode natively."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset)):
        # Sets have no order; sort by the encoded form of each member
        return sorted(obj, key=_canonical)
    return str(obj)


def _canonical(value: Any) -> bytes:
    return orjson.dumps(
        value,
        default=_to_jsonable,
        # orjson writes dataclasses in field order and ignores OPT_SORT_KEYS for
        # them, so they go through the default hook as plain dicts
        option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS | orjson.OPT_PASSTHROUGH_DATACLASS,
    )


def _is_structured(part: Any) -> bool:
    if isinstance(part, _STRUCTURED):
        return True
    return dataclasses.is_dataclass(part) and not isinstance(part, type)


def fingerprint(value: Any) -> str:
    """
    MD5 hex digest of the canonical JSON form of ``value``.

    Logically equal structures (same entries, any key order) share a
    fingerprint. Never raises: values orjson refuses fall back to ``repr``.
    """
    try:
        canonical = _canonical(value)
    except (orjson.JSONEncodeError, TypeError):
        canonical = repr(value).encode("utf-8")
    return hashlib.md5(canonical).hexdigest()


def encode_part(part: Any) -> str:
    if _is_structured(part):
        return fingerprint(part)
    return _escape(str(part))


def generate_key(*parts: Any) -> str:
    """
    Generate a cache key from ``parts``.

    STAGE-CACHE.KEY: key canonicalisation

    Returns:
        Colon-joined key; empty string for no parts.
    """
    return KEY_SEPARATOR.join(encode_part(part) for part in parts)
