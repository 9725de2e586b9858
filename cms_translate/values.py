"""Decode raw field values into a closed set of kinds.

Field values arrive as loosely-shaped JSON. ``decode_value`` inspects a value
once and the classifier, walker and tree printer dispatch on the result.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

DOCUMENT = "document"
TEXT_NODE = "text"
EMBEDDED_ENTRY_BLOCK = "embedded-entry-block"
EMBEDDED_ENTRY_INLINE = "embedded-entry-inline"
EMBEDDED_ENTRY_NODES = frozenset({EMBEDDED_ENTRY_BLOCK, EMBEDDED_ENTRY_INLINE})


class ValueKind(Enum):
    TEXT = "text"
    RICH_DOCUMENT = "richText"
    ENTRY_LINK = "entryLink"
    ASSET_LINK = "assetLink"
    SUB_ENTRY = "subEntry"
    ARRAY = "array"
    OPAQUE = "opaque"
    EMPTY = "empty"


def _sys(value: Any) -> Optional[dict]:
    if isinstance(value, dict):
        sys_obj = value.get("sys")
        if isinstance(sys_obj, dict):
            return sys_obj
    return None


def decode_value(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.EMPTY
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, list):
        return ValueKind.ARRAY
    if not isinstance(value, dict):
        return ValueKind.OPAQUE
    if value.get("nodeType") == DOCUMENT and isinstance(value.get("content"), list):
        return ValueKind.RICH_DOCUMENT
    sys_obj = _sys(value)
    if sys_obj is not None:
        # Published assets come back with sys.type == "Asset", references as Links
        if sys_obj.get("type") == "Asset":
            return ValueKind.ASSET_LINK
        if sys_obj.get("type") == "Link":
            if sys_obj.get("linkType") == "Asset":
                return ValueKind.ASSET_LINK
            if sys_obj.get("linkType") == "Entry":
                return ValueKind.ENTRY_LINK
        if sys_obj.get("contentType"):
            return ValueKind.SUB_ENTRY
    return ValueKind.OPAQUE


def link_id(value: Any) -> Optional[str]:
    sys_obj = _sys(value)
    if sys_obj is None or sys_obj.get("id") is None:
        return None
    return str(sys_obj["id"])
