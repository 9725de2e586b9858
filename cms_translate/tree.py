"""Render the discovered content structure as an indented tree for review."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .classifier import Classifier, TextStatus
from .client import Entry
from .registry import FieldRegistry
from .values import ValueKind, decode_value


@dataclass
class FieldStatus:
    translatable: bool
    symbol: str
    reason: str


def field_status(classifier: Classifier, field_name: str, value: Any, localized: Dict[str, Any], source_locale: str) -> FieldStatus:
    if classifier.is_skippable(field_name):
        return FieldStatus(False, "✗", "skip list")
    has_translations = any(loc != source_locale for loc in localized)
    kind = decode_value(value)
    if kind is ValueKind.TEXT:
        status = classifier.classify_text(value)
        if status is TextStatus.POSSIBLE_URL:
            return FieldStatus(True, "!", status.value)
        if not status.translatable:
            return FieldStatus(False, "✗", status.value)
        return FieldStatus(True, "✓*" if has_translations else "✓", "string (has translations)" if has_translations else "string")
    if kind is ValueKind.RICH_DOCUMENT:
        return FieldStatus(True, "✓*" if has_translations else "✓", "rich text (has translations)" if has_translations else "rich text")
    if kind in (ValueKind.ENTRY_LINK, ValueKind.SUB_ENTRY):
        return FieldStatus(False, "→", "linked entry")
    if kind is ValueKind.ASSET_LINK:
        return FieldStatus(False, "✗", "asset reference")
    return FieldStatus(False, " ", kind.value)


def render_content_tree(
    entry: Entry,
    registry: FieldRegistry,
    classifier: Classifier,
    client: Any,
    max_depth: int,
    source_locale: str = "en",
) -> List[str]:
    lines: List[str] = []
    _render(entry, "", True, 0, (), lines, registry, classifier, client, max_depth, source_locale)
    return lines


def _render(
    entry: Entry,
    prefix: str,
    is_last: bool,
    depth: int,
    path: Tuple[str, ...],
    lines: List[str],
    registry: FieldRegistry,
    classifier: Classifier,
    client: Any,
    max_depth: int,
    source_locale: str,
) -> None:
    connector = "└── " if is_last else "├── "
    if depth > 0 and depth >= max_depth:
        lines.append(f"{prefix}{connector}[MAX DEPTH] Skipping deeper traversal")
        return
    if entry.id in path:
        lines.append(f"{prefix}{connector}[CYCLE] {entry.id}")
        return
    path = path + (entry.id,)

    lines.append(f"{prefix}{connector}[{entry.content_type}] {entry.title(source_locale)}")
    child_prefix = prefix + ("    " if is_last else "│   ")
    items = list(entry.fields.items())
    for index, (field_name, localized) in enumerate(items):
        localized = localized if isinstance(localized, dict) else {}
        value = localized.get(source_locale)
        status = field_status(classifier, field_name, value, localized, source_locale)
        last_field = index == len(items) - 1
        field_connector = "└── " if last_field else "├── "
        kind = decode_value(value)
        label = "richText" if kind is ValueKind.RICH_DOCUMENT else kind.value
        line = f"{child_prefix}{field_connector}{field_name}: {label} {status.symbol}"
        others = [loc for loc in localized if loc != source_locale]
        if status.translatable and others:
            line += f" ({', '.join(others)})"
        elif not status.translatable or status.symbol == "!":
            line += f" ({status.reason})"
        lines.append(line)

        nested_prefix = child_prefix + ("    " if last_field else "│   ")
        children = value if kind is ValueKind.ARRAY else [value]
        for i, item in enumerate(children):
            position = f"{entry.id}.{field_name}[{i}]" if kind is ValueKind.ARRAY else f"{entry.id}.{field_name}"
            nested = _nested_entry(item, position, registry, client)
            if nested is not None:
                _render(nested, nested_prefix, i == len(children) - 1, depth + 1, path, lines,
                        registry, classifier, client, max_depth, source_locale)


def _nested_entry(item: Any, fallback_id: str, registry: FieldRegistry, client: Any) -> Optional[Entry]:
    kind = decode_value(item)
    if kind is ValueKind.ENTRY_LINK:
        return registry.resolve(client, item)
    if kind is ValueKind.SUB_ENTRY:
        return Entry.from_payload(item, fallback_id=fallback_id)
    return None
