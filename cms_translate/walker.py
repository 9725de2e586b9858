from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .classifier import Classifier
from .client import Entry
from .config import Config
from .registry import FieldRegistry, TranslationEntry
from .rich_text import extract
from .values import ValueKind, decode_value

logger = logging.getLogger(__name__)


@dataclass
class CollectOptions:
    # Register every rich-text leaf separately instead of the whole document
    rich_text_leaves: bool = False
    # Register string sub-properties of plain objects as synthetic leaf fields
    expand_objects: bool = True


class GraphWalker:
    """Depth-first discovery of translatable fields across linked and embedded entries.

    The root entry is always processed. Any other entry is skipped when it is
    already on the active path (cycle) or sits at ``depth >= max_depth``.
    Registration stops for the whole run once the registry's field cap is hit.
    """

    def __init__(self, config: Config, classifier: Classifier, client: Any) -> None:
        self.max_depth = config.max_depth
        self.max_fields = config.max_fields
        self.source_locale = config.source_locale
        self.classifier = classifier
        self.client = client

    def collect(
        self,
        entry: Entry,
        locale: str,
        options: Optional[CollectOptions] = None,
        registry: Optional[FieldRegistry] = None,
    ) -> FieldRegistry:
        if registry is None:
            registry = FieldRegistry(self.max_fields)
        self._collect(entry, locale, options or CollectOptions(), registry, 0, ())
        return registry

    def _collect(
        self,
        entry: Entry,
        locale: str,
        options: CollectOptions,
        registry: FieldRegistry,
        depth: int,
        path: Tuple[str, ...],
    ) -> None:
        if entry.id in path:
            logger.info("Circular reference detected for entry %s - skipping", entry.id)
            return
        if depth > 0 and depth >= self.max_depth:
            logger.info("Max depth (%d) reached for entry %s - skipping deeper traversal", self.max_depth, entry.id)
            return

        path = path + (entry.id,)
        for field_name, localized in entry.fields.items():
            if not isinstance(localized, dict):
                localized = {}
            value = localized.get(self.source_locale)
            logger.debug("Collecting field information for %s in entry %s", field_name, entry.id)
            if not self._register_field(entry, field_name, value, localized, locale, options, registry):
                return

            kind = decode_value(value)
            if kind is ValueKind.ARRAY:
                for index, item in enumerate(value):
                    self._descend(item, f"{entry.id}.{field_name}[{index}]", locale, options, registry, depth, path)
                    if registry.is_full:
                        return
                    if options.expand_objects and decode_value(item) is ValueKind.OPAQUE:
                        if not self._register_object_leaves(
                            entry, field_name, f"[{index}]", item, localized, locale, registry
                        ):
                            return
            else:
                self._descend(value, f"{entry.id}.{field_name}", locale, options, registry, depth, path)

    def _descend(
        self,
        value: Any,
        fallback_id: str,
        locale: str,
        options: CollectOptions,
        registry: FieldRegistry,
        depth: int,
        path: Tuple[str, ...],
    ) -> None:
        kind = decode_value(value)
        if kind is ValueKind.ENTRY_LINK:
            resolved = registry.resolve(self.client, value)
            if resolved is not None:
                self._collect(resolved, locale, options, registry, depth + 1, path)
        elif kind is ValueKind.SUB_ENTRY:
            self._collect(Entry.from_payload(value, fallback_id=fallback_id), locale, options, registry, depth + 1, path)

    def _has_existing_translation(self, localized: Dict[str, Any]) -> bool:
        return any(loc != self.source_locale for loc in localized)

    def _register_field(
        self,
        entry: Entry,
        field_name: str,
        value: Any,
        localized: Dict[str, Any],
        locale: str,
        options: CollectOptions,
        registry: FieldRegistry,
    ) -> bool:
        existing = self._has_existing_translation(localized)
        kind = decode_value(value)

        if kind is ValueKind.RICH_DOCUMENT and options.rich_text_leaves:
            leaves = extract(value)
            for leaf_path, text in leaves.items():
                candidate = TranslationEntry(
                    entry_id=entry.id,
                    field_name=f"{field_name}.{leaf_path}" if leaf_path else field_name,
                    value=text,
                    locale=locale,
                    classifier=self.classifier,
                    base_field=field_name,
                    parent_document=value,
                    leaf_path=leaf_path,
                    has_existing_translation=existing,
                )
                if not registry.register(entry, candidate):
                    return False
            if leaves:
                return True

        candidate = TranslationEntry(
            entry_id=entry.id,
            field_name=field_name,
            value=value,
            locale=locale,
            classifier=self.classifier,
            is_rich_text=kind is ValueKind.RICH_DOCUMENT,
            has_existing_translation=existing,
        )
        if not registry.register(entry, candidate):
            return False
        if candidate.possible_url and not self.classifier.is_skippable(field_name):
            logger.warning(
                "%s in entry %s might be a URL/path (%s); add it to skipFields if it should not be translated",
                field_name, entry.id, value,
            )
        if kind is ValueKind.OPAQUE and options.expand_objects:
            return self._register_object_leaves(entry, field_name, "", value, localized, locale, registry)
        return True

    def _register_object_leaves(
        self,
        entry: Entry,
        field_name: str,
        prefix: str,
        obj: Any,
        localized: Dict[str, Any],
        locale: str,
        registry: FieldRegistry,
    ) -> bool:
        if not isinstance(obj, dict):
            return True
        existing = self._has_existing_translation(localized)
        for key, val in obj.items():
            if not isinstance(val, str):
                continue
            sub_path = f"{prefix}.{key}" if prefix else key
            candidate = TranslationEntry(
                entry_id=entry.id,
                field_name=f"{field_name}{sub_path}" if prefix else f"{field_name}.{sub_path}",
                value=val,
                locale=locale,
                classifier=self.classifier,
                base_field=field_name,
                sub_path=sub_path,
                has_existing_translation=existing,
            )
            if not registry.register(entry, candidate):
                return False
        return True
