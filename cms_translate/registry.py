from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .classifier import Classifier
from .client import Entry
from .errors import EntryResolutionFailure, TranslationFailure
from .rich_text import TranslateFn, extract, translate_and_reconstruct
from .values import ValueKind, decode_value, link_id

logger = logging.getLogger(__name__)


# =============================
# Translation entry
# =============================


@dataclass
class TranslationEntry:
    """One field, synthetic sub-property or rich-text leaf awaiting translation into ``locale``.

    ``field_name`` is the display/registration key. ``base_field`` is the entry
    field it is written back into and ``sub_path`` the location inside that
    field's value (``"description"``, ``"[2].label"``) for synthetic leaves.
    Rich-text leaves carry their ``parent_document`` and ``leaf_path``.
    """

    entry_id: str
    field_name: str
    value: Any
    locale: str
    classifier: Classifier = field(repr=False, compare=False)
    base_field: str = ""
    sub_path: str = ""
    is_rich_text: bool = False
    parent_document: Optional[Dict[str, Any]] = field(default=None, repr=False)
    leaf_path: str = ""
    has_existing_translation: bool = False
    translation: Any = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.base_field:
            self.base_field = self.field_name

    @property
    def is_rich_text_leaf(self) -> bool:
        return self.parent_document is not None

    @property
    def possible_url(self) -> bool:
        return isinstance(self.value, str) and self.classifier.is_possible_url(self.value.strip())

    def is_skippable(self) -> bool:
        leaf_key = self.sub_path.rsplit(".", 1)[-1] if self.sub_path else ""
        return self.classifier.is_skippable(self.base_field) or (
            bool(leaf_key) and self.classifier.is_skippable(leaf_key)
        )

    def is_translatable_content(self) -> bool:
        kind = decode_value(self.value)
        if kind is ValueKind.RICH_DOCUMENT:
            return self.is_rich_text
        if kind is ValueKind.TEXT:
            return self.classifier.is_translatable_text(self.value)
        return False

    def should_translate(self) -> bool:
        return (
            not self.has_existing_translation
            and not self.is_skippable()
            and self.is_translatable_content()
        )

    def translate(self, translate_fn: TranslateFn) -> bool:
        if not self.should_translate():
            return False
        try:
            if self.is_rich_text:
                leaves = extract(self.value)
                document, failed = translate_and_reconstruct(self.value, self.locale, translate_fn)
                if leaves and len(failed) == len(leaves):
                    raise TranslationFailure(self.entry_id, self.field_name, "No translation returned for any rich text leaf")
                self.translation = document
                if failed:
                    self.error = f"{len(failed)} of {len(leaves)} rich text leaves not translated: {', '.join(failed)}"
            else:
                translated = translate_fn(self.value, self.locale)
                if translated is None:
                    raise TranslationFailure(self.entry_id, self.field_name, "No translation returned")
                self.translation = translated
        except Exception as exc:  # noqa: BLE001
            logger.error("Error translating field %s in entry %s: %s", self.field_name, self.entry_id, exc)
            self.translation = None
            self.error = str(exc)
            return False
        return True


# =============================
# Field registry
# =============================


class FieldRegistry:
    """Fields discovered during one traversal, keyed by entry id then field name."""

    def __init__(self, max_fields: int) -> None:
        self.max_fields = max_fields
        self.translation_entries: Dict[str, Dict[str, TranslationEntry]] = {}
        self.resolved_entries: Dict[str, Entry] = {}
        self.discovered: List[TranslationEntry] = []
        self.total_fields = 0
        self._cap_logged = False

    @property
    def is_full(self) -> bool:
        return self.total_fields >= self.max_fields

    def register(self, entry: Entry, candidate: TranslationEntry) -> bool:
        """Store ``candidate``. Returns False once the field cap has been reached."""
        if self.is_full:
            if not self._cap_logged:
                logger.warning("Max fields limit (%d) reached - skipping further fields", self.max_fields)
                self._cap_logged = True
            return False
        fields = self.translation_entries.setdefault(entry.id, {})
        self.resolved_entries[entry.id] = entry
        if candidate.field_name in fields:
            # Same entry reached again through another branch
            return True
        fields[candidate.field_name] = candidate
        self.discovered.append(candidate)
        self.total_fields += 1
        return True

    def resolve(self, client: Any, link: Any) -> Optional[Entry]:
        entry_id = link_id(link)
        if entry_id is None:
            return None
        if entry_id in self.resolved_entries:
            return self.resolved_entries[entry_id]
        try:
            resolved = client.get_entry(entry_id)
        except EntryResolutionFailure as exc:
            logger.error("Error resolving entry %s: %s", entry_id, exc)
            return None
        if resolved is None:
            logger.warning("Linked entry %s not found - skipping branch", entry_id)
            return None
        self.resolved_entries[entry_id] = resolved
        return resolved

    def get_translation_entry(self, entry_id: str, field_name: str) -> Optional[TranslationEntry]:
        return self.translation_entries.get(entry_id, {}).get(field_name)

    def get_resolved_entry(self, entry_id: str) -> Optional[Entry]:
        return self.resolved_entries.get(entry_id)

    def all_entries(self) -> List[TranslationEntry]:
        """Every registered candidate in discovery (depth-first) order."""
        return list(self.discovered)

    def translatable_entries(self) -> List[TranslationEntry]:
        return [te for te in self.all_entries() if te.should_translate()]
