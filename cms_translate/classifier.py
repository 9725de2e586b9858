from __future__ import annotations

from enum import Enum
from typing import Any

from .config import Config
from .values import ValueKind, decode_value

MIN_TEXT_LENGTH = 3


class TextStatus(Enum):
    TRANSLATABLE = "translatable"
    POSSIBLE_URL = "possible URL"
    ABSOLUTE_URL = "absolute URL"
    RELATIVE_PATH = "relative path"
    ANCHOR_LINK = "anchor link"
    TOO_SHORT = "too short"
    EMPTY = "empty"

    @property
    def translatable(self) -> bool:
        return self in (TextStatus.TRANSLATABLE, TextStatus.POSSIBLE_URL)


class Classifier:
    """Pure predicates deciding what a field value is and whether it may be translated."""

    def __init__(self, config: Config) -> None:
        self.skip_fields = frozenset(config.skip_fields)
        self.absolute_url = config.absolute_url_pattern
        self.relative_path = config.relative_path_pattern
        self.anchor_link = config.anchor_link_pattern

    def is_skippable(self, field_name: str) -> bool:
        return field_name in self.skip_fields

    def is_asset_reference(self, value: Any) -> bool:
        return decode_value(value) is ValueKind.ASSET_LINK

    def is_entry_link(self, value: Any) -> bool:
        return decode_value(value) is ValueKind.ENTRY_LINK

    def is_rich_document(self, value: Any) -> bool:
        return decode_value(value) is ValueKind.RICH_DOCUMENT

    def is_absolute_url(self, text: str) -> bool:
        return self.absolute_url.search(text) is not None

    def is_relative_path(self, text: str) -> bool:
        return self.relative_path.search(text) is not None

    def is_anchor_link(self, text: str) -> bool:
        return self.anchor_link.search(text) is not None

    @staticmethod
    def is_possible_url(text: str) -> bool:
        return "/" in text and "-" in text and not any(ch.isspace() for ch in text)

    def classify_text(self, text: str) -> TextStatus:
        stripped = text.strip()
        if not stripped:
            return TextStatus.EMPTY
        if self.is_absolute_url(stripped):
            return TextStatus.ABSOLUTE_URL
        if self.is_relative_path(stripped):
            return TextStatus.RELATIVE_PATH
        if self.is_anchor_link(stripped):
            return TextStatus.ANCHOR_LINK
        if len(stripped) < MIN_TEXT_LENGTH:
            return TextStatus.TOO_SHORT
        if self.is_possible_url(stripped):
            return TextStatus.POSSIBLE_URL
        return TextStatus.TRANSLATABLE

    def is_translatable_text(self, text: str) -> bool:
        return self.classify_text(text).translatable

    def is_translatable(self, value: Any) -> bool:
        kind = decode_value(value)
        if kind is ValueKind.TEXT:
            return self.is_translatable_text(value)
        return kind is ValueKind.RICH_DOCUMENT
