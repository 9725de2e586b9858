"""Exception types raised by the translation tool.

Only ``ConfigurationMissing`` is fatal to a run. Everything else is scoped to a
branch, an entry or a single field and is recorded rather than propagated past
the per-entry loop.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class TranslationToolError(Exception):
    pass


class ConfigurationMissing(TranslationToolError):
    """Required configuration (file, credential or setting) is absent or invalid."""


class EntryResolutionFailure(TranslationToolError):
    def __init__(self, entry_id: str, message: str = "") -> None:
        self.entry_id = entry_id
        super().__init__(message or f"Could not resolve entry {entry_id}")


class TranslationFailure(TranslationToolError):
    def __init__(self, entry_id: str, field_name: str, message: str = "") -> None:
        self.entry_id = entry_id
        self.field_name = field_name
        super().__init__(message or f"Translation failed for {field_name} in entry {entry_id}")


class FieldWriteError(TranslationToolError):
    def __init__(self, field_name: str, message: str) -> None:
        self.field_name = field_name
        super().__init__(message)


class FieldNotFoundOnWrite(FieldWriteError):
    def __init__(self, field_name: str, entry_id: str, content_type: str = "unknown") -> None:
        self.entry_id = entry_id
        super().__init__(
            field_name,
            f"Field {field_name} not found in entry {entry_id} (content type: {content_type})",
        )


class LengthExceeded(FieldWriteError):
    def __init__(self, field_name: str, limit: int, actual: int) -> None:
        self.limit = limit
        self.actual = actual
        super().__init__(
            field_name,
            f"Translation exceeds maximum length of {limit} characters ({actual})",
        )


class SaveFailure(TranslationToolError):
    def __init__(self, entry_id: str, message: str = "") -> None:
        self.entry_id = entry_id
        super().__init__(message or f"Saving entry {entry_id} failed")


class ValidationFailure(SaveFailure):
    """The content service rejected a save with per-field validation errors.

    ``errors`` mirrors the service payload: a list of ``{"path": [...], "details": str}``
    where ``path[1]`` is the field id.
    """

    def __init__(self, entry_id: str, errors: Optional[List[Dict[str, Any]]] = None, message: str = "") -> None:
        self.errors: List[Dict[str, Any]] = list(errors or [])
        super().__init__(entry_id, message or f"Validation failed for entry {entry_id}")
