from __future__ import annotations

import copy
import json
import logging
import os
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .client import Entry
from .config import Config
from .errors import FieldNotFoundOnWrite, FieldWriteError, LengthExceeded, ValidationFailure

logger = logging.getLogger(__name__)

# Contentful limits for short and long text fields
FIELD_TYPE_MAX_LENGTH: Dict[str, int] = {"Symbol": 255, "Text": 50000}

PATH_TOKEN_RE = re.compile(r"\[(\d+)\]|\.?([^.\[\]]+)")


# =============================
# Data classes
# =============================


@dataclass
class FieldUpdate:
    field_name: str
    translation: Any
    kind: str = "text"  # "text" or "richText"
    original_text: Any = None
    base_field: str = ""
    sub_path: str = ""

    def __post_init__(self) -> None:
        if not self.base_field:
            self.base_field = self.field_name


@dataclass
class FieldFailure:
    field_name: Optional[str]
    error: str
    translation: Any = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.error}
        if self.field_name is not None:
            out["fieldName"] = self.field_name
        if self.translation is not None:
            out["translation"] = self.translation
        return out


@dataclass
class ReconcileResult:
    has_changes: bool = False
    failures: Dict[str, List[FieldFailure]] = field(default_factory=dict)
    updated_entries: List[str] = field(default_factory=list)
    failure_log_path: Optional[str] = None


Updates = Dict[str, Dict[str, FieldUpdate]]


# =============================
# Path helpers
# =============================


def set_at_path(container: Any, sub_path: str, value: Any) -> None:
    """Assign ``value`` inside nested dicts/lists, e.g. ``"[2].label"`` or ``"seo.description"``."""
    tokens: List[Any] = []
    for index, key in PATH_TOKEN_RE.findall(sub_path):
        tokens.append(int(index) if index else key)
    if not tokens:
        raise KeyError(sub_path)
    target = container
    for token in tokens[:-1]:
        target = target[token]
    last = tokens[-1]
    if isinstance(last, int) and not isinstance(target, list):
        raise KeyError(sub_path)
    if isinstance(last, str) and not isinstance(target, dict):
        raise KeyError(sub_path)
    target[last] = value


# =============================
# Reconciler
# =============================


class Reconciler:
    """Write translated values back onto entries and save them as drafts."""

    def __init__(self, config: Config, client: Any) -> None:
        self.client = client
        self.source_locale = config.source_locale
        self.save_failed_translations = config.save_failed_translations
        self.failed_translations_path = config.failed_translations_path

    def apply(
        self,
        root_entry: Entry,
        updates: Updates,
        locale: str,
        prior_failures: Optional[Dict[str, List[FieldFailure]]] = None,
    ) -> ReconcileResult:
        """Write ``updates`` for ``locale`` and save each touched entry as a draft.

        ``prior_failures`` (e.g. fields whose translation failed) are merged into the
        result so they end up in the same failure log.
        """
        result = ReconcileResult()
        content_types: Dict[str, Dict[str, Any]] = {}

        for entry_id, field_updates in updates.items():
            try:
                logger.info("Updating entry: %s", entry_id)
                target = root_entry if entry_id == root_entry.id else self.client.get_entry(entry_id)
                if target is None:
                    logger.error("Could not find entry %s", entry_id)
                    result.failures[entry_id] = [FieldFailure(None, "Entry not found")]
                    continue

                entry_failures: List[FieldFailure] = []
                entry_changed = False
                for update in field_updates.values():
                    try:
                        self._write_field(target, update, locale, content_types)
                        entry_changed = True
                        logger.info("Updated %s", update.field_name)
                    except Exception as exc:  # noqa: BLE001
                        logger.error("Error updating field %s in entry %s: %s", update.field_name, entry_id, exc)
                        entry_failures.append(FieldFailure(update.field_name, str(exc), update.translation))

                if entry_changed and self._save(target, field_updates, entry_failures):
                    result.has_changes = True
                    result.updated_entries.append(entry_id)

                if entry_failures:
                    result.failures[entry_id] = entry_failures
            except Exception as exc:  # noqa: BLE001
                logger.error("Error processing entry %s: %s", entry_id, exc)
                result.failures[entry_id] = [FieldFailure(None, str(exc))]

        for entry_id, items in (prior_failures or {}).items():
            result.failures.setdefault(entry_id, []).extend(items)

        if result.failures:
            result.failure_log_path = self.save_failure_log(result.failures, locale)
        return result

    def _field_schema(self, content_type_id: str, field_id: str, cache: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if content_type_id not in cache:
            cache[content_type_id] = self.client.get_content_type(content_type_id)
        for item in cache[content_type_id].get("fields") or []:
            if item.get("id") == field_id:
                return item
        return None

    @staticmethod
    def max_length(schema: Optional[Dict[str, Any]]) -> Optional[int]:
        if not schema:
            return None
        limit = FIELD_TYPE_MAX_LENGTH.get(str(schema.get("type")))
        if limit is None:
            return None
        for validation in schema.get("validations") or []:
            size_max = (validation.get("size") or {}).get("max") if isinstance(validation, dict) else None
            if isinstance(size_max, int):
                limit = min(limit, size_max)
        return limit

    def _write_field(self, target: Entry, update: FieldUpdate, locale: str, content_types: Dict[str, Dict[str, Any]]) -> None:
        if update.base_field not in target.fields:
            raise FieldNotFoundOnWrite(update.base_field, target.id, target.content_type)
        localized = target.fields[update.base_field]

        if update.sub_path:
            # Build on the existing target value, seeded from the source locale
            current = localized.get(locale)
            value = copy.deepcopy(current if current is not None else localized.get(self.source_locale))
            try:
                set_at_path(value, update.sub_path, update.translation)
            except (KeyError, IndexError, TypeError) as exc:
                raise FieldWriteError(update.field_name, f"Path {update.sub_path} not found in field {update.base_field}") from exc
            localized[locale] = value
            return

        if isinstance(update.translation, str):
            schema = self._field_schema(target.content_type, update.base_field, content_types)
            limit = self.max_length(schema)
            if limit is not None and len(update.translation) > limit:
                raise LengthExceeded(update.field_name, limit, len(update.translation))
        if update.kind == "richText":
            logger.debug("Preserving rich text structure for %s", update.field_name)
        localized[locale] = update.translation

    def _save(self, target: Entry, field_updates: Dict[str, FieldUpdate], entry_failures: List[FieldFailure]) -> bool:
        try:
            target.update()
            logger.info("Saved changes as draft for entry %s", target.id)
            return True
        except ValidationFailure as exc:
            logger.error("Error saving changes for entry %s: %s", target.id, exc)
            for error in exc.errors:
                path = error.get("path") or []
                failed_field = str(path[1]) if len(path) > 1 else None
                entry_failures.append(FieldFailure(
                    failed_field,
                    str(error.get("details") or error.get("name") or "Validation error"),
                    self._attempted_translation(field_updates, failed_field),
                ))
        except Exception as exc:  # noqa: BLE001
            logger.error("Error saving changes for entry %s: %s", target.id, exc)
            entry_failures.append(FieldFailure(None, str(exc)))
        self._rollback(target)
        return False

    @staticmethod
    def _attempted_translation(field_updates: Dict[str, FieldUpdate], field_id: Optional[str]) -> Any:
        """Translation(s) written into ``field_id``; synthetic leaves are matched by their base field."""
        if not field_id:
            return None
        if field_id in field_updates:
            return field_updates[field_id].translation
        leaves = {name: u.translation for name, u in field_updates.items() if u.base_field == field_id}
        if len(leaves) == 1:
            return next(iter(leaves.values()))
        return leaves or None

    def _rollback(self, target: Entry) -> None:
        try:
            fresh = self.client.get_entry(target.id)
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not refetch entry %s to revert changes: %s", target.id, exc)
            return
        if fresh is None:
            logger.error("Could not refetch entry %s to revert changes", target.id)
            return
        logger.warning("Reverting changes for entry %s", target.id)
        target.fields.clear()
        target.fields.update(copy.deepcopy(fresh.fields))
        if fresh.version is not None:
            target.version = fresh.version

    def save_failure_log(self, failures: Dict[str, List[FieldFailure]], locale: str) -> Optional[str]:
        if not self.save_failed_translations:
            return None
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "locale": locale,
            "updates": {entry_id: [f.to_dict() for f in items] for entry_id, items in failures.items()},
        }
        path = os.path.join(
            self.failed_translations_path,
            f"failed-translations-{locale}-{int(time.time() * 1000)}.json",
        )
        try:
            os.makedirs(self.failed_translations_path, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as exc:
            logger.error("Error saving failed translations log: %s", exc)
            return None
        logger.warning("Some translations failed. Failed updates have been saved to %s", path)
        return path
