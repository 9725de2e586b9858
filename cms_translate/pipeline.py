"""Plan / translate / apply phases for one (entry, locale) pair and the run matrix.

The plan phase is side-effect free apart from fetching linked entries. Callers
(CLI, Streamlit UI) choose which candidates to translate through ``select`` and
approve the write through ``confirm`` between the phases.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .classifier import Classifier
from .client import Entry
from .config import Config
from .errors import ConfigurationMissing
from .reconciler import FieldFailure, FieldUpdate, ReconcileResult, Reconciler, Updates
from .registry import FieldRegistry, TranslationEntry
from .rich_text import TranslateFn, preview_text, reconstruct
from .tree import render_content_tree
from .walker import CollectOptions, GraphWalker

logger = logging.getLogger(__name__)

SelectFn = Callable[["Plan"], Sequence[TranslationEntry]]
ConfirmFn = Callable[["Plan", Updates], bool]


# =============================
# Data classes
# =============================


@dataclass
class Plan:
    entry: Entry
    locale: str
    registry: FieldRegistry
    tree: List[str] = field(default_factory=list)

    @property
    def candidates(self) -> List[TranslationEntry]:
        return self.registry.all_entries()

    @property
    def translatable(self) -> List[TranslationEntry]:
        return self.registry.translatable_entries()


@dataclass
class PageResult:
    plan: Plan
    translated: List[TranslationEntry] = field(default_factory=list)
    translation_failures: Dict[str, List[FieldFailure]] = field(default_factory=dict)
    updates: Updates = field(default_factory=dict)
    reconcile: Optional[ReconcileResult] = None
    skipped: str = ""


@dataclass
class Summary:
    pages_processed: int = 0
    fields_discovered: int = 0
    fields_translated: int = 0
    entries_updated: int = 0
    field_failures: int = 0
    warnings: List[str] = None  # type: ignore

    def __post_init__(self) -> None:
        if self.warnings is None:
            self.warnings = []


# =============================
# Plan phase
# =============================


def plan_entry(
    entry: Entry,
    locale: str,
    config: Config,
    client: Any,
    options: Optional[CollectOptions] = None,
    with_tree: bool = False,
) -> Plan:
    classifier = Classifier(config)
    walker = GraphWalker(config, classifier, client)
    logger.info("Analyzing entry %s (content type: %s, title: %s)", entry.id, entry.content_type, entry.title(config.source_locale))
    registry = walker.collect(entry, locale, options)
    plan = Plan(entry=entry, locale=locale, registry=registry)
    if with_tree:
        plan.tree = render_content_tree(entry, registry, classifier, client, config.max_depth, config.source_locale)
    logger.info(
        "Discovered %d fields, %d to translate into %s",
        len(plan.candidates), len(plan.translatable), locale,
    )
    return plan


# =============================
# Apply phase
# =============================


def translate_entries(selected: Iterable[TranslationEntry], translate_fn: TranslateFn) -> List[TranslationEntry]:
    """Translate each selected entry in order; returns the ones that produced a translation."""
    translated: List[TranslationEntry] = []
    for te in selected:
        if te.translate(translate_fn):
            translated.append(te)
            logger.info(
                "Translating '%s' to '%s' [%s]",
                preview_text(te.value, 60), preview_text(te.translation, 60), te.locale,
            )
        elif te.error:
            logger.warning("Could not translate %s (%s): %s", te.field_name, te.entry_id, te.error)
    return translated


def translation_failures(selected: Iterable[TranslationEntry]) -> Dict[str, List[FieldFailure]]:
    """Failed and partly failed translations, with whatever was translated for manual recovery."""
    failures: Dict[str, List[FieldFailure]] = {}
    for te in selected:
        if te.error:
            failures.setdefault(te.entry_id, []).append(FieldFailure(te.field_name, te.error, te.translation))
    return failures


def build_updates(translated: Iterable[TranslationEntry]) -> Updates:
    """Group translations per entry and field, splicing rich-text leaves into their parent document."""
    updates: Updates = {}
    leaves: Dict[tuple, Dict[str, Any]] = {}
    parents: Dict[tuple, Dict[str, Any]] = {}

    for te in translated:
        if te.is_rich_text_leaf:
            key = (te.entry_id, te.base_field)
            leaves.setdefault(key, {})[te.leaf_path] = te.translation
            parents[key] = te.parent_document  # type: ignore[assignment]
            continue
        updates.setdefault(te.entry_id, {})[te.field_name] = FieldUpdate(
            field_name=te.field_name,
            translation=te.translation,
            kind="richText" if te.is_rich_text else "text",
            original_text=te.value,
            base_field=te.base_field,
            sub_path=te.sub_path,
        )

    for (entry_id, base_field), translations in leaves.items():
        parent = parents[(entry_id, base_field)]
        updates.setdefault(entry_id, {})[base_field] = FieldUpdate(
            field_name=base_field,
            translation=reconstruct(parent, translations),
            kind="richText",
            original_text=parent,
        )
    return updates


def process_page(
    page: Entry,
    locale: str,
    config: Config,
    client: Any,
    translate_fn: TranslateFn,
    select: Optional[SelectFn] = None,
    confirm: Optional[ConfirmFn] = None,
    options: Optional[CollectOptions] = None,
    show_tree: bool = False,
) -> PageResult:
    logger.info("=== Processing page: %s [%s] ===", page.title(config.source_locale), locale)
    plan = plan_entry(page, locale, config, client, options, with_tree=show_tree)
    result = PageResult(plan=plan)
    for line in plan.tree:
        logger.info("%s", line)

    if not plan.translatable:
        logger.info("No fields requiring translation.")
        result.skipped = "nothing to translate"
        return result

    selected = list(select(plan)) if select is not None else plan.translatable
    if not selected:
        logger.info("No fields selected for translation. Skipping...")
        result.skipped = "nothing selected"
        return result

    result.translated = translate_entries(selected, translate_fn)
    result.translation_failures = translation_failures(selected)
    result.updates = build_updates(result.translated)
    if not result.updates:
        logger.info("No translations produced.")
        result.skipped = "no translations"
        return result

    if config.dry_run:
        logger.info("Dry run: %d entries would be updated", len(result.updates))
        result.skipped = "dry run"
        return result

    if confirm is not None and not confirm(plan, result.updates):
        logger.info("Translation skipped.")
        result.skipped = "not confirmed"
        return result

    reconciler = Reconciler(config, client)
    result.reconcile = reconciler.apply(page, result.updates, locale, result.translation_failures)
    if result.reconcile.has_changes:
        logger.info("Translations saved as draft. Please review the translations before publishing.")
    return result


# =============================
# Run matrix
# =============================


def run(
    config: Config,
    client: Any,
    translate_fn: TranslateFn,
    pages: Sequence[Entry],
    locales: Sequence[str],
    select: Optional[SelectFn] = None,
    confirm: Optional[ConfirmFn] = None,
    options: Optional[CollectOptions] = None,
    show_tree: bool = False,
) -> Summary:
    summary = Summary()
    total = len(pages) * len(locales)
    counter = 0
    for page in pages:
        for locale in locales:
            counter += 1
            logger.info("Progress: Page %d of %d", counter, total)
            try:
                result = process_page(page, locale, config, client, translate_fn, select, confirm, options, show_tree)
            except (ConfigurationMissing, PermissionError):
                raise
            except Exception as exc:  # noqa: BLE001
                logger.error("Error processing page %s [%s]: %s", page.id, locale, exc)
                summary.warnings.append(f"{page.id} [{locale}]: {exc}")
                continue
            summary.pages_processed += 1
            summary.fields_discovered += len(result.plan.candidates)
            summary.fields_translated += len(result.translated)
            failures = result.reconcile.failures if result.reconcile else result.translation_failures
            summary.field_failures += sum(len(items) for items in failures.values())
            if result.reconcile:
                summary.entries_updated += len(result.reconcile.updated_entries)
    return summary


def print_summary(summary: Summary) -> None:
    logger.info("=== Summary ===")
    lines = [
        ("Pages processed", summary.pages_processed),
        ("Fields discovered", summary.fields_discovered),
        ("Fields translated", summary.fields_translated),
        ("Entries updated", summary.entries_updated),
        ("Field failures", summary.field_failures),
        ("Warnings", len(summary.warnings)),
    ]
    width = max(len(k) for k, _ in lines)
    for k, v in lines:
        print(f"{k:<{width}} : {v}")
    if summary.warnings:
        print("Warnings:")
        for w in summary.warnings:
            print(f" - {w}")
