"""
Command line entry point for the CMS entry translator.

For every entry of the starting content type (or the entries given with
--entry) and every target locale, this walks the entry and the entries it
links to, collects the translatable text fields, translates them and saves
the changed entries as drafts. Without --write it only plans and translates,
printing a concise summary.

    cms-translate --locale de --tree
    cms-translate --entry 4xYz --locale de --locale fr --write

Python 3.10+
Dependencies: requests
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from .client import ContentfulClient, Entry
from .config import Config, load_config, redact, setup_logging
from .errors import ConfigurationMissing
from .pipeline import Plan, print_summary, run
from .reconciler import Updates
from .rich_text import preview_text
from .translator import PROVIDERS, Translator
from .walker import CollectOptions

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Translate CMS entries and save them as drafts")
    p.add_argument("--config", help="Path to translate.config.json", required=False)
    p.add_argument("--content-type", help="Content type of the entries to translate (overrides startingContentType)", required=False)
    p.add_argument("--entry", "-e", action="append", help="Entry ID to translate (repeatable; default: all entries of the content type)")
    p.add_argument("--locale", "-l", action="append", help="Target locale (repeatable; default: all supported locales)")
    p.add_argument("--write", action="store_true", help="Save translations as drafts (default is dry-run)")
    p.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation before saving")
    p.add_argument("--translator", choices=list(PROVIDERS), help="Translation provider", required=False)
    p.add_argument("--translator-api-key", help="Translator API key for the chosen provider", required=False)
    p.add_argument("--translator-endpoint", help="Translator endpoint URL (e.g., LibreTranslate instance)", required=False)
    p.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)", required=False)
    p.add_argument("--rich-text-leaves", action="store_true", help="Review rich text paragraph by paragraph")
    p.add_argument("--tree", action="store_true", help="Print the content tree of each entry")
    return p


def resolve_locales(requested: Optional[Sequence[str]], config: Config) -> List[str]:
    if not requested:
        return list(config.supported_locales)
    locales: List[str] = []
    for locale in requested:
        if locale not in config.supported_locales:
            logger.warning("Locale %s is not in supportedLocales; skipping", locale)
            continue
        locales.append(locale)
    return locales


def fetch_pages(client: ContentfulClient, config: Config, entry_ids: Optional[Sequence[str]]) -> List[Entry]:
    if entry_ids:
        pages: List[Entry] = []
        for entry_id in entry_ids:
            entry = client.get_entry(entry_id)
            if entry is None:
                logger.warning("Entry %s not found; skipping", entry_id)
                continue
            pages.append(entry)
        return pages
    pages = client.get_entries(config.starting_content_type)
    logger.info("Found %d %s entries", len(pages), config.starting_content_type)
    return pages


def confirm_on_console(plan: Plan, updates: Updates) -> bool:
    print(f"\nTranslations for {plan.entry.title()} [{plan.locale}]:")
    for entry_id, fields in updates.items():
        for name, update in fields.items():
            print(f"  {name} ({entry_id}): {preview_text(update.translation)}")
    answer = input("Would you like to proceed with saving the translations as draft? [Y/n] ")
    return answer.strip().lower() in {"", "y", "yes"}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    try:
        cfg = load_config(args, require_credentials=True)
    except ConfigurationMissing as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    setup_logging(cfg.log_level)

    if cfg.dry_run:
        logger.info("Running in DRY RUN mode (no writes)")
    else:
        logger.info("Running in WRITE mode (translations are saved as drafts)")

    translator = Translator(
        cfg.translator, cfg.translator_api_key, cfg.rate_limit_qps, cfg.translator_endpoint, cfg.source_locale
    )
    client = ContentfulClient(cfg.space_id, cfg.access_token, cfg.environment_id, cfg.api_base_url)
    logger.info("Using space %s (%s)", redact(cfg.space_id), cfg.environment_id)

    try:
        pages = fetch_pages(client, cfg, args.entry)
    except PermissionError as exc:
        logger.error("%s", exc)
        return 1
    locales = resolve_locales(args.locale, cfg)
    if not pages or not locales:
        logger.warning("Nothing to do: %d entries, %d locales", len(pages), len(locales))
        return 0

    options = CollectOptions(rich_text_leaves=args.rich_text_leaves)
    confirm = None if args.yes else confirm_on_console
    try:
        summary = run(cfg, client, translator, pages, locales, confirm=confirm, options=options, show_tree=args.tree)
    except PermissionError as exc:
        logger.error("%s", exc)
        return 1

    print_summary(summary)
    if not cfg.dry_run and summary.entries_updated:
        logger.info("All changes have been saved as drafts. Please review the translations before publishing.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
