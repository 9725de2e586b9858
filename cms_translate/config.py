from __future__ import annotations

import argparse
import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .errors import ConfigurationMissing


# =============================
# Configuration defaults
# =============================

CONFIG_FILE_NAME: str = "translate.config.json"
ENV_FILES: Tuple[str, ...] = (".env.development", ".env")
API_BASE_URL: str = "https://api.contentful.com"
ENVIRONMENT_ID: str = "master"
SOURCE_LOCALE: str = "en"
MAX_DEPTH: int = 5
MAX_FIELDS: int = 100
SKIP_FIELDS: FrozenSet[str] = frozenset({"slug", "videoUrl", "linkTo", "pageType", "publicationLink"})
SUPPORTED_LOCALES: Tuple[str, ...] = ("de", "fr", "es", "nl")
ABSOLUTE_URL_PATTERN: str = r"^https?://[^\s]+$"
RELATIVE_PATH_PATTERN: str = r"^/[\w/-]+$"
ANCHOR_LINK_PATTERN: str = r"^#[\w-]+$"
FAILED_TRANSLATIONS_PATH: str = "logs/failed-translations"
TRANSLATOR: str = "deepl"  # "deepl", "google", "libretranslate", or "mock"
RATE_LIMIT_QPS: float = 8.0
LOG_LEVEL: str = "INFO"

EXAMPLE_CONFIG: str = """{
    "maxDepth": 5,
    "maxFields": 200,
    "startingContentType": "recipe",
    "logging": {
        "saveFailedTranslations": false,
        "failedTranslationsPath": "logs/failed-translations"
    },
    "skipFields": ["slug", "videoUrl"],
    "supportedLocales": ["de", "fr", "es"],
    "urlPatterns": {
        "absoluteUrl": "^https?://[^\\\\s]+$",
        "relativePath": "^/[\\\\w/-]+$",
        "anchorLink": "^#[\\\\w-]+$"
    }
}"""


# =============================
# Data classes
# =============================


@dataclass
class Config:
    space_id: str = ""
    access_token: str = ""
    environment_id: str = ENVIRONMENT_ID
    api_base_url: str = API_BASE_URL
    starting_content_type: str = ""
    source_locale: str = SOURCE_LOCALE
    supported_locales: Tuple[str, ...] = SUPPORTED_LOCALES
    max_depth: int = MAX_DEPTH
    max_fields: int = MAX_FIELDS
    skip_fields: FrozenSet[str] = SKIP_FIELDS
    absolute_url_pattern: re.Pattern = field(default_factory=lambda: re.compile(ABSOLUTE_URL_PATTERN))
    relative_path_pattern: re.Pattern = field(default_factory=lambda: re.compile(RELATIVE_PATH_PATTERN))
    anchor_link_pattern: re.Pattern = field(default_factory=lambda: re.compile(ANCHOR_LINK_PATTERN))
    save_failed_translations: bool = False
    failed_translations_path: str = FAILED_TRANSLATIONS_PATH
    translator: str = TRANSLATOR
    translator_api_key: str = ""
    translator_endpoint: str = ""
    rate_limit_qps: float = RATE_LIMIT_QPS
    dry_run: bool = True
    log_level: str = LOG_LEVEL


# =============================
# Logging setup
# =============================


def setup_logging(level: str) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(message)s",
    )


def redact(text: Any) -> str:
    s = str(text)
    if len(s) <= 4:
        return "***"
    return s[:2] + "***" + s[-2:]


# =============================
# .env loader (no external dependency)
# =============================


def load_env_file(path: str = ".env") -> None:
    """Load KEY=VALUE pairs from a .env file into os.environ if not already set.

    Lines starting with '#' are comments. Quotes around values are stripped.
    """
    if not os.path.exists(path):
        return
    try:
        with open(path, "r", encoding="utf-8") as f:
            for raw_line in f:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
    except OSError as exc:
        logging.debug("Could not load %s: %s", path, exc)


# =============================
# translate.config.json
# =============================


def read_config_file(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise ConfigurationMissing(
            f"Missing configuration file {path}. Create a {CONFIG_FILE_NAME} in your project root, e.g.:\n"
            f"{EXAMPLE_CONFIG}"
        )
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigurationMissing(f"Error loading configuration {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationMissing(f"Configuration {path} must be a JSON object")
    return data


def _compile(pattern: Any, default: str, name: str) -> re.Pattern:
    try:
        return re.compile(str(pattern or default))
    except re.error as exc:
        raise ConfigurationMissing(f"Invalid urlPatterns.{name} regex {pattern!r}: {exc}") from exc


def _positive_int(value: Any, default: int, name: str) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationMissing(f"{name} must be an integer, got {value!r}") from exc
    if number < 1:
        raise ConfigurationMissing(f"{name} must be >= 1, got {number}")
    return number


def config_from_mapping(data: Dict[str, Any]) -> Config:
    """Build a Config from the translate.config.json structure (credentials left empty)."""
    url_patterns = data.get("urlPatterns") or {}
    log_cfg = data.get("logging") or {}
    skip = data.get("skipFields")
    locales = data.get("supportedLocales")
    return Config(
        starting_content_type=str(data.get("startingContentType") or ""),
        source_locale=str(data.get("sourceLocale") or SOURCE_LOCALE),
        supported_locales=tuple(str(loc) for loc in locales) if locales else SUPPORTED_LOCALES,
        max_depth=_positive_int(data.get("maxDepth"), MAX_DEPTH, "maxDepth"),
        max_fields=_positive_int(data.get("maxFields"), MAX_FIELDS, "maxFields"),
        skip_fields=frozenset(str(s) for s in skip) if skip is not None else SKIP_FIELDS,
        absolute_url_pattern=_compile(url_patterns.get("absoluteUrl"), ABSOLUTE_URL_PATTERN, "absoluteUrl"),
        relative_path_pattern=_compile(url_patterns.get("relativePath"), RELATIVE_PATH_PATTERN, "relativePath"),
        anchor_link_pattern=_compile(url_patterns.get("anchorLink"), ANCHOR_LINK_PATTERN, "anchorLink"),
        save_failed_translations=bool(log_cfg.get("saveFailedTranslations", False)),
        failed_translations_path=str(log_cfg.get("failedTranslationsPath") or FAILED_TRANSLATIONS_PATH),
    )


def _arg(args: Optional[argparse.Namespace], name: str) -> Any:
    return getattr(args, name, None) if args is not None else None


def load_config(args: Optional[argparse.Namespace] = None, require_credentials: bool = True) -> Config:
    """Load configuration: CLI flags override environment, environment overrides the config file."""
    for env_file in ENV_FILES:
        load_env_file(env_file)

    path = str(_arg(args, "config") or os.getenv("CMS_TRANSLATE_CONFIG") or CONFIG_FILE_NAME)
    cfg = config_from_mapping(read_config_file(path))

    content_type = _arg(args, "content_type")
    if content_type:
        cfg.starting_content_type = str(content_type)

    cfg.space_id = str(os.getenv("CONTENTFUL_SPACE_ID") or "")
    cfg.access_token = str(os.getenv("CONTENTFUL_MANAGEMENT_TOKEN") or "")
    cfg.environment_id = str(os.getenv("CONTENTFUL_ENVIRONMENT") or ENVIRONMENT_ID)
    cfg.api_base_url = str(os.getenv("CONTENTFUL_API_BASE_URL") or API_BASE_URL)
    cfg.translator = str(_arg(args, "translator") or os.getenv("CMS_TRANSLATOR") or TRANSLATOR).lower()
    cfg.translator_api_key = str(
        _arg(args, "translator_api_key")
        or os.getenv("CMS_TRANSLATOR_API_KEY")
        or os.getenv("DEEPL_API_KEY")
        or ""
    )
    cfg.translator_endpoint = str(_arg(args, "translator_endpoint") or os.getenv("CMS_TRANSLATOR_ENDPOINT") or "")
    cfg.rate_limit_qps = float(os.getenv("CMS_RATE_LIMIT_QPS") or RATE_LIMIT_QPS)
    cfg.log_level = str(_arg(args, "log_level") or os.getenv("CMS_LOG_LEVEL") or LOG_LEVEL)

    write = _arg(args, "write")
    if write:
        cfg.dry_run = False
    else:
        cfg.dry_run = (os.getenv("CMS_DRY_RUN") or "true").lower() in {"1", "true", "yes"}

    if require_credentials:
        missing = []
        if not cfg.space_id:
            missing.append("CONTENTFUL_SPACE_ID")
        if not cfg.access_token:
            missing.append("CONTENTFUL_MANAGEMENT_TOKEN")
        if cfg.translator != "mock" and cfg.translator != "libretranslate" and not cfg.translator_api_key:
            missing.append("DEEPL_API_KEY (or CMS_TRANSLATOR_API_KEY)")
        if missing:
            raise ConfigurationMissing("Missing environment variables: " + ", ".join(missing))
        if not cfg.starting_content_type:
            raise ConfigurationMissing('No starting content type configured. Set "startingContentType" in the config file.')

    return cfg
