from __future__ import annotations

import html
import logging
import re
import time
from typing import Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

PROVIDERS = ("mock", "deepl", "google", "libretranslate")
MIN_TRANSLATE_LENGTH = 3


# =============================
# Rate limiter
# =============================


class RateLimiter:
    def __init__(self, qps: float) -> None:
        self.qps = max(0.01, float(qps))
        self.min_interval = 1.0 / self.qps
        self._last_time: float = 0.0

    def wait(self) -> None:
        now = time.time()
        elapsed = now - self._last_time
        to_sleep = self.min_interval - elapsed
        if to_sleep > 0:
            time.sleep(to_sleep)
        self._last_time = time.time()


# =============================
# Token preservation utilities
# =============================


TOKEN_PATTERNS: List[re.Pattern[str]] = [
    re.compile(r"\{\{[^}]+\}\}"),  # handlebars-like
    re.compile(r"%[A-Za-z0-9_]+%"),  # %TOKEN%
    re.compile(r"#[A-Za-z0-9_]+#"),  # #TOKEN#
]


def extract_tokens(text: str) -> Tuple[str, Dict[str, str]]:
    """Replace token patterns with placeholders [[T0]], [[T1]] ... and return sanitized text and map."""
    placeholders: Dict[str, str] = {}
    idx = 0

    def repl(match: re.Match[str]) -> str:
        nonlocal idx
        key = f"[[T{idx}]]"
        placeholders[key] = match.group(0)
        idx += 1
        return key

    sanitized = text
    for pat in TOKEN_PATTERNS:
        sanitized = pat.sub(repl, sanitized)
    return sanitized, placeholders


def restore_tokens(text: str, placeholders: Dict[str, str]) -> str:
    for key, original in placeholders.items():
        text = text.replace(key, original)
    return text


# =============================
# Translator abstraction
# =============================


class Translator:
    """Translate a single string into a target locale.

    ``translate`` returns ``None`` when the provider fails so callers can record
    the failure for that one field and carry on.
    """

    def __init__(self, provider: str, api_key: str, qps: float, endpoint: str = "", source_locale: str = "en") -> None:
        self.provider = provider.lower()
        self.api_key = api_key
        self.rate_limiter = RateLimiter(qps)
        self.endpoint = endpoint
        self.source_locale = source_locale

        if self.provider not in PROVIDERS:
            raise ValueError(f"Unsupported translator provider: {provider}")
        if self.provider in {"deepl", "google"} and not self.api_key:
            raise ValueError("Translator API key is required for non-mock providers.")

    def __call__(self, text: str, target_locale: str) -> Optional[str]:
        return self.translate(text, target_locale)

    def translate(self, text: str, target_locale: str) -> Optional[str]:
        if not text or len(text) < MIN_TRANSLATE_LENGTH:
            return text
        if len(text) > 10:
            display = f"{text[:50]}..." if len(text) > 50 else text
            logger.debug("Translating: %r [%s]", display, target_locale)
        sanitized, placeholders = extract_tokens(text)
        if self.provider == "mock":
            out: Optional[str] = f"[{target_locale}] {sanitized}"
        elif self.provider == "deepl":
            out = self._translate_deepl(sanitized, target_locale)
        elif self.provider == "google":
            out = self._translate_google(sanitized, target_locale)
        else:
            out = self._translate_libretranslate(sanitized, target_locale)
        if out is None:
            return None
        return restore_tokens(out, placeholders)

    def _deepl_url(self) -> str:
        if self.endpoint:
            return self.endpoint
        # Free-tier keys carry a ":fx" suffix and use a separate host
        if self.api_key.endswith(":fx"):
            return "https://api-free.deepl.com/v2/translate"
        return "https://api.deepl.com/v2/translate"

    def _translate_deepl(self, text: str, target_locale: str) -> Optional[str]:
        # DeepL target lang codes are typically uppercase like 'DE', 'EN-GB'
        target_lang = target_locale.upper()
        self.rate_limiter.wait()
        headers = {"Authorization": f"DeepL-Auth-Key {self.api_key}"}
        data = {
            "text": text,
            "source_lang": self.source_locale.split("-")[0].upper(),
            "target_lang": target_lang,
        }
        try:
            resp = requests.post(self._deepl_url(), data=data, headers=headers, timeout=20)
            if resp.status_code != 200:
                raise RuntimeError(f"DeepL HTTP {resp.status_code}: {resp.text[:200]}")
            payload = resp.json()
            translations = payload.get("translations", [])
            if not translations:
                raise RuntimeError("DeepL: empty translations")
            return html.unescape(translations[0].get("text", ""))
        except (requests.RequestException, RuntimeError, ValueError) as exc:
            logger.error("Translation error (DeepL): %s", exc)
            return None

    def _translate_google(self, text: str, target_locale: str) -> Optional[str]:
        self.rate_limiter.wait()
        url = self.endpoint.strip() or "https://translation.googleapis.com/language/translate/v2"
        params = {"key": self.api_key}
        data = {"q": text, "source": self.source_locale, "target": target_locale, "format": "text"}
        headers = {"Content-Type": "application/json"}
        try:
            resp = requests.post(url, params=params, json=data, headers=headers, timeout=20)
            if resp.status_code != 200:
                raise RuntimeError(f"Google Translate HTTP {resp.status_code}: {resp.text[:200]}")
            payload = resp.json()
            translations = payload.get("data", {}).get("translations", [])
            if not translations:
                raise RuntimeError("Google: empty translations")
            return html.unescape(translations[0].get("translatedText", ""))
        except (requests.RequestException, RuntimeError, ValueError) as exc:
            logger.error("Translation error (Google): %s", exc)
            return None

    def _translate_libretranslate(self, text: str, target_locale: str) -> Optional[str]:
        # LibreTranslate typically uses two-letter lowercase codes (e.g., 'de').
        target_lang = target_locale.split("-")[0].lower()
        self.rate_limiter.wait()
        url = self.endpoint.strip() or "https://libretranslate.com/translate"
        headers = {"Content-Type": "application/json"}
        data = {
            "q": text,
            "source": self.source_locale.split("-")[0].lower(),
            "target": target_lang,
            "format": "text",
        }
        # Some instances require an API key; include if provided
        if self.api_key:
            data["api_key"] = self.api_key
        try:
            resp = requests.post(url, json=data, headers=headers, timeout=20)
            if resp.status_code != 200:
                raise RuntimeError(f"LibreTranslate HTTP {resp.status_code}: {resp.text[:200]}")
            payload = resp.json()
            translated = payload.get("translatedText") or payload.get("translation")
            if not translated:
                raise RuntimeError("LibreTranslate: missing 'translatedText'")
            return html.unescape(str(translated))
        except (requests.RequestException, RuntimeError, ValueError) as exc:
            logger.error("Translation error (LibreTranslate): %s", exc)
            return None
