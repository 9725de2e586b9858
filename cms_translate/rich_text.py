"""Extract and reconstruct the text leaves of rich-text documents.

A document is a tree of ``{"nodeType": ..., "content": [...], "data": {...}}``
nodes whose leaves are ``{"nodeType": "text", "value": ..., "marks": [...]}``.
``extract`` flattens the text leaves into ``{path: value}`` and ``reconstruct``
applies such a mapping to a copy of the same document. Both compute paths with
``child_path`` so a mapping extracted from a document always applies back to it.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .values import EMBEDDED_ENTRY_NODES, TEXT_NODE

logger = logging.getLogger(__name__)

TranslateFn = Callable[[str, str], Optional[str]]


def child_path(base: str, index: int) -> str:
    segment = f"content[{index}]"
    return f"{base}.{segment}" if base else segment


def _is_text(node: Any) -> bool:
    return isinstance(node, dict) and node.get("nodeType") == TEXT_NODE


def _is_embedded_entry(node: Any) -> bool:
    return isinstance(node, dict) and node.get("nodeType") in EMBEDDED_ENTRY_NODES


def extract(node: Any, path: str = "") -> Dict[str, str]:
    texts: Dict[str, str] = {}
    if not isinstance(node, dict):
        return texts
    if _is_text(node):
        if node.get("value"):
            texts[path] = node["value"]
        return texts
    if _is_embedded_entry(node):
        return texts
    children = node.get("content")
    if isinstance(children, list):
        for i, child in enumerate(children):
            texts.update(extract(child, child_path(path, i)))
    return texts


def _apply(node: Any, translations: Dict[str, Optional[str]], path: str) -> None:
    if not isinstance(node, dict) or _is_embedded_entry(node):
        return
    if _is_text(node):
        translated = translations.get(path)
        if node.get("value") and translated:
            node["value"] = translated
        return
    children = node.get("content")
    if isinstance(children, list):
        for i, child in enumerate(children):
            _apply(child, translations, child_path(path, i))


def reconstruct(document: Any, translations: Dict[str, Optional[str]]) -> Any:
    """Return a deep copy of ``document`` with text values replaced at the given paths.

    Empty or missing translations keep the source text.
    """
    result = copy.deepcopy(document)
    _apply(result, translations, "")
    return result


def translate_and_reconstruct(
    document: Dict[str, Any],
    locale: str,
    translate_fn: TranslateFn,
) -> Tuple[Dict[str, Any], List[str]]:
    """Translate every text leaf of ``document``.

    Returns the reconstructed document and the paths whose translation came back
    empty or ``None``; those leaves keep their source text.
    """
    translations: Dict[str, Optional[str]] = {}
    failed: List[str] = []
    for path, text in extract(document).items():
        translated = translate_fn(text, locale)
        if not translated:
            failed.append(path)
            logger.warning("No translation for rich text leaf %s", path)
            continue
        translations[path] = translated
    return reconstruct(document, translations), failed


def count_nodes(node: Any) -> int:
    if not isinstance(node, dict):
        return 0
    children = node.get("content")
    if not isinstance(children, list):
        return 1
    return 1 + sum(count_nodes(child) for child in children)


def preview_text(value: Any, max_length: int = 100) -> str:
    if not value:
        return ""
    if isinstance(value, dict):
        texts = extract(value)
        text = next(iter(texts.values())) if texts else json.dumps(value)
    else:
        text = str(value)
    return text[:max_length] + "..." if len(text) > max_length else text
