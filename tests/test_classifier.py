import re

import pytest

from cms_translate.classifier import Classifier, TextStatus
from cms_translate.config import Config
from cms_translate.values import ValueKind, decode_value
from helpers import document, link, text


@pytest.mark.parametrize(
    "value, status",
    [
        ("https://example.com/x", TextStatus.ABSOLUTE_URL),
        ("/a/b-c", TextStatus.RELATIVE_PATH),
        ("#section-1", TextStatus.ANCHOR_LINK),
        ("blog/short-url-path", TextStatus.POSSIBLE_URL),
        ("ok", TextStatus.TOO_SHORT),
        ("  Hi  ", TextStatus.TOO_SHORT),
        ("   ", TextStatus.EMPTY),
        ("Hello world", TextStatus.TRANSLATABLE),
        ("short-url-path", TextStatus.TRANSLATABLE),
    ],
)
def test_classify_text(classifier, value, status):
    assert classifier.classify_text(value) is status


def test_url_like_values_are_not_translatable(classifier):
    assert not classifier.is_translatable("https://example.com/x")
    assert not classifier.is_translatable("/a/b-c")
    assert not classifier.is_translatable("#section-1")


def test_possible_url_is_flagged_but_translatable(classifier):
    assert classifier.is_possible_url("blog/short-url-path")
    assert classifier.is_translatable("blog/short-url-path")
    assert not classifier.is_possible_url("a/b c-d")


def test_skip_list(classifier):
    assert classifier.is_skippable("slug")
    assert classifier.is_skippable("videoUrl")
    assert not classifier.is_skippable("title")


def test_links_and_documents(classifier):
    assert classifier.is_entry_link(link("e1"))
    assert not classifier.is_entry_link(link("a1", "Asset"))
    assert classifier.is_asset_reference(link("a1", "Asset"))
    assert classifier.is_asset_reference({"sys": {"type": "Asset", "id": "a1"}})
    doc = document(text("Hello there"))
    assert classifier.is_rich_document(doc)
    assert classifier.is_translatable(doc)
    assert not classifier.is_rich_document({"nodeType": "document"})


def test_arrays_and_objects_are_never_directly_translatable(classifier):
    assert not classifier.is_translatable(["Hello world", "Another"])
    assert not classifier.is_translatable({"caption": "A caption"})
    assert not classifier.is_translatable(42)
    assert not classifier.is_translatable(None)


def test_decode_value_variants():
    assert decode_value("x") is ValueKind.TEXT
    assert decode_value(None) is ValueKind.EMPTY
    assert decode_value([1]) is ValueKind.ARRAY
    assert decode_value(True) is ValueKind.OPAQUE
    assert decode_value(link("e")) is ValueKind.ENTRY_LINK
    assert decode_value(link("a", "Asset")) is ValueKind.ASSET_LINK
    assert decode_value({"sys": {"id": "i", "contentType": {"sys": {"id": "card"}}}, "fields": {}}) is ValueKind.SUB_ENTRY
    assert decode_value(document()) is ValueKind.RICH_DOCUMENT
    assert decode_value({"lat": 1.0, "lon": 2.0}) is ValueKind.OPAQUE


def test_custom_patterns_and_skip_fields():
    cfg = Config(skip_fields=frozenset({"code"}), anchor_link_pattern=re.compile(r"^@\w+$"))
    custom = Classifier(cfg)
    assert custom.is_skippable("code")
    assert not custom.is_skippable("slug")
    assert custom.classify_text("@anchor") is TextStatus.ANCHOR_LINK
    assert custom.classify_text("#section-1") is TextStatus.TRANSLATABLE
