import dataclasses
import json

import pytest

from cms_translate.errors import SaveFailure, ValidationFailure
from cms_translate.reconciler import FieldFailure, FieldUpdate, Reconciler, set_at_path
from helpers import FakeClient, entry_payload

CONTENT_TYPES = {
    "page": {"fields": [
        {"id": "title", "type": "Symbol"},
        {"id": "headline", "type": "Symbol", "validations": [{"size": {"max": 10}}]},
        {"id": "body", "type": "Text"},
    ]},
}


def make_client(**kwargs):
    return FakeClient([
        entry_payload("p1", {
            "title": {"en": "Hello"},
            "headline": {"en": "Big news"},
            "seo": {"en": {"description": "Search text", "noindex": False}},
            "items": {"en": [{"label": "One"}, {"label": "Two"}]},
        }, version=3),
        entry_payload("child", {"caption": {"en": "A caption"}}, content_type="card"),
    ], content_types=CONTENT_TYPES, **kwargs)


def updates_for(entry_id, *updates):
    return {entry_id: {u.field_name: u for u in updates}}


def test_writes_translation_and_saves(config):
    client = make_client()
    root = client.entry("p1")
    result = Reconciler(config, client).apply(root, updates_for("p1", FieldUpdate("title", "Hallo")), "de")

    assert result.has_changes
    assert result.updated_entries == ["p1"]
    assert result.failures == {}
    assert client.store["p1"]["fields"]["title"] == {"en": "Hello", "de": "Hallo"}


def test_linked_entries_are_fetched(config):
    client = make_client()
    root = client.entry("p1")
    client.get_calls.clear()
    result = Reconciler(config, client).apply(root, updates_for("child", FieldUpdate("caption", "Eine Bildunterschrift")), "de")

    assert client.get_calls == ["child"]
    assert result.updated_entries == ["child"]
    assert client.store["child"]["fields"]["caption"]["de"] == "Eine Bildunterschrift"


def test_unknown_entry_is_reported(config):
    client = make_client()
    result = Reconciler(config, client).apply(client.entry("p1"), updates_for("ghost", FieldUpdate("title", "x")), "de")
    assert not result.has_changes
    assert result.failures["ghost"][0].error == "Entry not found"


def test_missing_field_is_a_field_failure(config):
    client = make_client()
    updates = updates_for("p1", FieldUpdate("subtitle", "Untertitel"))
    result = Reconciler(config, client).apply(client.entry("p1"), updates, "de")

    failure = result.failures["p1"][0]
    assert failure.field_name == "subtitle"
    assert failure.error == "Field subtitle not found in entry p1 (content type: page)"
    assert failure.translation == "Untertitel"
    assert client.updated == []


def test_length_limits_come_from_the_content_type(config):
    client = make_client()
    updates = updates_for(
        "p1",
        FieldUpdate("title", "x" * 256),
        FieldUpdate("headline", "Große Neuigkeiten"),
        FieldUpdate("seo.description", "Suchtext", base_field="seo", sub_path="description"),
    )
    result = Reconciler(config, client).apply(client.entry("p1"), updates, "de")

    errors = {f.field_name: f.error for f in result.failures["p1"]}
    assert errors == {
        "title": "Translation exceeds maximum length of 255 characters (256)",
        "headline": "Translation exceeds maximum length of 10 characters (17)",
    }
    # the remaining field is still saved and the rejected ones untouched
    assert result.updated_entries == ["p1"]
    fields = client.store["p1"]["fields"]
    assert "de" not in fields["title"]
    assert "de" not in fields["headline"]
    assert fields["seo"]["de"] == {"description": "Suchtext", "noindex": False}


@pytest.mark.parametrize(
    "schema, limit",
    [
        (None, None),
        ({"type": "Text"}, 50000),
        ({"type": "Symbol", "validations": [{"size": {"min": 1}}]}, 255),
        ({"type": "Symbol", "validations": [{"size": {"max": 300}}]}, 255),
        ({"type": "RichText"}, None),
    ],
)
def test_max_length(schema, limit):
    assert Reconciler.max_length(schema) == limit


def test_synthetic_leaves_are_written_into_their_field(config):
    client = make_client()
    updates = updates_for(
        "p1",
        FieldUpdate("items[0].label", "Eins", base_field="items", sub_path="[0].label"),
        FieldUpdate("items[1].label", "Zwei", base_field="items", sub_path="[1].label"),
        FieldUpdate("items[5].label", "Sechs", base_field="items", sub_path="[5].label"),
    )
    result = Reconciler(config, client).apply(client.entry("p1"), updates, "de")

    items = client.store["p1"]["fields"]["items"]
    assert items["de"] == [{"label": "Eins"}, {"label": "Zwei"}]
    assert items["en"] == [{"label": "One"}, {"label": "Two"}]
    assert [f.error for f in result.failures["p1"]] == ["Path [5].label not found in field items"]


def test_validation_failure_is_expanded_and_rolled_back(config):
    errors = [{"name": "size", "path": ["fields", "title", "de"], "details": "Size must be at most 3"}]
    client = make_client(fail_updates={"p1": ValidationFailure("p1", errors)})
    root = client.entry("p1")
    result = Reconciler(config, client).apply(root, updates_for("p1", FieldUpdate("title", "Hallo")), "de")

    assert not result.has_changes
    assert result.failures["p1"] == [FieldFailure("title", "Size must be at most 3", "Hallo")]
    assert root.fields["title"] == {"en": "Hello"}
    assert root.version == 3


def test_validation_failure_on_synthetic_leaves_keeps_their_translations(config):
    errors = [
        {"path": ["fields", "seo", "de"], "details": "Too long"},
        {"path": ["fields", "items", "de"], "details": "Invalid list"},
    ]
    client = make_client(fail_updates={"p1": ValidationFailure("p1", errors)})
    updates = updates_for(
        "p1",
        FieldUpdate("seo.description", "Suchtext", base_field="seo", sub_path="description"),
        FieldUpdate("items[0].label", "Eins", base_field="items", sub_path="[0].label"),
        FieldUpdate("items[1].label", "Zwei", base_field="items", sub_path="[1].label"),
    )
    result = Reconciler(config, client).apply(client.entry("p1"), updates, "de")

    assert result.failures["p1"] == [
        FieldFailure("seo", "Too long", "Suchtext"),
        FieldFailure("items", "Invalid list", {"items[0].label": "Eins", "items[1].label": "Zwei"}),
    ]


def test_save_error_without_details_rolls_back(config):
    client = make_client(fail_updates={"p1": SaveFailure("p1", "HTTP 409")})
    root = client.entry("p1")
    result = Reconciler(config, client).apply(root, updates_for("p1", FieldUpdate("title", "Hallo")), "de")

    assert result.failures["p1"] == [FieldFailure(None, "HTTP 409")]
    assert "de" not in root.fields["title"]


def test_failure_log_includes_prior_failures(config, tmp_path):
    cfg = dataclasses.replace(config, save_failed_translations=True, failed_translations_path=str(tmp_path / "logs"))
    client = make_client()
    prior = {"child": [FieldFailure("caption", "No translation returned")]}
    result = Reconciler(cfg, client).apply(
        client.entry("p1"), updates_for("p1", FieldUpdate("subtitle", "Untertitel")), "fr", prior
    )

    files = list((tmp_path / "logs").glob("failed-translations-fr-*.json"))
    assert [str(f) for f in files] == [result.failure_log_path]
    record = json.loads(files[0].read_text(encoding="utf-8"))
    assert record["locale"] == "fr"
    assert record["updates"] == {
        "p1": [{
            "error": "Field subtitle not found in entry p1 (content type: page)",
            "fieldName": "subtitle",
            "translation": "Untertitel",
        }],
        "child": [{"error": "No translation returned", "fieldName": "caption"}],
    }


def test_failure_log_disabled_by_default(config, tmp_path):
    client = make_client()
    result = Reconciler(config, client).apply(client.entry("p1"), updates_for("p1", FieldUpdate("subtitle", "x")), "de")
    assert result.failures
    assert result.failure_log_path is None


def test_set_at_path():
    data = {"a": [{"b": "x"}, {"b": "y"}]}
    set_at_path(data, "a[1].b", "z")
    assert data == {"a": [{"b": "x"}, {"b": "z"}]}
    with pytest.raises(KeyError):
        set_at_path({"a": "text"}, "a.b", "z")
    with pytest.raises(IndexError):
        set_at_path([], "[0]", "z")
