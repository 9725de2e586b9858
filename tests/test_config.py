import argparse
import json
import os

import pytest

from cms_translate.config import SKIP_FIELDS, config_from_mapping, load_config, redact
from cms_translate.errors import ConfigurationMissing


def write_config(directory, **data):
    data.setdefault("startingContentType", "page")
    path = directory / "translate.config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_missing_config_file(workdir):
    with pytest.raises(ConfigurationMissing, match="translate.config.json"):
        load_config(require_credentials=False)


def test_invalid_json(workdir):
    (workdir / "translate.config.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationMissing):
        load_config(require_credentials=False)


def test_file_and_environment(workdir, monkeypatch):
    write_config(
        workdir,
        maxDepth=3,
        maxFields=50,
        skipFields=["code"],
        supportedLocales=["de", "it"],
        logging={"saveFailedTranslations": True, "failedTranslationsPath": "out/failed"},
    )
    monkeypatch.setenv("CONTENTFUL_SPACE_ID", "space1")
    monkeypatch.setenv("CONTENTFUL_MANAGEMENT_TOKEN", "token1")
    monkeypatch.setenv("CMS_TRANSLATOR", "mock")

    cfg = load_config()

    assert (cfg.space_id, cfg.access_token, cfg.environment_id) == ("space1", "token1", "master")
    assert (cfg.max_depth, cfg.max_fields) == (3, 50)
    assert cfg.skip_fields == frozenset({"code"})
    assert cfg.supported_locales == ("de", "it")
    assert cfg.save_failed_translations
    assert cfg.failed_translations_path == "out/failed"
    assert cfg.translator == "mock"
    assert cfg.dry_run


def test_cli_arguments_win(workdir, monkeypatch):
    (workdir / "conf").mkdir()
    path = write_config(workdir / "conf")
    monkeypatch.setenv("CONTENTFUL_SPACE_ID", "space1")
    monkeypatch.setenv("CONTENTFUL_MANAGEMENT_TOKEN", "token1")
    monkeypatch.setenv("CMS_TRANSLATOR", "deepl")
    monkeypatch.setenv("CMS_LOG_LEVEL", "WARNING")
    args = argparse.Namespace(
        config=str(path),
        content_type="article",
        translator="libretranslate",
        translator_api_key=None,
        translator_endpoint="http://localhost:5000/translate",
        log_level="DEBUG",
        write=True,
    )

    cfg = load_config(args)

    assert cfg.starting_content_type == "article"
    assert cfg.translator == "libretranslate"
    assert cfg.translator_endpoint == "http://localhost:5000/translate"
    assert cfg.log_level == "DEBUG"
    assert not cfg.dry_run


def test_env_file_is_loaded(workdir):
    write_config(workdir)
    (workdir / ".env").write_text(
        "# credentials\nCONTENTFUL_SPACE_ID='from-file'\nCONTENTFUL_MANAGEMENT_TOKEN=\"tok\"\nDEEPL_API_KEY=abc:fx\n",
        encoding="utf-8",
    )
    cfg = load_config()
    assert cfg.space_id == "from-file"
    assert cfg.access_token == "tok"
    assert cfg.translator == "deepl"
    assert cfg.translator_api_key == "abc:fx"
    assert os.environ["CONTENTFUL_SPACE_ID"] == "from-file"


def test_missing_credentials(workdir):
    write_config(workdir)
    with pytest.raises(ConfigurationMissing) as excinfo:
        load_config()
    message = str(excinfo.value)
    assert "CONTENTFUL_SPACE_ID" in message
    assert "CONTENTFUL_MANAGEMENT_TOKEN" in message
    assert "DEEPL_API_KEY" in message


def test_missing_content_type(workdir, monkeypatch):
    write_config(workdir, startingContentType="")
    monkeypatch.setenv("CONTENTFUL_SPACE_ID", "space1")
    monkeypatch.setenv("CONTENTFUL_MANAGEMENT_TOKEN", "token1")
    monkeypatch.setenv("CMS_TRANSLATOR", "mock")
    with pytest.raises(ConfigurationMissing, match="startingContentType"):
        load_config()


def test_dry_run_from_environment(workdir, monkeypatch):
    write_config(workdir)
    monkeypatch.setenv("CMS_DRY_RUN", "false")
    assert not load_config(require_credentials=False).dry_run


@pytest.mark.parametrize(
    "data",
    [
        {"maxDepth": 0},
        {"maxFields": "many"},
        {"urlPatterns": {"absoluteUrl": "("}},
    ],
)
def test_invalid_values(data):
    with pytest.raises(ConfigurationMissing):
        config_from_mapping(data)


def test_defaults():
    cfg = config_from_mapping({})
    assert (cfg.max_depth, cfg.max_fields, cfg.source_locale) == (5, 100, "en")
    assert cfg.skip_fields == SKIP_FIELDS
    assert cfg.supported_locales == ("de", "fr", "es", "nl")
    assert not cfg.save_failed_translations
    assert cfg.relative_path_pattern.search("/blog/my-post")


def test_redact():
    assert redact("abc") == "***"
    assert redact("secret-token") == "se***en"
