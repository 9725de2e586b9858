import pytest

from cms_translate.classifier import Classifier
from cms_translate.config import Config

ENV_VARS = (
    "CONTENTFUL_SPACE_ID",
    "CONTENTFUL_MANAGEMENT_TOKEN",
    "CONTENTFUL_ENVIRONMENT",
    "CONTENTFUL_API_BASE_URL",
    "DEEPL_API_KEY",
    "CMS_TRANSLATOR",
    "CMS_TRANSLATOR_API_KEY",
    "CMS_TRANSLATOR_ENDPOINT",
    "CMS_RATE_LIMIT_QPS",
    "CMS_LOG_LEVEL",
    "CMS_DRY_RUN",
    "CMS_TRANSLATE_CONFIG",
)


@pytest.fixture
def config() -> Config:
    return Config(space_id="space", access_token="token", starting_content_type="page", translator="mock")


@pytest.fixture
def classifier(config: Config) -> Classifier:
    return Classifier(config)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Empty working directory with none of the tool's environment variables set."""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        # setenv first so values loaded from .env files are removed again afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return tmp_path
