"""Unit tests for configuration management."""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from authorscout.config import DEFAULT_KEYWORDS, DEFAULT_TAGS, Settings
from authorscout.core.crawl.crawl_config import CrawlConfig, SitemapSelection
from authorscout.core.crawl.models import SourceType


def test_settings_from_environment(test_settings: Settings, tmp_path: Path):
    """Test that settings load from environment variables."""
    assert test_settings.state_file == tmp_path / "state.json"
    assert test_settings.log_level == "DEBUG"
    assert test_settings.keywords == ["indie hacker", "maker"]


def test_default_values(monkeypatch: pytest.MonkeyPatch):
    """Test that default values are set correctly."""
    for key in list(os.environ):
        if key.startswith("AUTHORSCOUT_"):
            monkeypatch.delenv(key)

    settings = Settings(_env_file=None)

    assert settings.base_url == "https://hackernoon.com"
    assert settings.keywords == DEFAULT_KEYWORDS
    assert settings.tags == DEFAULT_TAGS
    assert settings.sample_article_cap == 3
    assert settings.sitemaps_to_check == 10
    assert settings.max_articles_per_sitemap == 150
    assert settings.log_level == "INFO"


def test_base_url_trailing_slash_removed():
    """Test that base URL is normalized."""
    settings = Settings(_env_file=None, base_url="https://example.com/")
    assert settings.base_url == "https://example.com"


def test_base_url_validation_invalid():
    """Test validation error for a non-http base URL."""
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None, base_url="ftp://example.com")

    assert "Invalid base_url" in str(exc_info.value)


def test_log_level_validation_invalid():
    """Test validation error for unknown log level."""
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None, log_level="chatty")

    assert "Invalid log_level" in str(exc_info.value)


def test_tags_from_comma_separated_env(monkeypatch: pytest.MonkeyPatch):
    """Test that vocabularies parse from comma-separated strings."""
    monkeypatch.setenv("AUTHORSCOUT_TAGS", "saas, makers,,founders ")

    settings = Settings(_env_file=None)

    assert settings.tags == ["saas", "makers", "founders"]


def test_crawl_config_from_settings(test_settings: Settings):
    """Test that the crawl configuration mirrors settings."""
    config = CrawlConfig.from_settings(test_settings)

    assert config.base_url == test_settings.base_url
    assert config.keywords == ["indie hacker", "maker"]
    assert config.max_refs_per_sitemap == test_settings.max_articles_per_sitemap
    assert config.retry.source_max_retries == test_settings.max_retries
    assert config.sitemap_selection is SitemapSelection.NEWEST


def test_crawl_config_derived_values():
    """Test host, self token and per-source lookups."""
    config = CrawlConfig(base_url="https://www.hackernoon.com/")

    assert config.base_url == "https://www.hackernoon.com"
    assert config.host == "www.hackernoon.com"
    assert config.self_token == "hackernoon"
    assert config.sitemap_index_url == "https://www.hackernoon.com/sitemap.xml"
    assert config.max_refs_for(SourceType.SEARCH) == 8
    assert config.max_refs_for(SourceType.TAG) == 10
    assert config.max_refs_for(SourceType.SITEMAP) == 150
    assert config.scroll_steps_for(SourceType.TAG) == 4
    assert config.scroll_steps_for(SourceType.SITEMAP) == 0


def test_settings_singleton():
    """Test settings singleton access."""
    from authorscout.config import settings

    assert settings is not None
    assert hasattr(settings, "state_file")
    assert hasattr(settings, "keywords")
