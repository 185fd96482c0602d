"""Tests for configuration."""
import pytest

from category_intel.config import Config


class TestConfig:
    def test_defaults(self, monkeypatch):
        for name in ("EBAY_ACCESS_TOKEN", "MARKETPLACE_ID", "MAX_SUGGESTIONS", "PARTIAL_RESULTS", "REDIS_URL"):
            monkeypatch.delenv(name, raising=False)
        cfg = Config()
        assert cfg.MARKETPLACE_ID == "EBAY_US"
        assert cfg.MAX_SUGGESTIONS == 3
        assert cfg.PARTIAL_RESULTS is False
        assert cfg.REDIS_URL == ""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("EBAY_ACCESS_TOKEN", "abc")
        monkeypatch.setenv("MAX_SUGGESTIONS", "5")
        monkeypatch.setenv("PARTIAL_RESULTS", "yes")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        cfg = Config()
        assert cfg.EBAY_ACCESS_TOKEN == "abc"
        assert cfg.MAX_SUGGESTIONS == 5
        assert cfg.PARTIAL_RESULTS is True
        assert cfg.LOG_LEVEL == "DEBUG"
        cfg.validate()

    def test_missing_token(self, monkeypatch):
        monkeypatch.delenv("EBAY_ACCESS_TOKEN", raising=False)
        with pytest.raises(ValueError, match="EBAY_ACCESS_TOKEN"):
            Config().validate()

    def test_bad_window(self, monkeypatch):
        monkeypatch.setenv("EBAY_ACCESS_TOKEN", "abc")
        monkeypatch.setenv("MAX_SUGGESTIONS", "0")
        with pytest.raises(ValueError, match="MAX_SUGGESTIONS"):
            Config().validate()

    def test_bad_timeout(self, monkeypatch):
        monkeypatch.setenv("EBAY_ACCESS_TOKEN", "abc")
        monkeypatch.setenv("TAXONOMY_TIMEOUT", "0")
        with pytest.raises(ValueError, match="TAXONOMY_TIMEOUT"):
            Config().validate()
