"""Tests for YAML config loading and environment overrides."""

import pytest

from canonpack.config import apply_config, default_config_path, load_config
from canonpack.constants import Constants

_SETTINGS = ("REQUEST_TIMEOUT", "HTTP_RETRY_MAX", "LISTING_CACHE_TTL_SEC", "DEFAULT_REGISTRY", "CACHE_ROOT")
_ENV = ("CANONPACK_CONFIG", "CANONPACK_REGISTRY", "CANONPACK_CACHE_ROOT", "CANONPACK_TIMEOUT", "XDG_CONFIG_HOME")


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Restore Constants after each test and start without CANONPACK_* variables."""
    for name in _SETTINGS:
        monkeypatch.setattr(Constants, name, getattr(Constants, name))
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    """Reading the YAML file."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("http:\n  timeout: 5\nregistry:\n  default: npm\n", encoding="utf-8")

        assert load_config(str(path)) == {"http": {"timeout": 5}, "registry": {"default": "npm"}}

    def test_invalid_yaml(self, tmp_path):
        """Broken files are logged and ignored."""
        path = tmp_path / "config.yml"
        path.write_text("http: [unclosed\n", encoding="utf-8")

        assert load_config(str(path)) == {}

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        assert load_config(str(path)) == {}

    def test_missing_explicit_path(self, tmp_path):
        assert load_config(str(tmp_path / "nope.yml")) == {}

    def test_path_from_environment(self, tmp_path, monkeypatch):
        """$CANONPACK_CONFIG is used when no path is passed."""
        path = tmp_path / "env.yml"
        path.write_text("cache:\n  root: /srv/cache\n", encoding="utf-8")
        monkeypatch.setenv("CANONPACK_CONFIG", str(path))

        assert load_config() == {"cache": {"root": "/srv/cache"}}

    def test_default_path_follows_xdg(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert default_config_path() == str(tmp_path / "canonpack" / "config.yml")


class TestApplyConfig:
    """Copying values onto Constants."""

    def test_file_values(self):
        apply_config({
            "http": {"timeout": 7, "retries": 0},
            "registry": {"default": "npm", "listing_ttl": 0},
            "cache": {"root": "/srv/packages"},
        })

        assert Constants.REQUEST_TIMEOUT == 7
        assert Constants.HTTP_RETRY_MAX == 1
        assert Constants.LISTING_CACHE_TTL_SEC == 0
        assert Constants.DEFAULT_REGISTRY == "npm"
        assert Constants.CACHE_ROOT == "/srv/packages"

    def test_bad_integers_are_ignored(self):
        """Non-numeric values keep the defaults."""
        before = Constants.REQUEST_TIMEOUT

        apply_config({"http": {"timeout": "soon"}})

        assert Constants.REQUEST_TIMEOUT == before

    def test_environment_wins(self, monkeypatch):
        monkeypatch.setenv("CANONPACK_REGISTRY", " staging ")
        monkeypatch.setenv("CANONPACK_CACHE_ROOT", "/tmp/pkgs")
        monkeypatch.setenv("CANONPACK_TIMEOUT", "12")

        apply_config({"registry": {"default": "npm"}, "http": {"timeout": 3}})

        assert Constants.DEFAULT_REGISTRY == "staging"
        assert Constants.CACHE_ROOT == "/tmp/pkgs"
        assert Constants.REQUEST_TIMEOUT == 12

    def test_empty_config_changes_nothing(self):
        before = {name: getattr(Constants, name) for name in _SETTINGS}

        apply_config(None)

        assert {name: getattr(Constants, name) for name in _SETTINGS} == before
