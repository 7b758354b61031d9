import logging

import pytest

from website.config import (
    STATIC_DIR,
    Config,
    SiteMetadata,
    detect_production,
    parse_log_level,
    parse_port,
)
from website.errors import ConfigError


def test_port_defaults_to_8080():
    assert Config.from_env({"PRODUCTION": "0"}).port == 8080
    assert Config.from_env({"PORT": "", "PRODUCTION": "0"}).port == 8080


def test_port_from_env():
    config = Config.from_env({"PORT": "9999", "PRODUCTION": "0"})
    assert config.port == 9999
    assert config.address == ("0.0.0.0", 9999)


@pytest.mark.parametrize(
    "value", ["abc", "80.5", "-1", "65536", "8_080", "+80", "٨٠٨٠"]
)
def test_bad_port_is_fatal(value):
    with pytest.raises(ConfigError, match="parsing port string"):
        parse_port(value)


def test_log_levels():
    assert parse_log_level("DEBUG") == logging.DEBUG
    assert parse_log_level("INFO") == logging.INFO
    assert parse_log_level("WARN") == logging.WARNING
    assert parse_log_level("ERROR") == logging.ERROR
    assert parse_log_level("error") == logging.ERROR
    assert parse_log_level("LOUD") == logging.INFO
    assert parse_log_level(None) == logging.INFO


def test_production_flag_from_env():
    assert Config.from_env({"PRODUCTION": "true"}).production is True
    assert Config.from_env({"PRODUCTION": "0"}).production is False
    with pytest.raises(ConfigError):
        Config.from_env({"PRODUCTION": "maybe"})


def test_production_detected_from_host(monkeypatch):
    monkeypatch.setattr("website.config.detect_production", lambda: True)
    assert Config.from_env({}).production is True


def test_detect_production():
    assert detect_production("Linux", "web-1") is True
    assert detect_production("Darwin", "web-1") is False
    assert detect_production("Linux", "mbp") is False


def test_site_url_override():
    config = Config.from_env({"SITE_URL": "https://staging.example.com/", "PRODUCTION": "0"})
    assert config.site.url == "https://staging.example.com"
    assert config.site.author == SiteMetadata().author


def test_static_layout():
    config = Config()
    assert config.templates_dir == STATIC_DIR / "templates"
    assert config.posts_dir == STATIC_DIR / "posts"
    assert config.public_dir == STATIC_DIR / "public"
    assert (config.templates_dir / "base.tmpl.html").is_file()
