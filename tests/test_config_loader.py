"""Tests for settings and provider configuration loading from config.ini."""

import pytest

from mail_dispatch.config_loader import (
    DEFAULT_GATEWAY_HOST,
    DispatchSettings,
    load_dispatch_settings,
    load_provider_config,
)
from mail_dispatch.validation import PROVIDER_CONFIG_SCHEMA, SchemaValidator


def test_settings_default_without_file():
    assert load_dispatch_settings(None) == DispatchSettings()


def test_settings_from_dispatch_section(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("""
[dispatch]
http_timeout = 12.5
attachment_timeout = 4
gateway_host = https://mail.internal
gateway_port = 8443
""")

    settings = load_dispatch_settings(str(config_file))

    assert settings.http_timeout == 12.5
    assert settings.attachment_timeout == 4.0
    assert settings.smtp_timeout == 10.0
    assert settings.gateway_host == "https://mail.internal"
    assert settings.gateway_port == 8443


def test_settings_without_dispatch_section(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[provider]\nprovider = smtp\n")

    settings = load_dispatch_settings(str(config_file))

    assert settings.gateway_host == DEFAULT_GATEWAY_HOST


def test_settings_invalid_number(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[dispatch]\nhttp_timeout = soon\n")

    with pytest.raises(ValueError, match=r"\[dispatch\]"):
        load_dispatch_settings(str(config_file))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_dispatch_settings(str(tmp_path / "nope.ini"))


def test_provider_section_coercion(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("""
[provider]
provider = smtp
host = smtp.example.com
port = 587
tls = no
username = mailer
password =
""")

    config = load_provider_config(str(config_file))

    assert config == {
        "provider": "smtp",
        "host": "smtp.example.com",
        "port": 587,
        "tls": False,
        "username": "mailer",
    }


def test_gateway_proxy_is_folded(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("""
[gateway]
provider = maildocker
access_key = abc
secret_key = xyz
proxy_host = proxy.internal
proxy_port = 3128
timeout = 15
""")

    config = load_provider_config(str(config_file), section="gateway")

    assert config["proxy"] == {"host": "proxy.internal", "port": 3128}
    assert config["timeout"] == 15.0
    assert SchemaValidator().validate_document(config, PROVIDER_CONFIG_SCHEMA) is True


def test_missing_provider_section(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[dispatch]\n")

    with pytest.raises(KeyError):
        load_provider_config(str(config_file))
