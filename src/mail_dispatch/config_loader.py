# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for dispatch settings and provider credentials.

Settings and provider configurations are read from INI-style files.

Example:
    Configuration file format (config.ini)::

        [dispatch]
        http_timeout = 30
        attachment_timeout = 20
        smtp_timeout = 10

        [provider]
        provider = mailgun
        driver = api
        key = key-123
        domain = mg.example.com

        [gateway]
        provider = maildocker
        access_key = abc
        secret_key = xyz
        proxy_host = proxy.internal
        proxy_port = 3128

    Loading both::

        settings = load_dispatch_settings("config.ini")
        config = load_provider_config("config.ini", section="provider")
"""

from __future__ import annotations

import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .logger import get_logger

logger = get_logger("ConfigLoader")

DEFAULT_GATEWAY_HOST = "https://ecentry.io"
DEFAULT_GATEWAY_PORT = 443
DEFAULT_GATEWAY_ENDPOINT = "/api/maildocker/v1/mail/"


@dataclass
class DispatchSettings:
    """Process-wide settings for network calls made during a send.

    Attributes:
        http_timeout: Total timeout in seconds for HTTP provider APIs and the
            gateway (overridable per gateway config with ``timeout``).
        attachment_timeout: Timeout in seconds for each URL attachment probe
            or download.
        smtp_timeout: Timeout in seconds for SMTP connect and commands.
        gateway_host: Default gateway base URL.
        gateway_port: Default gateway port.
        gateway_endpoint: Default gateway mail endpoint path.
    """

    http_timeout: float = 30.0
    attachment_timeout: float = 30.0
    smtp_timeout: float = 10.0
    gateway_host: str = DEFAULT_GATEWAY_HOST
    gateway_port: int = DEFAULT_GATEWAY_PORT
    gateway_endpoint: str = DEFAULT_GATEWAY_ENDPOINT


def _read_config(config_path: str) -> configparser.ConfigParser:
    if not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    config = configparser.ConfigParser()
    config.read(config_path)
    return config


def load_dispatch_settings(config_path: str | None) -> DispatchSettings:
    """Load ``DispatchSettings`` from the ``[dispatch]`` section.

    Args:
        config_path: Path to config.ini. ``None`` or a file without a
            ``[dispatch]`` section yields defaults.

    Raises:
        FileNotFoundError: If ``config_path`` is given but does not exist.
        ValueError: If a numeric setting cannot be parsed.
    """
    if config_path is None:
        return DispatchSettings()

    config = _read_config(config_path)
    if not config.has_section("dispatch"):
        logger.info("No [dispatch] section in config, using defaults")
        return DispatchSettings()

    defaults = DispatchSettings()
    section = config["dispatch"]
    try:
        return DispatchSettings(
            http_timeout=section.getfloat("http_timeout", fallback=defaults.http_timeout),
            attachment_timeout=section.getfloat("attachment_timeout", fallback=defaults.attachment_timeout),
            smtp_timeout=section.getfloat("smtp_timeout", fallback=defaults.smtp_timeout),
            gateway_host=section.get("gateway_host", fallback=defaults.gateway_host).strip(),
            gateway_port=section.getint("gateway_port", fallback=defaults.gateway_port),
            gateway_endpoint=section.get("gateway_endpoint", fallback=defaults.gateway_endpoint).strip(),
        )
    except ValueError as e:
        raise ValueError(f"Invalid value in [dispatch] section: {e}") from e


def load_provider_config(config_path: str, section: str = "provider") -> dict[str, Any]:
    """Read a provider configuration section into a plain dictionary.

    Values stay strings except ``port``, ``proxy_port`` and ``timeout``,
    which are converted to numbers when possible, and ``tls`` which becomes
    a bool. ``proxy_host``/``proxy_port`` are folded into a ``proxy``
    mapping. The result is not validated here; shape validation happens
    when the message is sent.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If the section is missing.
    """
    config = _read_config(config_path)
    if not config.has_section(section):
        raise KeyError(f"Section [{section}] not found in {config_path}")

    result: dict[str, Any] = {}
    for key, value in config.items(section):
        value = value.strip()
        if value == "":
            continue
        if key in ("port", "proxy_port"):
            result[key] = int(value) if value.isdigit() else value
        elif key == "timeout":
            try:
                result[key] = float(value)
            except ValueError:
                result[key] = value
        elif key == "tls":
            result[key] = config.getboolean(section, key)
        else:
            result[key] = value

    proxy_host = result.pop("proxy_host", None)
    proxy_port = result.pop("proxy_port", None)
    if proxy_host or proxy_port:
        result["proxy"] = {"host": proxy_host, "port": proxy_port}

    logger.debug("Loaded provider config [%s] for provider %s", section, result.get("provider"))
    return result
