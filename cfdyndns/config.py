"""Configuration loaded from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from functools import lru_cache

from cfdyndns.common import is_blank

MODE_POLLER = "POLLER"
MODE_LISTENER = "LISTENER"

ENV_MODE = "MODE"
ENV_API_TOKEN = "API_TOKEN"
ENV_TIMEOUT = "TIMEOUT"

ENV_DOMAINS = "DOMAINS"
ENV_INTERVAL = "INTERVAL"
ENV_MAX_FAILS = "MAX_FAILURES"
ENV_COOLDOWN = "COOLDOWN"
ENV_CAN_CREATE = "CAN_CREATE"
ENV_TTL = "TTL"
ENV_PROXIED = "PROXIED"
ENV_COMMENT = "COMMENT"

ENV_ADDRESS = "ADDRESS"
ENV_PORT = "PORT"
ENV_USERNAME = "USERNAME"
ENV_PASSWORD = "PASSWORD"


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Environment:
    """Raw configuration values, kept as strings as they came from the environment."""

    mode: str
    api_token: str
    timeout: str = "5"

    # Poller mode settings
    domains: str = ""
    interval: str = "60"
    max_fails: str = "-1"
    cooldown: str = "-1"
    can_create: str = "true"
    ttl: str = "60"
    proxied: str = "false"
    comment: str = "Created by cfdyndns"

    # Listener mode settings
    address: str = "0.0.0.0"
    port: str = "8080"
    username: str = ""
    password: str = ""


_FIELDS_BY_VAR = {
    ENV_MODE: "mode",
    ENV_API_TOKEN: "api_token",
    ENV_DOMAINS: "domains",
    ENV_TIMEOUT: "timeout",
    ENV_INTERVAL: "interval",
    ENV_MAX_FAILS: "max_fails",
    ENV_COOLDOWN: "cooldown",
    ENV_CAN_CREATE: "can_create",
    ENV_TTL: "ttl",
    ENV_PROXIED: "proxied",
    ENV_COMMENT: "comment",
    ENV_ADDRESS: "address",
    ENV_PORT: "port",
    ENV_USERNAME: "username",
    ENV_PASSWORD: "password",
}


def load_environment(environ: Mapping[str, str] | None = None) -> Environment:
    """Build an Environment from a mapping, ignoring blank values.

    Raises ConfigError if MODE or API_TOKEN is missing.
    """
    source = os.environ if environ is None else environ
    overrides = {
        field: source[var]
        for var, field in _FIELDS_BY_VAR.items()
        if var in source and not is_blank(source[var])
    }
    if ENV_MODE not in source or is_blank(source.get(ENV_MODE, "")):
        raise ConfigError(f"Missing env var: {ENV_MODE}")
    if ENV_API_TOKEN not in source or is_blank(source.get(ENV_API_TOKEN, "")):
        raise ConfigError(f"Missing env var: {ENV_API_TOKEN}")
    base = Environment(mode=overrides["mode"], api_token=overrides["api_token"])
    return replace(base, **overrides)


@lru_cache(maxsize=None)
def get_env() -> Environment:
    """Return the process-wide Environment, loading it on first use."""
    return load_environment()