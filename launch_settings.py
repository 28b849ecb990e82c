"""Launch settings - frozen dataclass merged from CLI flags, environment and defaults."""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger("plugstart.settings")

ENV_VARS = {
    "port": "FASTIFY_PORT",
    "socket": "FASTIFY_SOCKET",
    "options": "FASTIFY_OPTIONS",
    "address": "FASTIFY_ADDRESS",
    "prefix": "FASTIFY_PREFIX",
    "log_level": "FASTIFY_LOG_LEVEL",
    "pretty_logs": "FASTIFY_PRETTY_LOGS",
    "body_limit": "FASTIFY_BODY_LIMIT",
}

# Misspelt name shipped by earlier releases, still read as a fallback.
LEGACY_ENV_VARS = {
    "body_limit": "FASTIFT_BODY_LIMIT",
}

INT_OPTIONS = ("port", "body_limit")
BOOL_OPTIONS = ("options", "pretty_logs")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    file: str
    port: int = 3000
    socket: Optional[str] = None
    address: Optional[str] = None
    prefix: Optional[str] = None
    log_level: str = "fatal"
    pretty_logs: bool = False
    body_limit: Optional[int] = None
    options: bool = False


OPTION_NAMES = tuple(ENV_VARS)


def _coerce(key: str, name: str, raw: str) -> Any:
    if key in BOOL_OPTIONS:
        return _parse_bool(raw)
    if key in INT_OPTIONS:
        try:
            return int(raw.strip())
        except ValueError:
            logger.warning(f"⚠️  Ignoring {name}={raw!r}: not an integer")
            return None
    return raw


def read_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Collect launch options from the environment.

    Only variables that are set to a non-empty value appear in the result;
    defaults are applied later by merge_settings().
    """
    if environ is None:
        environ = os.environ

    values: Dict[str, Any] = {}
    for key, name in ENV_VARS.items():
        raw = environ.get(name)
        if not raw and key in LEGACY_ENV_VARS:
            legacy = LEGACY_ENV_VARS[key]
            raw = environ.get(legacy)
            if raw:
                logger.warning(f"⚠️  {legacy} is deprecated, use {name} instead")
                name = legacy
        if not raw:
            continue
        value = _coerce(key, name, raw)
        if value is not None:
            values[key] = value
    return values


def merge_settings(file: str, cli: Mapping[str, Any], env: Mapping[str, Any]) -> Settings:
    """Overlay CLI values on environment values; Settings defaults fill the rest."""
    merged = {key: value for key, value in env.items() if key in OPTION_NAMES}
    merged.update(
        (key, value) for key, value in cli.items()
        if key in OPTION_NAMES and value is not None
    )
    return Settings(file=file, **merged)


def load_settings(file: str, cli: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings for one invocation."""
    return merge_settings(file, cli, read_env(environ))
