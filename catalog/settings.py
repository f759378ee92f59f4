"""
Application settings.

Sources are merged in order, later sources overriding earlier ones:

  1. appsettings.json in the content root
  2. appsettings.{Environment}.json
  3. the configuration/ directory, one file per key (secrets store)
  4. CATALOG_* environment variables
  5. command-line arguments

Keys are case-insensitive and nest with "__" or ":" (for example
CATALOG_COMPRESSION__ENABLE_FOR_HTTPS=true or --Compression:EnableForHttps=true).
The merged mapping is validated into AppSettings once at startup; invalid
configuration fails fast with a pydantic ValidationError.
"""
from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

import catalog

logger = logging.getLogger(__name__)

ENV_PREFIX = "CATALOG_"
ENVIRONMENT_VARIABLE = "CATALOG_ENVIRONMENT"
DEFAULT_ENVIRONMENT = "Production"
SETTINGS_FILE = "appsettings.json"
KEY_PER_FILE_DIR = "configuration"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_KEY_SEPARATOR = re.compile(r"__|:")


def _split_csv(value: object) -> object:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class CompressionSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Compressing over TLS exposes responses to BREACH-style attacks.
    enable_for_https: bool = False
    mime_types: list[str] = Field(default_factory=list)
    level: int = Field(default=6, ge=1, le=9)

    split_mime_types = field_validator("mime_types", mode="before")(_split_csv)


class ForwardedHeadersSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Empty means X-Forwarded-* headers are never trusted.
    known_proxies: list[str] = Field(default_factory=list)

    split_known_proxies = field_validator("known_proxies", mode="before")(_split_csv)


class AppSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    environment: str = DEFAULT_ENVIRONMENT
    application_name: str = catalog.__title__
    content_root: Path = Field(default_factory=Path.cwd)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(default=5000, gt=0, lt=65536)
    default_api_version: str = "1.0"
    hsts_max_age: int = Field(default=31536000, ge=0)
    compression: CompressionSettings = Field(default_factory=CompressionSettings)
    forwarded_headers: ForwardedHeadersSettings = Field(
        default_factory=ForwardedHeadersSettings
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: object) -> object:
        if not isinstance(v, str):
            return v
        level = v.strip().upper()
        # .NET-style names used in the JSON files.
        level = {"INFORMATION": "INFO", "TRACE": "DEBUG"}.get(level, level)
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def normalize_key(key: str) -> str:
    """EnableForHttps -> enable_for_https; already-snake keys are only lowercased."""
    return _CAMEL_BOUNDARY.sub("_", key.strip()).lower()


def _set_path(target: dict[str, Any], path: Sequence[str], value: Any) -> None:
    node = target
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = value


def _split_key(key: str) -> list[str]:
    return [normalize_key(part) for part in _KEY_SEPARATOR.split(key) if part]


def _normalize_mapping(raw: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, Mapping):
            value = _normalize_mapping(value)
        _set_path(normalized, _split_key(key), value)
    return normalized


def merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge `override` into a copy of `base`. Nested mappings merge; other values replace."""
    merged = dict(base)
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, Mapping):
            merged[key] = merge(existing, value)
        else:
            merged[key] = value
    return merged


def read_json_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain a JSON object")
    logger.debug("Loaded settings from %s", path)
    return _normalize_mapping(data)


def read_key_per_file(directory: Path) -> dict[str, Any]:
    """Each file name is a key (sections joined by "__"), its stripped contents the value."""
    if not directory.is_dir():
        return {}
    values: dict[str, Any] = {}
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.name.startswith("."):
            continue
        _set_path(values, _split_key(path.name), path.read_text().strip())
    return values


def read_environment(environ: Mapping[str, str], prefix: str = ENV_PREFIX) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name in sorted(environ):
        if not name.startswith(prefix) or name == ENVIRONMENT_VARIABLE:
            continue
        path = _split_key(name[len(prefix):])
        if path:
            _set_path(values, path, environ[name])
    return values


def read_command_line(args: Sequence[str]) -> dict[str, Any]:
    """Accepts --key=value, --key value and key=value forms."""
    values: dict[str, Any] = {}
    i = 0
    while i < len(args):
        arg = args[i]
        i += 1
        key = arg.lstrip("-/")
        if "=" in key:
            key, value = key.split("=", 1)
        elif arg.startswith("-") and i < len(args) and not args[i].startswith("-"):
            value = args[i]
            i += 1
        else:
            raise ValueError(f"Command-line argument {arg!r} has no value")
        path = _split_key(key)
        if path:
            _set_path(values, path, value)
    return values


def resolve_environment(
    environ: Mapping[str, str], command_line: Mapping[str, Any]
) -> str:
    return str(
        command_line.get("environment")
        or environ.get(ENVIRONMENT_VARIABLE)
        or DEFAULT_ENVIRONMENT
    )


def load_settings(
    args: Sequence[str] = (),
    environ: Mapping[str, str] | None = None,
    content_root: Path | None = None,
) -> AppSettings:
    """Merge every configuration source and validate the result."""
    environ = os.environ if environ is None else environ
    command_line = read_command_line(args)
    root = Path(command_line.get("content_root") or content_root or Path.cwd())
    environment = resolve_environment(environ, command_line)

    merged: dict[str, Any] = {}
    for layer in (
        read_json_file(root / SETTINGS_FILE),
        read_json_file(root / f"appsettings.{environment}.json"),
        read_key_per_file(root / KEY_PER_FILE_DIR),
        read_environment(environ),
        command_line,
    ):
        merged = merge(merged, layer)

    merged["environment"] = environment
    merged["content_root"] = root
    return AppSettings.model_validate(merged)
