from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_TABLES,
    MapperConfig,
    PersistenceConfig,
    RemoteConfig,
    TableConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config/mapper.yml
- Validate against the bundled JSON schema
- Apply defaults (branch=main, timeout 10s, original table paths)
- Overlay environment variables (.env is loaded by the CLI beforehand)

Environment precedence follows the usual rule for this tool: a variable that is
set wins over the YAML value, and the YAML value wins over the built-in default.
GITHUB_TOKEN is never read from YAML.
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/mapper.yml")

SERVERLESS_MARKERS = ("VERCEL", "AWS_LAMBDA_FUNCTION_NAME", "NETLIFY")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or data fails validation.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _env_flag(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() == "true"


def is_serverless(environ: Mapping[str, str]) -> bool:
    return any(environ.get(k) for k in SERVERLESS_MARKERS)


def _build_remote(raw: dict[str, Any], environ: Mapping[str, str]) -> RemoteConfig:
    enabled = _env_flag(environ.get("ENABLE_GITHUB_PERSISTENCE"))
    if enabled is None:
        enabled = bool(raw.get("enabled", False))
    return RemoteConfig(
        enabled=enabled,
        owner=environ.get("GITHUB_OWNER") or raw.get("owner"),
        repo=environ.get("GITHUB_REPO") or raw.get("repo"),
        branch=environ.get("GITHUB_BRANCH") or raw.get("branch", "main"),
        token=environ.get("GITHUB_TOKEN") or None,
        timeout_seconds=float(raw.get("timeout_seconds", 10.0)),
        retry_on_conflict=bool(raw.get("retry_on_conflict", False)),
        api_base=raw.get("api_base", "https://api.github.com"),
    )


def _build_tables(raw: dict[str, Any]) -> dict[str, TableConfig]:
    tables: dict[str, TableConfig] = {}
    for name, default in DEFAULT_TABLES.items():
        override = raw.get(name) or {}
        tables[name] = replace(
            default,
            remote_path=override.get("remote_path", default.remote_path),
            local_path=override.get("local_path", default.local_path),
        )
    return tables


def load_config(path: Path, environ: Mapping[str, str] | None = None) -> MapperConfig:
    if environ is None:
        environ = os.environ
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    persistence_raw = data.get("persistence") or {}
    local_raw = persistence_raw.get("local") or {}
    # serverless ではローカルファイル層を使わない
    local_enabled = bool(local_raw.get("enabled", True)) and not is_serverless(environ)

    persistence = PersistenceConfig(
        remote=_build_remote(persistence_raw.get("remote") or {}, environ),
        local_enabled=local_enabled,
        local_base_directory=Path(local_raw.get("base_directory", ".")),
        tables=_build_tables(data.get("tables") or {}),
    )
    return MapperConfig(
        output_directory=data["output_directory"],
        persistence=persistence,
    )
