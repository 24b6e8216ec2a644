"""
roundtrip-harness: runtime config loader.

File: src/roundtrip_harness/config/loader.py

Purpose
- Load the effective harness config from defaults, a TOML file, and env vars.

Functional requirements
- Precedence: env (ROUNDTRIP_) > file > defaults.
- TOML loading via ``tomllib``; only the ``[harness]`` table is read.
- Deterministic environment variable mapping and coercion.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

from roundtrip_harness.config.schema import (
    CONFIG_SECTION,
    ConfigValidationError,
    HarnessConfig,
    config_from_mapping,
)

DEFAULT_CONFIG_FILE: Final[str] = "roundtrip.toml"
ENV_PREFIX: Final[str] = "ROUNDTRIP_"
CONFIG_PATH_ENV: Final[str] = f"{ENV_PREFIX}CONFIG"

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})
_UNSET_TOKENS: Final[frozenset[str]] = frozenset({"", "none", "null", "random"})


@dataclass(frozen=True, slots=True)
class _Binding:
    key: str
    value_type: Literal["str", "int", "optional_int", "bool", "csv"]


_BINDINGS: Final[tuple[_Binding, ...]] = (
    _Binding("trial_count", "int"),
    _Binding("seed", "optional_int"),
    _Binding("document_formats", "csv"),
    _Binding("pretty_print", "str"),
    _Binding("root_skip_tokens", "int"),
    _Binding("strict_parsing", "bool"),
    _Binding("warning_header", "str"),
    _Binding("log_level", "str"),
    _Binding("log_json", "bool"),
)


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded, coerced, or validated."""


def load_harness_config(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> HarnessConfig:
    """Load effective config with deterministic precedence: env > file > defaults.

    Without ``config_path`` the file named by ``ROUNDTRIP_CONFIG`` is used, and
    failing that ``roundtrip.toml`` in the working directory if it exists.
    """

    env_map = dict(os.environ if environ is None else environ)
    explicit_path = config_path is not None or bool(env_map.get(CONFIG_PATH_ENV, "").strip())
    resolved_path = _resolve_config_path(config_path, env_map)

    file_payload = _load_toml_file(resolved_path, required=explicit_path)
    section = file_payload.get(CONFIG_SECTION, {})
    if not isinstance(section, Mapping):
        raise ConfigLoadError(f"[{CONFIG_SECTION}] in {resolved_path} must be a table")

    merged: dict[str, Any] = dict(section)
    merged.update(_collect_env_overrides(env_map))

    try:
        return config_from_mapping(merged)
    except ConfigValidationError as exc:
        raise ConfigLoadError(str(exc)) from exc


def dump_effective_config(config: HarnessConfig) -> str:
    """Return deterministic JSON dump of the effective config."""

    return json.dumps(config.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _resolve_config_path(config_path: str | Path | None, environ: Mapping[str, str]) -> Path:
    if config_path is None:
        from_env = environ.get(CONFIG_PATH_ENV, "").strip()
        if from_env:
            return Path(from_env).expanduser().resolve()
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def _load_toml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            parsed = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    return parsed


def _collect_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for binding in _BINDINGS:
        env_name = _env_name_for_key(binding.key)
        raw = environ.get(env_name)
        if raw is None:
            continue
        overrides[binding.key] = _coerce_env(raw, binding.value_type, env_name, binding.key)
    return overrides


def _coerce_env(
    raw: str,
    value_type: Literal["str", "int", "optional_int", "bool", "csv"],
    env_name: str,
    key: str,
) -> object:
    value = raw.strip()
    if value_type == "str":
        return value
    if value_type == "csv":
        return [part.strip() for part in value.split(",") if part.strip()]
    if value_type == "optional_int" and value.lower() in _UNSET_TOKENS:
        return None
    if value_type in ("int", "optional_int"):
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} -> {key} must be an integer") from exc

    lowered = value.lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise ConfigLoadError(f"{env_name} -> {key} must be a boolean (true/false/1/0/yes/no/on/off)")


def _env_name_for_key(key: str) -> str:
    return ENV_PREFIX + key.upper()


__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "load_harness_config",
]
