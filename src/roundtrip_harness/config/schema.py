"""
roundtrip-harness: configuration schema and validation.

File: src/roundtrip_harness/config/schema.py

Purpose
- Define the harness defaults and strict validation of the ``[harness]`` table.

Functional requirements
- Validate payloads and report every problem with a dotted field path.
- Produce an immutable ``HarnessConfig`` from a validated payload.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Final

from roundtrip_harness.document.formats import DocumentFormat
from roundtrip_harness.document.parser import MIN_ROOT_SKIP_TOKENS

CONFIG_SECTION: Final[str] = "harness"
DEFAULT_TRIAL_COUNT: Final[int] = 20
DEFAULT_ROOT_SKIP_TOKENS: Final[int] = 2
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")


class PrettyPrintMode(StrEnum):
    RANDOM = "random"
    ALWAYS = "always"
    NEVER = "never"


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


@dataclass(frozen=True, slots=True)
class HarnessConfig:
    trial_count: int = DEFAULT_TRIAL_COUNT
    seed: int | None = None
    document_formats: tuple[DocumentFormat, ...] = field(
        default_factory=lambda: tuple(DocumentFormat)
    )
    pretty_print: PrettyPrintMode = PrettyPrintMode.RANDOM
    root_skip_tokens: int = DEFAULT_ROOT_SKIP_TOKENS
    strict_parsing: bool = True
    warning_header: str = "Warning"
    log_level: str = "WARNING"
    log_json: bool = False

    def __post_init__(self) -> None:
        # Construction goes through the same checks as file and env payloads.
        validated = _validate(self.to_dict(), CONFIG_SECTION)
        for name, value in validated.items():
            object.__setattr__(self, name, value)

    def with_overrides(self, **overrides: object) -> HarnessConfig:
        return config_from_mapping({**self.to_dict(), **overrides})

    def to_dict(self) -> dict[str, Any]:
        return {
            "trial_count": self.trial_count,
            "seed": self.seed,
            "document_formats": [str(fmt) for fmt in self.document_formats],
            "pretty_print": str(self.pretty_print),
            "root_skip_tokens": self.root_skip_tokens,
            "strict_parsing": self.strict_parsing,
            "warning_header": self.warning_header,
            "log_level": self.log_level,
            "log_json": self.log_json,
        }


def default_config() -> HarnessConfig:
    return HarnessConfig()


def config_from_mapping(
    payload: Mapping[str, object], *, path: str = CONFIG_SECTION
) -> HarnessConfig:
    """Validate a ``[harness]`` payload (all keys optional) and build a config."""

    if not isinstance(payload, Mapping):
        raise ConfigValidationError(
            (ConfigValidationIssue(path, f"expected table, got {type(payload).__name__}"),)
        )
    validated = _validate(payload, path)
    return HarnessConfig(**validated)


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


_ALLOWED_KEYS: Final[frozenset[str]] = frozenset(
    {
        "trial_count",
        "seed",
        "document_formats",
        "pretty_print",
        "root_skip_tokens",
        "strict_parsing",
        "warning_header",
        "log_level",
        "log_json",
    }
)


def _validate(payload: Mapping[str, object], path: str) -> dict[str, Any]:
    issues = _IssueCollector()
    for key in sorted(payload):
        if key not in _ALLOWED_KEYS:
            issues.add(_join(path, key), "unknown field")

    out: dict[str, Any] = {}

    if "trial_count" in payload:
        parsed_trials = _as_int(
            payload["trial_count"], _join(path, "trial_count"), issues, minimum=1
        )
        if parsed_trials is not None:
            out["trial_count"] = parsed_trials

    if "seed" in payload:
        raw_seed = payload["seed"]
        if raw_seed is None:
            out["seed"] = None
        else:
            parsed_seed = _as_int(raw_seed, _join(path, "seed"), issues, minimum=0)
            if parsed_seed is not None:
                out["seed"] = parsed_seed

    if "document_formats" in payload:
        parsed_formats = _as_formats(
            payload["document_formats"], _join(path, "document_formats"), issues
        )
        if parsed_formats is not None:
            out["document_formats"] = parsed_formats

    if "pretty_print" in payload:
        parsed_pretty = _as_enum(
            payload["pretty_print"],
            _join(path, "pretty_print"),
            issues,
            allowed_values=tuple(mode.value for mode in PrettyPrintMode),
        )
        if parsed_pretty is not None:
            out["pretty_print"] = PrettyPrintMode(parsed_pretty)

    if "root_skip_tokens" in payload:
        parsed_skip = _as_int(
            payload["root_skip_tokens"],
            _join(path, "root_skip_tokens"),
            issues,
            minimum=MIN_ROOT_SKIP_TOKENS,
        )
        if parsed_skip is not None:
            out["root_skip_tokens"] = parsed_skip

    for flag in ("strict_parsing", "log_json"):
        if flag in payload:
            parsed_flag = _as_bool(payload[flag], _join(path, flag), issues)
            if parsed_flag is not None:
                out[flag] = parsed_flag

    if "warning_header" in payload:
        parsed_header = _as_str(payload["warning_header"], _join(path, "warning_header"), issues)
        if parsed_header is not None:
            out["warning_header"] = parsed_header

    if "log_level" in payload:
        raw_level = payload["log_level"]
        parsed_level = _as_enum(
            raw_level.upper() if isinstance(raw_level, str) else raw_level,
            _join(path, "log_level"),
            issues,
            allowed_values=LOG_LEVELS,
        )
        if parsed_level is not None:
            out["log_level"] = parsed_level

    if issues.has_issues:
        raise ConfigValidationError(issues.items())
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _as_formats(
    value: object, path: str, issues: _IssueCollector
) -> tuple[DocumentFormat, ...] | None:
    if isinstance(value, str) or not isinstance(value, Sequence):
        issues.add(path, f"expected array of strings, got {type(value).__name__}")
        return None
    if not value:
        issues.add(path, "must list at least one format")
        return None

    allowed = tuple(fmt.value for fmt in DocumentFormat)
    formats: list[DocumentFormat] = []
    for index, item in enumerate(value):
        parsed = _as_enum(item, f"{path}[{index}]", issues, allowed_values=allowed)
        if parsed is None:
            continue
        fmt = DocumentFormat(parsed)
        if fmt in formats:
            issues.add(f"{path}[{index}]", f"duplicate format {parsed!r}")
            continue
        formats.append(fmt)
    return tuple(formats)


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


__all__ = [
    "CONFIG_SECTION",
    "DEFAULT_ROOT_SKIP_TOKENS",
    "DEFAULT_TRIAL_COUNT",
    "LOG_LEVELS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "HarnessConfig",
    "PrettyPrintMode",
    "config_from_mapping",
    "default_config",
]
