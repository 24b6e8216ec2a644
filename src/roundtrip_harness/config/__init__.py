"""
roundtrip-harness config package public API.

File: src/roundtrip_harness/config/__init__.py

Purpose
- Export config loading/validation entrypoints and public error types.
"""

from roundtrip_harness.config.loader import (
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_harness_config,
)
from roundtrip_harness.config.schema import (
    CONFIG_SECTION,
    DEFAULT_ROOT_SKIP_TOKENS,
    DEFAULT_TRIAL_COUNT,
    ConfigValidationError,
    ConfigValidationIssue,
    HarnessConfig,
    PrettyPrintMode,
    config_from_mapping,
    default_config,
)

__all__ = [
    "CONFIG_PATH_ENV",
    "CONFIG_SECTION",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_ROOT_SKIP_TOKENS",
    "DEFAULT_TRIAL_COUNT",
    "ENV_PREFIX",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "HarnessConfig",
    "PrettyPrintMode",
    "config_from_mapping",
    "default_config",
    "dump_effective_config",
    "load_harness_config",
]
