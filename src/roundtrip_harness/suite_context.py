"""Suite-scoped state: the frozen type registry shared by every trial of a suite."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from roundtrip_harness.config.schema import HarnessConfig
from roundtrip_harness.filters import filter_families
from roundtrip_harness.wire import FamilyEntry, TypeRegistry

_LOGGER = logging.getLogger(__name__)


class SuiteContext:
    """Owns the registry built once before a suite and dropped after it."""

    __slots__ = ("_config", "_registry")

    def __init__(self, registry: TypeRegistry, config: HarnessConfig) -> None:
        self._registry: TypeRegistry | None = registry
        self._config = config

    @property
    def registry(self) -> TypeRegistry:
        if self._registry is None:
            raise RuntimeError("suite context is closed")
        return self._registry

    @property
    def config(self) -> HarnessConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._registry is None

    def close(self) -> None:
        if self._registry is None:
            return
        _LOGGER.debug("closing suite context with %d registry entries", len(self._registry))
        self._registry = None


def build_suite_context(
    families: Iterable[FamilyEntry] = (),
    *,
    config: HarnessConfig | None = None,
) -> SuiteContext:
    """Register the built-in filter families plus ``families`` and freeze the registry."""

    registry = TypeRegistry(filter_families())
    registry.register_all(families)
    registry.freeze()
    _LOGGER.debug("built suite registry with %d entries", len(registry))
    return SuiteContext(registry, config if config is not None else HarnessConfig())


@contextmanager
def open_suite_context(
    families: Iterable[FamilyEntry] = (),
    *,
    config: HarnessConfig | None = None,
) -> Iterator[SuiteContext]:
    context = build_suite_context(families, config=config)
    try:
        yield context
    finally:
        context.close()


__all__ = ["SuiteContext", "build_suite_context", "open_suite_context"]
