"""Per-test diagnostic side channel for deprecation-style warnings.

Domain code reports deprecated usage through ``DeprecationLogger.deprecated``.
Each message is logged and appended to every channel installed in the current
context. Tests install a channel with ``capture_diagnostics()``; the capture
asserts on exit that nothing was left unaccounted for, and
``DiagnosticCapture.assert_and_clear`` lets a test check expected messages
mid-way and continue with a clean channel.
"""

from __future__ import annotations

import contextvars
import logging
from collections import Counter
from contextlib import contextmanager
from typing import TYPE_CHECKING, Final

from roundtrip_harness.errors import UnexpectedDiagnostic

if TYPE_CHECKING:
    from collections.abc import Iterator

DEPRECATION_HEADER: Final[str] = "Warning"

_INSTALLED_CHANNELS: contextvars.ContextVar[tuple[DiagnosticChannel, ...]] = (
    contextvars.ContextVar("roundtrip_harness_diagnostic_channels", default=())
)


class DiagnosticChannel:
    """Accumulates response-header style messages until closed."""

    def __init__(self, header: str = DEPRECATION_HEADER) -> None:
        if not isinstance(header, str) or not header.strip():
            raise ValueError("header must be a non-empty string")
        self._header = header.strip()
        self._headers: dict[str, list[str]] = {}
        self._closed = False

    @property
    def header(self) -> str:
        return self._header

    @property
    def closed(self) -> bool:
        return self._closed

    def add_response_header(self, name: str, value: str) -> None:
        if self._closed:
            raise RuntimeError("diagnostic channel is closed")
        self._headers.setdefault(name, []).append(value)

    def add_warning(self, message: str) -> None:
        self.add_response_header(self._header, message)

    def response_headers(self) -> dict[str, tuple[str, ...]]:
        return {name: tuple(values) for name, values in self._headers.items()}

    def warnings(self) -> tuple[str, ...]:
        return tuple(self._headers.get(self._header, ()))

    def close(self) -> None:
        self._headers.clear()
        self._closed = True


def install_channel(channel: DiagnosticChannel) -> None:
    if channel.closed:
        raise ValueError("cannot install a closed diagnostic channel")
    installed = _INSTALLED_CHANNELS.get()
    if any(existing is channel for existing in installed):
        raise ValueError("diagnostic channel is already installed")
    _INSTALLED_CHANNELS.set((*installed, channel))


def remove_channel(channel: DiagnosticChannel) -> None:
    installed = _INSTALLED_CHANNELS.get()
    if not any(existing is channel for existing in installed):
        raise ValueError("diagnostic channel is not installed")
    _INSTALLED_CHANNELS.set(tuple(existing for existing in installed if existing is not channel))


def installed_channels() -> tuple[DiagnosticChannel, ...]:
    return _INSTALLED_CHANNELS.get()


class DeprecationLogger:
    """Reports deprecated usage to the log and to every installed channel."""

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(f"roundtrip_harness.deprecation.{name}")

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def deprecated(self, message: str, *args: object) -> str:
        formatted = message.format(*args) if args else message
        for channel in installed_channels():
            channel.add_warning(formatted)
        self._logger.warning(formatted)
        return formatted


class DiagnosticCapture:
    """Handle for a channel installed for the duration of one test."""

    def __init__(self, header: str = DEPRECATION_HEADER) -> None:
        self._header = header
        self._channel = DiagnosticChannel(header)
        install_channel(self._channel)
        self._released = False

    @property
    def channel(self) -> DiagnosticChannel:
        return self._channel

    def warnings(self) -> tuple[str, ...]:
        return self._channel.warnings()

    def assert_and_clear(self, *expected: str) -> None:
        """Assert the channel holds exactly ``expected`` (any order), then reset it."""

        actual = Counter(self._channel.warnings())
        wanted = Counter(expected)
        if actual != wanted:
            raise UnexpectedDiagnostic(
                unexpected=sorted((actual - wanted).elements()),
                missing=sorted((wanted - actual).elements()),
            )
        self._swap_channel()

    def verify_empty(self) -> None:
        leftover = self._channel.warnings()
        if leftover:
            raise UnexpectedDiagnostic(unexpected=leftover)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        remove_channel(self._channel)
        self._channel.close()

    def _swap_channel(self) -> None:
        if self._released:
            raise RuntimeError("diagnostic capture already released")
        remove_channel(self._channel)
        self._channel.close()
        self._channel = DiagnosticChannel(self._header)
        install_channel(self._channel)


@contextmanager
def capture_diagnostics(header: str = DEPRECATION_HEADER) -> Iterator[DiagnosticCapture]:
    """Install a fresh channel; on a clean exit assert it was left empty.

    The channel is always uninstalled and closed, including when the body raises.
    """

    capture = DiagnosticCapture(header)
    try:
        yield capture
        capture.verify_empty()
    finally:
        capture.release()


__all__ = [
    "DEPRECATION_HEADER",
    "DeprecationLogger",
    "DiagnosticCapture",
    "DiagnosticChannel",
    "capture_diagnostics",
    "install_channel",
    "installed_channels",
    "remove_channel",
]
