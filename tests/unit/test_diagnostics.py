"""
roundtrip-harness: unit tests for the diagnostic channel

File: tests/unit/test_diagnostics.py

Purpose
- Validate per-test warning capture: membership-and-count comparison, the
  fresh channel after ``assert_and_clear``, and guaranteed release.
"""

from __future__ import annotations

import pytest

from roundtrip_harness.diagnostics import (
    DeprecationLogger,
    DiagnosticChannel,
    capture_diagnostics,
    install_channel,
    installed_channels,
    remove_channel,
)
from roundtrip_harness.errors import UnexpectedDiagnostic

_LOGGER = DeprecationLogger("test_diagnostics")


def test_channel_groups_values_by_header() -> None:
    channel = DiagnosticChannel()
    channel.add_warning("a")
    channel.add_response_header("X-Other", "b")
    channel.add_warning("c")

    assert channel.header == "Warning"
    assert channel.warnings() == ("a", "c")
    assert channel.response_headers() == {"Warning": ("a", "c"), "X-Other": ("b",)}

    channel.close()
    assert channel.closed
    with pytest.raises(RuntimeError, match="closed"):
        channel.add_warning("late")


def test_deprecation_reaches_every_installed_channel() -> None:
    first = DiagnosticChannel()
    second = DiagnosticChannel()
    install_channel(first)
    install_channel(second)
    try:
        message = _LOGGER.deprecated("[{}] is deprecated, use [{}]", "old", "new")
    finally:
        remove_channel(second)
        remove_channel(first)

    assert message == "[old] is deprecated, use [new]"
    assert first.warnings() == second.warnings() == (message,)
    assert installed_channels() == ()


def test_deprecation_without_channels_only_logs(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger=_LOGGER.logger.name):
        _LOGGER.deprecated("nobody listens")

    assert caplog.messages == ["nobody listens"]


def test_channel_install_rules() -> None:
    channel = DiagnosticChannel()
    install_channel(channel)
    try:
        with pytest.raises(ValueError, match="already installed"):
            install_channel(channel)
    finally:
        remove_channel(channel)

    with pytest.raises(ValueError, match="not installed"):
        remove_channel(channel)
    channel.close()
    with pytest.raises(ValueError, match="closed"):
        install_channel(channel)


def test_assert_and_clear_ignores_order_and_resets_channel() -> None:
    with capture_diagnostics() as capture:
        _LOGGER.deprecated("b")
        _LOGGER.deprecated("a")
        first_channel = capture.channel

        capture.assert_and_clear("a", "b")

        assert first_channel.closed
        assert capture.channel is not first_channel
        assert capture.warnings() == ()
        _LOGGER.deprecated("c")
        capture.assert_and_clear("c")


def test_assert_and_clear_counts_duplicates() -> None:
    with capture_diagnostics() as capture:
        _LOGGER.deprecated("twice")
        _LOGGER.deprecated("twice")

        with pytest.raises(UnexpectedDiagnostic) as excinfo:
            capture.assert_and_clear("twice")
        assert excinfo.value.unexpected == ("twice",)
        assert excinfo.value.missing == ()

        capture.assert_and_clear("twice", "twice")


def test_missing_expected_warning_is_reported() -> None:
    with capture_diagnostics() as capture:
        with pytest.raises(UnexpectedDiagnostic, match="expected warning headers not emitted"):
            capture.assert_and_clear("never emitted")


def test_leftover_warning_fails_clean_exit_and_still_releases() -> None:
    with pytest.raises(UnexpectedDiagnostic, match=r"unexpected warning headers: \['leftover'\]"):
        with capture_diagnostics() as capture:
            _LOGGER.deprecated("leftover")

    assert capture.channel.closed
    assert installed_channels() == ()


def test_body_exception_propagates_and_releases() -> None:
    with pytest.raises(KeyError):
        with capture_diagnostics() as capture:
            _LOGGER.deprecated("ignored because the body failed")
            raise KeyError("boom")

    assert capture.channel.closed
    assert installed_channels() == ()


def test_custom_header_is_honored() -> None:
    with capture_diagnostics("X-Deprecation") as capture:
        _LOGGER.deprecated("custom")
        assert capture.channel.response_headers() == {"X-Deprecation": ("custom",)}
        capture.assert_and_clear("custom")
