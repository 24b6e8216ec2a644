from __future__ import annotations

import pytest

from roundtrip_harness.observability.logging import configure_logging

pytest_plugins = ["pytester"]


@pytest.fixture(autouse=True, scope="session")
def _harness_logging() -> None:
    configure_logging()
