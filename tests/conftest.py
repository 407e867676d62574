"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for cloud_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from cloud_mock import FakeClock  # noqa: E402
from provisioner.config import ProviderConfig  # noqa: E402
from provisioner.waiter import StateWaiter  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> ProviderConfig:
    """Provider config with the production polling defaults."""
    return ProviderConfig()


@pytest.fixture
def waiter(clock: FakeClock, config: ProviderConfig) -> StateWaiter:
    return StateWaiter.from_config(config, sleep=clock.sleep, clock=clock)
