"""Shared fixtures."""

import pytest

from fakes import FakeBus, FakeSignalSource
from nmbridge.core.config import Config
from nmbridge.network.context import NetworkContext
from nmbridge.network.resolver import always_reachable


@pytest.fixture
def bus() -> FakeBus:
    return FakeBus()


@pytest.fixture
def signals() -> FakeSignalSource:
    return FakeSignalSource()


@pytest.fixture
def config() -> Config:
    return Config.model_validate(
        {
            "reachability": {"method": "none"},
            "notifier": {"debounce_ms": 100, "poll_interval": 0.05},
        }
    )


@pytest.fixture
def context(bus, signals, config):
    ctx = NetworkContext(
        config,
        client_factory=lambda: bus,
        signal_factory=lambda: signals,
        probe=always_reachable,
    )
    ctx.initialize()
    yield ctx
    ctx.close()
