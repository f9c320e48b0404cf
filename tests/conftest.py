"""pytest configuration file."""

import asyncio

import pytest
from loguru import logger

from nanopanel.channels import MemoryChannel
from nanopanel.config.schema import Config


class FakeClock:
    """Manually advanced clock for cooldown tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config():
    """Default configuration, isolated from any NANOPANEL_ environment overrides."""
    return Config.model_validate({})


@pytest.fixture
def channel():
    return MemoryChannel()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settle():
    """Let published events reach their collector, then wait for processing to finish."""

    async def _settle(collector=None, rounds: int = 5):
        for _ in range(rounds):
            await asyncio.sleep(0)
        if collector is not None:
            await collector.drain()
            for _ in range(rounds):
                await asyncio.sleep(0)

    return _settle


@pytest.fixture
def logged_errors():
    """Collect ERROR-level loguru records emitted during the test."""
    records = []
    sink_id = logger.add(lambda message: records.append(message.record["message"]), level="ERROR")
    yield records
    logger.remove(sink_id)
