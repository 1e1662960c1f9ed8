"""
Shared fixtures: in-memory remote procedure backend + store with a fake clock.
"""

import pytest

from services.data_store import DataStore
from tests.fakes import FakeClock, FakeRPC, TODAY, default_responses


@pytest.fixture
def fake_rpc():
    return FakeRPC(default_responses())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(fake_rpc, clock):
    return DataStore(fake_rpc, clock=clock, today=lambda: TODAY)
