from datetime import datetime, timedelta, timezone

import pytest

from queuedrop.aggregate import Queue
from queuedrop.manager import QueueManager
from queuedrop.notifications import InMemoryChannel
from queuedrop.repository import InMemoryQueueRepository

T0 = datetime(2026, 1, 27, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue():
    return Queue.create(business_id="b1", name="Main", slug=" Main ", created_at=T0)


@pytest.fixture
def repo():
    return InMemoryQueueRepository()


@pytest.fixture
def channel():
    return InMemoryChannel()


@pytest.fixture
def manager(repo, channel, clock):
    return QueueManager(repo, channel, clock=clock)


@pytest.fixture
def queue_id(manager):
    return manager.create_queue(business_id="b1", name="Main", slug="main").unwrap().id
