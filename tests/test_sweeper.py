import logging

import pytest

from queuedrop.manager import QueueManager
from queuedrop.models import CustomerStatus
from queuedrop.notifications import InMemoryChannel, PositionChanged, QueueUpdateKind, StatusChanged
from queuedrop.repository import InMemoryQueueRepository
from queuedrop.settings import QueueSettings
from queuedrop.sweeper import AutoExpirySweeper


def _status(repo, queue_id, customer_id):
    queue, _ = repo.load(queue_id)
    return queue.get_customer(customer_id).status


@pytest.fixture
def ten_minute_queue(manager, queue_id):
    manager.update_settings(queue_id, QueueSettings(no_show_timeout_minutes=10)).unwrap()
    return queue_id


def test_called_customer_expires_at_timeout(manager, repo, channel, clock, ten_minute_queue):
    qid = ten_minute_queue
    a = manager.join_queue(qid, "A").unwrap()
    b = manager.join_queue(qid, "B").unwrap()
    c = manager.join_queue(qid, "C").unwrap()
    manager.call_next(qid).unwrap()  # A called at T
    sweeper = AutoExpirySweeper(manager)

    clock.advance(minutes=9)
    report = sweeper.sweep_once()
    assert report.expired == 0
    assert _status(repo, qid, a.customer_id) is CustomerStatus.CALLED

    batches_before = len(channel.batches)
    clock.advance(minutes=1)
    report = sweeper.sweep_once()
    assert report.expired == 1
    assert _status(repo, qid, a.customer_id) is CustomerStatus.NO_SHOW

    # waiting customers keep their positions; only A hears about it
    batch = channel.batches[batches_before]
    assert StatusChanged(a.token, CustomerStatus.NO_SHOW) in batch.events
    assert not any(isinstance(e, PositionChanged) for e in batch.events)
    assert QueueUpdateKind.CUSTOMER_NO_SHOW in channel.queue_updates(qid)
    assert manager.get_position(b.token).unwrap().position == 1
    assert manager.get_position(c.token).unwrap().position == 2

    # nothing left to do on the next pass
    assert sweeper.sweep_once().expired == 0


def test_sweeper_skips_customer_served_after_scan(clock, caplog):
    class ServeDuringReload(InMemoryQueueRepository):
        hook = None
        loads = 0

        def load(self, queue_id):
            self.loads += 1
            # second load is the re-evaluation inside expire_if_due
            if self.loads == 2 and self.hook:
                self.hook()
            return super().load(queue_id)

    repo = ServeDuringReload()
    manager = QueueManager(repo, InMemoryChannel(), clock=clock)
    qid = manager.create_queue(business_id="b", name="Q", slug="q").unwrap().id
    a = manager.join_queue(qid, "A").unwrap()
    manager.call_next(qid).unwrap()
    clock.advance(minutes=30)

    repo.loads = 0
    repo.hook = lambda: manager.mark_served(qid, a.customer_id)
    report = AutoExpirySweeper(manager).sweep_once()

    assert report.expired == 0
    assert report.skipped == 1
    assert _status(repo, qid, a.customer_id) is CustomerStatus.SERVED


def test_sweeper_reloads_after_conflict(clock):
    class ConflictOnce(InMemoryQueueRepository):
        armed = False

        def save(self, queue, expected_version):
            if self.armed:
                self.armed = False
                # someone else wrote first: bump the stored version
                other, v = self.load(queue.id)
                super().save(other, v)
            return super().save(queue, expected_version)

    repo = ConflictOnce()
    manager = QueueManager(repo, InMemoryChannel(), clock=clock)
    qid = manager.create_queue(business_id="b", name="Q", slug="q").unwrap().id
    a = manager.join_queue(qid, "A").unwrap()
    manager.call_next(qid).unwrap()
    clock.advance(minutes=5)

    repo.armed = True
    report = AutoExpirySweeper(manager).sweep_once()

    assert report.conflicts == 1
    assert report.expired == 1
    assert _status(repo, qid, a.customer_id) is CustomerStatus.NO_SHOW


def test_one_bad_record_does_not_block_others(manager, repo, clock, queue_id, caplog):
    a = manager.join_queue(queue_id, "A").unwrap()
    b = manager.join_queue(queue_id, "B").unwrap()
    manager.call_next(queue_id).unwrap()
    manager.call_next(queue_id).unwrap()

    # corrupt A: Called with no call timestamp
    queue, v = repo.load(queue_id)
    queue.get_customer(a.customer_id).called_at = None
    repo.save(queue, v).unwrap()

    clock.advance(minutes=5)
    with caplog.at_level(logging.ERROR, logger="queuedrop.sweeper"):
        report = AutoExpirySweeper(manager).sweep_once()

    assert report.failures == 1
    assert report.expired == 1
    assert _status(repo, queue_id, b.customer_id) is CustomerStatus.NO_SHOW
    assert _status(repo, queue_id, a.customer_id) is CustomerStatus.CALLED
    assert "auto-expiry failed" in caplog.text


def test_inactive_queues_are_not_swept(manager, repo, clock, queue_id):
    a = manager.join_queue(queue_id, "A").unwrap()
    manager.call_next(queue_id).unwrap()
    manager.deactivate_queue(queue_id).unwrap()

    clock.advance(minutes=60)
    assert AutoExpirySweeper(manager).sweep_once().expired == 0
    assert _status(repo, queue_id, a.customer_id) is CustomerStatus.CALLED


def test_start_stop(manager):
    sweeper = AutoExpirySweeper(manager)
    sweeper.start(interval=0.01)
    sweeper.stop()
    assert sweeper._thread is None


def test_rejects_zero_attempts(manager):
    with pytest.raises(ValueError):
        AutoExpirySweeper(manager, max_attempts=0)
