import logging

import pytest

from queuedrop.errors import ErrorCode
from queuedrop.manager import DEFAULT_CALLED_MESSAGE, QueueManager
from queuedrop.models import CustomerStatus
from queuedrop.notifications import InMemoryChannel, QueueUpdateKind
from queuedrop.repository import InMemoryQueueRepository
from queuedrop.settings import QueueSettings


class RacingRepository(InMemoryQueueRepository):
    """Runs `interloper` once, right after the next load hands out a snapshot."""

    def __init__(self) -> None:
        super().__init__()
        self.interloper = None

    def load(self, queue_id):
        loaded = super().load(queue_id)
        if self.interloper is not None:
            run, self.interloper = self.interloper, None
            run()
        return loaded


class ExplodingChannel:
    def publish(self, batch):
        raise ConnectionError("broker down")


def test_join_returns_token_and_position(manager, queue_id):
    first = manager.join_queue(queue_id, "Ada", party_size=2).unwrap()
    second = manager.join_queue(queue_id, "Bob").unwrap()

    assert first.position == 1
    assert second.position == 2
    assert first.token != second.token
    assert first.queue_name == "Main"


def test_join_unknown_queue(manager):
    result = manager.join_queue("missing", "Ada")
    assert result.error.code is ErrorCode.QUEUE_NOT_FOUND


def test_rejected_operation_publishes_nothing(manager, channel, queue_id):
    before = len(channel.batches)
    assert manager.call_next(queue_id).error.code is ErrorCode.EMPTY
    assert manager.join_queue(queue_id, "").error.code is ErrorCode.INVALID_NAME
    assert len(channel.batches) == before


def test_concurrent_call_next_one_rejected_then_retry(clock):
    repo = RacingRepository()
    channel = InMemoryChannel()
    manager = QueueManager(repo, channel, clock=clock)
    queue_id = manager.create_queue(business_id="b", name="Q", slug="q").unwrap().id
    a = manager.join_queue(queue_id, "A").unwrap()
    b = manager.join_queue(queue_id, "B").unwrap()

    # another dispatcher calls next between our load and our save
    winner = {}
    repo.interloper = lambda: winner.setdefault("result", manager.call_next(queue_id))
    batches_before = len(channel.batches)

    lost = manager.call_next(queue_id)
    assert winner["result"].unwrap().id == a.customer_id
    assert lost.error.code is ErrorCode.VERSION_CONFLICT
    # only the winner's events went out
    assert len(channel.batches) == batches_before + 1

    retried = manager.call_next(queue_id).unwrap()
    assert retried.id == b.customer_id


def test_get_position_view(manager, queue_id, clock):
    manager.update_settings(queue_id, QueueSettings(estimated_service_minutes=4, welcome_message="Hi")).unwrap()
    a = manager.join_queue(queue_id, "A").unwrap()
    b = manager.join_queue(queue_id, "B").unwrap()
    c = manager.join_queue(queue_id, "C").unwrap()

    view = manager.get_position(c.token).unwrap()
    assert view.status is CustomerStatus.WAITING
    assert view.position == 3
    assert view.estimated_wait_minutes == 8
    assert view.welcome_message == "Hi"
    assert view.called_message is None

    manager.call_next(queue_id).unwrap()
    called = manager.get_position(a.token).unwrap()
    assert called.position is None
    assert called.estimated_wait_minutes is None
    assert called.called_message == DEFAULT_CALLED_MESSAGE

    manager.mark_served(queue_id, a.customer_id).unwrap()
    assert manager.get_position(b.token).unwrap().recent_activity == 1
    clock.advance(minutes=31)
    assert manager.get_position(b.token).unwrap().recent_activity == 0


def test_get_position_unknown_token(manager):
    assert manager.get_position("nope").error.code is ErrorCode.CUSTOMER_NOT_FOUND


def test_no_show_through_manager(manager, queue_id):
    a = manager.join_queue(queue_id, "A").unwrap()
    assert manager.mark_no_show(queue_id, a.customer_id).error.code is ErrorCode.INVALID_TRANSITION
    manager.call_next(queue_id).unwrap()
    assert manager.mark_no_show(queue_id, a.customer_id).unwrap().status is CustomerStatus.NO_SHOW


def test_pause_and_resume(manager, queue_id):
    manager.pause_queue(queue_id).unwrap()
    assert manager.join_queue(queue_id, "A").error.code is ErrorCode.PAUSED
    manager.resume_queue(queue_id).unwrap()
    assert manager.join_queue(queue_id, "A").ok


def test_deactivated_queue_rejects_joins_and_calls(manager, queue_id):
    manager.join_queue(queue_id, "A").unwrap()
    manager.deactivate_queue(queue_id).unwrap()
    assert manager.join_queue(queue_id, "B").error.code is ErrorCode.NOT_ACTIVE
    assert manager.call_next(queue_id).error.code is ErrorCode.NOT_ACTIVE
    manager.activate_queue(queue_id).unwrap()
    assert manager.call_next(queue_id).ok


def test_list_customers_shows_active_only(manager, queue_id):
    a = manager.join_queue(queue_id, "A").unwrap()
    b = manager.join_queue(queue_id, "B").unwrap()
    c = manager.join_queue(queue_id, "C").unwrap()
    manager.call_next(queue_id).unwrap()
    manager.remove_customer(queue_id, b.customer_id).unwrap()

    listed = manager.list_customers(queue_id).unwrap()
    assert [(x.id, x.status) for x in listed] == [
        (c.customer_id, CustomerStatus.WAITING),
        (a.customer_id, CustomerStatus.CALLED),
    ]


def test_save_push_subscription(manager, repo, queue_id):
    a = manager.join_queue(queue_id, "A").unwrap()
    manager.save_push_subscription(a.token, '{"endpoint":"x"}').unwrap()
    queue, _ = repo.load(queue_id)
    assert queue.get_customer_by_token(a.token).push_subscription == '{"endpoint":"x"}'
    assert manager.save_push_subscription("nope", None).error.code is ErrorCode.CUSTOMER_NOT_FOUND


def test_invalid_settings_rejected(manager, queue_id):
    result = manager.update_settings(queue_id, QueueSettings(max_capacity=-1))
    assert result.error.code is ErrorCode.INVALID_SETTINGS


def test_find_queue_by_slug(manager, queue_id):
    assert manager.find_queue_id_by_slug(" MAIN ") == queue_id
    assert manager.find_queue_id_by_slug("other") is None


def test_channel_failure_does_not_undo_commit(repo, clock, caplog):
    manager = QueueManager(repo, ExplodingChannel(), clock=clock)
    queue_id = manager.create_queue(business_id="b", name="Q", slug="q").unwrap().id

    with caplog.at_level(logging.ERROR, logger="queuedrop.manager"):
        receipt = manager.join_queue(queue_id, "A").unwrap()

    assert manager.get_position(receipt.token).unwrap().position == 1
    assert "failed to publish" in caplog.text


def test_rename_and_reslug_queue(manager, channel, queue_id):
    assert manager.rename_queue(queue_id, " Front ").unwrap() == "Front"
    assert manager.update_queue_slug(queue_id, " FRONT ").unwrap() == "front"
    assert channel.queue_updates(queue_id)[-2:] == [QueueUpdateKind.SETTINGS_CHANGED] * 2

    assert manager.find_queue_id_by_slug("front") == queue_id
    assert manager.find_queue_id_by_slug("main") is None
    assert manager.rename_queue(queue_id, "").error.code is ErrorCode.BAD_REQUEST


def test_duplicate_slug_rejected_within_business(manager, queue_id):
    dup = manager.create_queue(business_id="b1", name="Other", slug="MAIN")
    assert dup.error.code is ErrorCode.SLUG_TAKEN
    assert manager.find_queue_id_by_slug("main") == queue_id

    other = manager.create_queue(business_id="b1", name="Other", slug="other").unwrap()
    assert manager.update_queue_slug(other.id, "main").error.code is ErrorCode.SLUG_TAKEN
    # keeping its own slug is not a clash
    assert manager.update_queue_slug(other.id, "other").ok


def test_same_slug_in_two_businesses_needs_business_id(manager, queue_id):
    elsewhere = manager.create_queue(business_id="b2", name="Main", slug="main").unwrap()

    assert manager.find_queue_id_by_slug("main", "b1") == queue_id
    assert manager.find_queue_id_by_slug("main", "b2") == elsewhere.id
    with pytest.raises(ValueError):
        manager.find_queue_id_by_slug("main")


def test_tokens_are_unique_across_queues(repo, channel, clock):
    tokens = iter(["dup", "dup", "fresh"])
    manager = QueueManager(repo, channel, clock=clock, token_factory=lambda: next(tokens))
    first = manager.create_queue(business_id="b", name="One", slug="one").unwrap().id
    second = manager.create_queue(business_id="b", name="Two", slug="two").unwrap().id

    assert manager.join_queue(first, "A").unwrap().token == "dup"
    assert manager.join_queue(second, "B").unwrap().token == "fresh"


def test_token_lookup_errors_do_not_echo_the_token(clock, channel):
    class StaleIndex(InMemoryQueueRepository):
        def find_queue_id_by_token(self, token):
            return self.stale_queue_id

    repo = StaleIndex()
    manager = QueueManager(repo, channel, clock=clock)
    repo.stale_queue_id = manager.create_queue(business_id="b", name="Q", slug="q").unwrap().id

    failed = manager.save_push_subscription("secret-token", None)
    assert failed.error.code is ErrorCode.CUSTOMER_NOT_FOUND
    assert "secret-token" not in failed.error.message
    assert "secret-token" not in manager.get_position("secret-token").error.message
