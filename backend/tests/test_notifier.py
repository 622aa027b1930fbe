import pytest

from stocknotify.core.constants import STATUS_FAILED, STATUS_SENT
from stocknotify.core.errors import InvalidArgument, NotFound
from stocknotify.models.delivery_log import DeliveryLog
from stocknotify.models.subscription import Subscription
from stocknotify.services import notifier, subscription_service
from stocknotify.services.catalog_service import get_stock
from stocknotify.services.notifier import send_one, trigger_restock
from stocknotify.services.preference_service import update_preferences
from tests.conftest import FakeSender


@pytest.fixture
def subscribed(db, make_user, make_product):
    make_user(user_id=1)
    make_product(product_id=7, stock=0)
    return subscription_service.subscribe(db, 1, 7)


def test_restock_sends_and_marks_subscription(db, subscribed, sender) -> None:
    result = trigger_restock(db, 7, 10)

    assert result.fired and result.sent == 1 and result.failed == 0
    sub = db.get(Subscription, subscribed.id)
    assert sub.is_sent is True
    assert sub.sent_at is not None
    logs = db.query(DeliveryLog).all()
    assert len(logs) == 1
    assert logs[0].status == STATUS_SENT
    assert logs[0].retry_count == 0
    assert logs[0].max_retries == 3
    assert (logs[0].user_id, logs[0].product_id, logs[0].subscription_id) == (1, 7, subscribed.id)


def test_delivery_carries_preference_flags(db, subscribed, sender) -> None:
    update_preferences(db, 1, email=False, push=True, sms=False, in_app=True)

    trigger_restock(db, 7, 3, message="Back!")

    (delivery,) = sender.deliveries
    assert delivery.message == "Back!"
    assert delivery.channels == ["push", "in_app"]


def test_restock_is_edge_triggered(db, subscribed, sender) -> None:
    trigger_restock(db, 7, 5)
    second = trigger_restock(db, 7, 5)
    third = trigger_restock(db, 7, 8)

    assert len(sender.deliveries) == 1
    assert not second.fired and not third.fired
    assert get_stock(db, 7) == 8

    out = trigger_restock(db, 7, 0)
    assert out.reset == 1
    assert db.get(Subscription, subscribed.id).is_sent is False

    again = trigger_restock(db, 7, 4)
    assert again.fired and again.sent == 1
    assert len(sender.deliveries) == 2
    assert db.query(DeliveryLog).count() == 2


def test_restock_failure_is_logged_not_raised(db, subscribed, sender) -> None:
    sender.fail = True

    result = trigger_restock(db, 7, 10)

    assert result.fired and result.sent == 0 and result.failed == 1
    (entry,) = db.query(DeliveryLog).all()
    assert entry.status == STATUS_FAILED
    assert entry.retry_count == 0
    assert entry.error_message
    assert db.get(Subscription, subscribed.id).is_sent is False


def test_sender_exception_text_becomes_error_message(db, subscribed, sender) -> None:
    sender.fail = True
    sender.error = "smtp down"

    assert send_one(db, subscribed.id, "msg") is False

    (entry,) = db.query(DeliveryLog).all()
    assert entry.status == STATUS_FAILED
    assert entry.error_message == "smtp down"


def test_partial_fan_out_failure_does_not_abort_batch(db, make_user, make_product, sender) -> None:
    for uid in (1, 2, 3):
        make_user(user_id=uid)
    make_product(product_id=7)
    for uid in (1, 2, 3):
        subscription_service.subscribe(db, uid, 7)
    sender.fail_users = {2}

    result = trigger_restock(db, 7, 1)

    assert (result.attempted, result.sent, result.failed) == (3, 2, 1)
    assert [d.user_id for d in sender.deliveries] == [1, 2, 3]
    statuses = {log.user_id: log.status for log in db.query(DeliveryLog).all()}
    assert statuses == {1: STATUS_SENT, 2: STATUS_FAILED, 3: STATUS_SENT}


def test_already_sent_subscriptions_are_skipped(db, make_user, make_product, sender) -> None:
    make_user(user_id=1)
    make_user(user_id=2)
    make_product(product_id=7)
    a = subscription_service.subscribe(db, 1, 7)
    subscription_service.subscribe(db, 2, 7)
    subscription_service.mark_sent(db, a.id)
    db.commit()

    trigger_restock(db, 7, 2)

    assert [d.user_id for d in sender.deliveries] == [2]


def test_send_one_unknown_subscription(db, sender) -> None:
    assert send_one(db, 123, "msg") is False
    assert db.query(DeliveryLog).count() == 0
    assert sender.deliveries == []


def test_send_one_on_sent_subscription_is_noop(db, subscribed, sender) -> None:
    assert send_one(db, subscribed.id, "msg") is True
    assert send_one(db, subscribed.id, "msg") is False

    assert len(sender.deliveries) == 1
    assert db.query(DeliveryLog).count() == 1


def test_concurrent_send_only_one_wins(db, session_factory, subscribed) -> None:
    sub_id = subscribed.id

    class RacingSender(FakeSender):
        """Another worker marks the subscription sent while this delivery is in flight."""

        def send(self, session, delivery):
            other = session_factory()
            try:
                assert subscription_service.mark_sent(other, sub_id) is True
                other.commit()
            finally:
                other.close()
            return super().send(session, delivery)

    sender = RacingSender()

    assert send_one(db, sub_id, "msg", sender) is False

    assert len(sender.deliveries) == 1
    check = session_factory()
    try:
        assert check.get(Subscription, sub_id).is_sent is True
        (entry,) = check.query(DeliveryLog).all()
        assert entry.status == STATUS_SENT
    finally:
        check.close()


def test_stock_out_between_lock_and_write_still_restocks(
    db, session_factory, subscribed, sender, monkeypatch
) -> None:
    trigger_restock(db, 7, 5)
    assert len(sender.deliveries) == 1

    lock_inventory = notifier._lock_inventory
    interleaved = []

    def lock_then_stock_out(session, product_id):
        row = lock_inventory(session, product_id)
        if not interleaved:
            interleaved.append(product_id)
            other = session_factory()
            try:
                assert trigger_restock(other, product_id, 0).reset == 1
            finally:
                other.close()
        return row

    monkeypatch.setattr(notifier, "_lock_inventory", lock_then_stock_out)

    result = trigger_restock(db, 7, 7)

    assert interleaved == [7]
    assert result.fired and result.sent == 1
    assert get_stock(db, 7) == 7
    assert len(sender.deliveries) == 2


def test_trigger_restock_validation_writes_nothing(db, subscribed, sender) -> None:
    with pytest.raises(InvalidArgument):
        trigger_restock(db, 7, -1)
    with pytest.raises(InvalidArgument):
        trigger_restock(db, 0, 5)
    with pytest.raises(NotFound):
        trigger_restock(db, 99, 5)

    assert get_stock(db, 7) == 0
    assert db.query(DeliveryLog).count() == 0
    assert sender.deliveries == []


def test_subscribe_while_in_stock_waits_for_next_restock(db, make_user, make_product, sender) -> None:
    make_user(user_id=1)
    make_product(product_id=7, stock=4)
    subscription_service.subscribe(db, 1, 7)

    assert trigger_restock(db, 7, 6).fired is False
    assert sender.deliveries == []
