import logging

import pytest

from stocknotify.config import settings
from stocknotify.core.errors import DeliveryFailure
from stocknotify.models.in_app_notification import InAppNotification
from stocknotify.services.channels import Delivery, LoggingChannelSender, MultiChannelSender, build_channel_sender
from stocknotify.services.channels.email_channel import EmailChannel, build_restock_email
from stocknotify.services.channels.in_app_channel import InAppChannel
from stocknotify.services.channels.push_channel import PushChannel
from tests.conftest import all_channels_on


class StubChannel:
    def __init__(self, name: str, ok: bool = True, exc: Exception | None = None) -> None:
        self.name = name
        self.ok = ok
        self.exc = exc
        self.calls = 0

    def deliver(self, db, delivery) -> bool:
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return self.ok


def _stubs(**overrides):
    return {name: overrides.get(name, StubChannel(name)) for name in ("email", "push", "sms", "in_app")}


def test_multi_sender_only_attempts_enabled_channels(db) -> None:
    stubs = _stubs()
    sender = MultiChannelSender(stubs.values())

    assert sender.send(db, Delivery(1, 7, "back", email_enabled=True, push_enabled=False, sms_enabled=True, in_app_enabled=False))

    assert {n: s.calls for n, s in stubs.items()} == {"email": 1, "push": 0, "sms": 1, "in_app": 0}


def test_multi_sender_fails_when_any_enabled_channel_fails(db) -> None:
    stubs = _stubs(push=StubChannel("push", ok=False), sms=StubChannel("sms", exc=RuntimeError("gateway timeout")))
    sender = MultiChannelSender(stubs.values())

    with pytest.raises(DeliveryFailure) as exc:
        sender.send(db, all_channels_on())

    text = str(exc.value)
    assert "push: not delivered" in text
    assert "sms: gateway timeout" in text
    assert "email" not in text
    # a failing channel does not stop the rest
    assert stubs["in_app"].calls == 1


def test_multi_sender_missing_transport_is_a_failure(db) -> None:
    sender = MultiChannelSender([StubChannel("in_app")])

    with pytest.raises(DeliveryFailure, match="email: no transport configured"):
        sender.send(db, Delivery(1, 7, "back"))


def test_multi_sender_with_no_enabled_channel_succeeds(db) -> None:
    sender = MultiChannelSender(_stubs().values())

    assert sender.send(db, Delivery(1, 7, "x", email_enabled=False, in_app_enabled=False)) is True


def test_logging_sender_logs_delivery(db, caplog) -> None:
    log = logging.getLogger("test_logger_channels")
    sender = LoggingChannelSender(logger_=log)

    with caplog.at_level(logging.INFO, logger="test_logger_channels"):
        assert sender.send(db, Delivery(1, 7, "back in stock")) is True

    (record,) = [r for r in caplog.records if "back in stock" in r.getMessage()]
    assert "email=on" in record.getMessage()
    assert "push=off" in record.getMessage()


def test_in_app_channel_stores_unread_notification(db) -> None:
    assert InAppChannel().deliver(db, Delivery(4, 7, "back")) is True

    (row,) = db.query(InAppNotification).all()
    assert (row.user_id, row.product_id, row.message, row.read_at) == (4, 7, "back", None)


def test_email_channel_requires_smtp_credentials(db, make_user, monkeypatch) -> None:
    make_user(user_id=1, email="ada@example.com")
    monkeypatch.setattr(settings, "smtp_user", "")
    monkeypatch.setattr(settings, "smtp_password", "")

    with pytest.raises(DeliveryFailure, match="SMTP"):
        EmailChannel().deliver(db, Delivery(1, 7, "back"))


def test_build_restock_email_headers() -> None:
    msg = build_restock_email("ada@example.com", "Linen shirt", "Back!", from_email="Shop <shop@example.com>")

    assert msg["Subject"] == "Back in stock: Linen shirt"
    assert msg["To"] == "ada@example.com"
    assert msg["From"] == "Shop <shop@example.com>"


def test_push_channel_requires_registered_device(db, make_user) -> None:
    make_user(user_id=1)

    with pytest.raises(DeliveryFailure, match="no registered devices"):
        PushChannel().deliver(db, Delivery(1, 7, "back"))


def test_build_channel_sender_by_kind() -> None:
    assert isinstance(build_channel_sender("multi"), MultiChannelSender)
    assert isinstance(build_channel_sender("logging"), LoggingChannelSender)
