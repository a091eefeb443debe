import asyncio

import pytest

from app.email_service import EmailNotConfiguredError
from app.models import Notification
from app.services import notification_service
from app.services.notification_messages import build_message
from app.services.notification_service import NotificationDispatcher

from .conftest import connect


class FakeMailer:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    async def __call__(self, to: str, subject: str, mjml_content: str) -> dict:
        if self.fail:
            raise EmailNotConfiguredError("Email service not configured")
        assert "<mjml>" in mjml_content
        self.sent.append((to, subject))
        return {"id": "fake"}


@pytest.fixture
def mailer(monkeypatch) -> FakeMailer:
    fake = FakeMailer()
    monkeypatch.setattr(notification_service, "dispatcher", NotificationDispatcher(send_func=fake))
    return fake


def _inbox(db, user_id: str) -> list[Notification]:
    db.expire_all()
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.id)
        .all()
    )


def test_catalogue_messages() -> None:
    assert build_message("APPOINTMENT_REQUESTED", name="Alice", job_title="Plumbing") == {
        "title": "New Appointment Request",
        "message": "Alice requested an appointment for Plumbing",
    }
    assert build_message("PAYMENT_SUCCESS", amount=500.0)["message"] == (
        "₹500 payment completed successfully"
    )
    assert build_message("PAYMENT_FAILED", amount=99.5)["message"] == "₹99.5 payment failed"
    assert "Policy violation" in build_message("ACCOUNT_BLOCKED")["message"]
    with pytest.raises(KeyError):
        build_message("NOT_A_THING")


def test_create_notification_pushes_to_online_user(hub, users, db) -> None:
    async def scenario():
        _, socket = await connect(hub, "bob")
        socket.clear()
        notification = await notification_service.create_notification(
            db, hub, "bob", "Job Completed", "Done", "job"
        )
        missing = await notification_service.create_notification(db, hub, None, "x", "y", "job")
        return notification, missing, socket

    notification, missing, socket = asyncio.run(scenario())
    assert missing is None
    [pushed] = socket.payloads("new-notification")
    assert pushed["id"] == notification.id
    assert pushed["type"] == "job"
    assert pushed["isRead"] is False


def test_appointment_requested_notifies_both_parties(hub, users, db, mailer) -> None:
    async def scenario():
        await notification_service.notify_appointment_requested(
            db, hub, users["alice"], users["bob"], "Fix the sink", appointment_id="appt-1"
        )
        await notification_service.dispatcher.drain()

    asyncio.run(scenario())

    [employer_note] = _inbox(db, "alice")
    assert employer_note.message == "You requested an appointment for Fix the sink"
    [worker_note] = _inbox(db, "bob")
    assert worker_note.title == "New Appointment Request"
    assert worker_note.message == "Alice requested an appointment for Fix the sink"
    assert worker_note.type == "appointment"
    assert worker_note.appointment_id == "appt-1"
    assert sorted(mailer.sent) == [
        ("alice@example.com", "Appointment Request Sent"),
        ("bob@example.com", "New Appointment Request"),
    ]


def test_accept_reject_cancel_complete(hub, users, db, mailer) -> None:
    alice, bob = users["alice"], users["bob"]

    async def scenario():
        await notification_service.notify_appointment_accepted(db, hub, alice, bob, "Painting")
        await notification_service.notify_appointment_rejected(db, hub, alice, bob, "Wiring")
        await notification_service.notify_appointment_cancelled(db, hub, alice, bob, "Roofing")
        await notification_service.notify_job_completed(db, hub, alice, bob, "Painting")
        await notification_service.dispatcher.drain()

    asyncio.run(scenario())

    assert [n.message for n in _inbox(db, "bob")] == [
        "Your appointment for Painting was accepted",
        "Your appointment for Wiring was rejected",
        "Appointment for Roofing was cancelled",
        "Painting has been marked as completed",
    ]
    assert [n.message for n in _inbox(db, "alice")] == [
        "You accepted an appointment for Painting",
        "You rejected an appointment for Wiring",
        "Appointment for Roofing was cancelled",
        "Painting has been marked as completed",
    ]
    assert len(mailer.sent) == 6


def test_blocks_and_payments(hub, users, db, mailer) -> None:
    carol = users["carol"]

    async def scenario():
        await notification_service.notify_job_blocked(db, hub, carol, "Gardening", reason="Spam")
        await notification_service.notify_account_blocked(db, hub, carol)
        await notification_service.notify_payment_success(db, hub, carol, 1200)
        await notification_service.notify_payment_failed(db, hub, carol, 1200)
        await notification_service.dispatcher.drain()

    asyncio.run(scenario())

    assert [(n.type, n.title) for n in _inbox(db, "carol")] == [
        ("job", "Job Blocked"),
        ("account", "Account Blocked"),
        ("payment", "Payment Successful"),
        ("payment", "Payment Failed"),
    ]
    assert len(mailer.sent) == 4


def test_email_failure_is_contained(hub, users, db, monkeypatch) -> None:
    failing = FakeMailer(fail=True)
    monkeypatch.setattr(
        notification_service, "dispatcher", NotificationDispatcher(send_func=failing)
    )

    async def scenario():
        await notification_service.notify_payment_failed(db, hub, users["bob"], 10)
        await notification_service.dispatcher.drain()

    asyncio.run(scenario())
    assert [n.title for n in _inbox(db, "bob")] == ["Payment Failed"]
