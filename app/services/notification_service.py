"""
Lifecycle Notification Service
Persists in-app notifications, pushes them live and sends the matching emails
for appointment, job, account and payment events
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy.orm import Session

from ..domain.notifications.repository import NotificationRepository
from ..domain.notifications.schemas import NotificationResponse
from ..email_service import send_email
from ..email_templates import (
    account_blocked_template,
    appointment_accepted_template,
    appointment_cancelled_template,
    appointment_rejected_template,
    appointment_requested_template,
    job_blocked_template,
    job_completed_template,
    payment_template,
)
from ..models import Notification, NotificationType, User
from .notification_messages import build_message

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Fire-and-forget email sender.

    Every send runs as its own asyncio task; a failure is logged from the
    task's done-callback and never reaches the caller.
    """

    def __init__(self, send_func: Optional[Callable[..., Awaitable]] = None):
        self.send_func = send_func or send_email
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, to: Optional[str], subject: str, mjml_content: str, notification_type: str):
        if not to:
            logger.debug(f"⚠️ No email address for {notification_type} notification")
            return None

        logger.info(f"📧 Dispatching {notification_type} email to {to}")
        task = asyncio.create_task(self.send_func(to=to, subject=subject, mjml_content=mjml_content))
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._finished(t, to, notification_type))
        return task

    def _finished(self, task: asyncio.Task, to: str, notification_type: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"❌ Failed to send {notification_type} email to {to}: {error}")
        else:
            logger.info(f"✅ {notification_type} email sent to {to}")

    async def drain(self) -> None:
        """Wait for in-flight sends (used on shutdown)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


dispatcher = NotificationDispatcher()


async def create_notification(
    db: Session,
    hub,
    user_id: Optional[str],
    title: str,
    message: str,
    type: str,
    **extra,
) -> Optional[Notification]:
    """Persist a notification and push it to the user's live connections"""
    if not user_id:
        return None

    notification = NotificationRepository.create_notification(
        db, user_id, title=title, message=message, type=type, **extra
    )

    if hub is not None and hub.registry.is_online(user_id):
        await hub.push.to_user(
            user_id,
            "new-notification",
            NotificationResponse.from_model(notification).model_dump(mode="json"),
        )
    return notification


# ============================================
# Appointments
# ============================================


async def notify_appointment_requested(
    db: Session, hub, employer: User, worker: User, job_title: str, appointment_id: Optional[str] = None
) -> None:
    """Employer requested an appointment with a worker"""
    if employer is not None:
        dispatcher.dispatch(
            employer.email,
            "Appointment Request Sent",
            appointment_requested_template(employer.name, job_title),
            "APPOINTMENT_REQUESTED",
        )
        await create_notification(
            db,
            hub,
            employer.id,
            "Appointment Requested",
            f"You requested an appointment for {job_title}",
            NotificationType.APPOINTMENT,
            appointment_id=appointment_id,
        )

    if worker is not None:
        dispatcher.dispatch(
            worker.email,
            "New Appointment Request",
            appointment_requested_template(worker.name, job_title),
            "APPOINTMENT_REQUESTED",
        )
        content = build_message(
            "APPOINTMENT_REQUESTED",
            name=employer.name if employer is not None else "Someone",
            job_title=job_title,
        )
        await create_notification(
            db, hub, worker.id, content["title"], content["message"],
            NotificationType.APPOINTMENT, appointment_id=appointment_id,
        )


async def notify_appointment_accepted(
    db: Session, hub, employer: User, worker: User, job_title: str, appointment_id: Optional[str] = None
) -> None:
    if worker is not None:
        dispatcher.dispatch(
            worker.email,
            "Appointment Accepted",
            appointment_accepted_template(worker.name, job_title),
            "APPOINTMENT_ACCEPTED",
        )
        content = build_message("APPOINTMENT_ACCEPTED", job_title=job_title)
        await create_notification(
            db, hub, worker.id, content["title"], content["message"],
            NotificationType.APPOINTMENT, appointment_id=appointment_id,
        )

    if employer is not None:
        await create_notification(
            db,
            hub,
            employer.id,
            "Appointment Accepted",
            f"You accepted an appointment for {job_title}",
            NotificationType.APPOINTMENT,
            appointment_id=appointment_id,
        )


async def notify_appointment_rejected(
    db: Session, hub, employer: User, worker: User, job_title: str, appointment_id: Optional[str] = None
) -> None:
    if worker is not None:
        dispatcher.dispatch(
            worker.email,
            "Appointment Rejected",
            appointment_rejected_template(worker.name, job_title),
            "APPOINTMENT_REJECTED",
        )
        content = build_message("APPOINTMENT_REJECTED", job_title=job_title)
        await create_notification(
            db, hub, worker.id, content["title"], content["message"],
            NotificationType.APPOINTMENT, appointment_id=appointment_id,
        )

    if employer is not None:
        await create_notification(
            db,
            hub,
            employer.id,
            "Appointment Rejected",
            f"You rejected an appointment for {job_title}",
            NotificationType.APPOINTMENT,
            appointment_id=appointment_id,
        )


async def notify_appointment_cancelled(
    db: Session, hub, employer: User, worker: User, job_title: str, appointment_id: Optional[str] = None
) -> None:
    """Both parties hear about a cancellation, whoever cancelled"""
    content = build_message("APPOINTMENT_CANCELLED", job_title=job_title)
    for user in (worker, employer):
        if user is None:
            continue
        dispatcher.dispatch(
            user.email,
            "Appointment Cancelled",
            appointment_cancelled_template(user.name, job_title),
            "APPOINTMENT_CANCELLED",
        )
        await create_notification(
            db, hub, user.id, content["title"], content["message"],
            NotificationType.APPOINTMENT, appointment_id=appointment_id,
        )


# ============================================
# Jobs
# ============================================


async def notify_job_completed(db: Session, hub, employer: User, worker: User, job_title: str) -> None:
    content = build_message("JOB_COMPLETED", job_title=job_title)
    for user in (employer, worker):
        if user is None:
            continue
        dispatcher.dispatch(
            user.email, "Job Completed", job_completed_template(user.name, job_title), "JOB_COMPLETED"
        )
        await create_notification(
            db, hub, user.id, content["title"], content["message"], NotificationType.JOB
        )


async def notify_job_blocked(
    db: Session, hub, owner: User, job_title: str, reason: Optional[str] = None
) -> None:
    if owner is None:
        return
    dispatcher.dispatch(
        owner.email, "Your job has been blocked", job_blocked_template(owner.name, job_title, reason), "JOB_BLOCKED"
    )
    content = build_message("JOB_BLOCKED", job_title=job_title)
    await create_notification(db, hub, owner.id, content["title"], content["message"], NotificationType.JOB)


# ============================================
# Account
# ============================================


async def notify_account_blocked(db: Session, hub, user: User, reason: Optional[str] = None) -> None:
    if user is None:
        return
    dispatcher.dispatch(
        user.email, "Your account has been blocked", account_blocked_template(user.name, reason), "ACCOUNT_BLOCKED"
    )
    content = build_message("ACCOUNT_BLOCKED", reason=reason)
    await create_notification(db, hub, user.id, content["title"], content["message"], NotificationType.ACCOUNT)


# ============================================
# Payments
# ============================================


async def notify_payment_success(db: Session, hub, user: User, amount) -> None:
    if user is None:
        return
    dispatcher.dispatch(
        user.email, "Payment Successful", payment_template(user.name, amount, succeeded=True), "PAYMENT_SUCCESS"
    )
    content = build_message("PAYMENT_SUCCESS", amount=amount)
    await create_notification(db, hub, user.id, content["title"], content["message"], NotificationType.PAYMENT)


async def notify_payment_failed(db: Session, hub, user: User, amount) -> None:
    if user is None:
        return
    dispatcher.dispatch(
        user.email, "Payment Failed", payment_template(user.name, amount, succeeded=False), "PAYMENT_FAILED"
    )
    content = build_message("PAYMENT_FAILED", amount=amount)
    await create_notification(db, hub, user.id, content["title"], content["message"], NotificationType.PAYMENT)
