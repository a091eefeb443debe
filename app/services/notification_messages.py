"""
In-app notification copy for lifecycle events.

Each entry takes keyword arguments and returns ``{"title": ..., "message": ...}``.
"""

from typing import Callable


def _amount(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"₹{value}"


NOTIFICATION_MESSAGES: dict[str, Callable[..., dict]] = {
    "APPOINTMENT_REQUESTED": lambda name, job_title: {
        "title": "New Appointment Request",
        "message": f"{name} requested an appointment for {job_title}",
    },
    "APPOINTMENT_ACCEPTED": lambda job_title: {
        "title": "Appointment Accepted",
        "message": f"Your appointment for {job_title} was accepted",
    },
    "APPOINTMENT_REJECTED": lambda job_title: {
        "title": "Appointment Rejected",
        "message": f"Your appointment for {job_title} was rejected",
    },
    "APPOINTMENT_CANCELLED": lambda job_title: {
        "title": "Appointment Cancelled",
        "message": f"Appointment for {job_title} was cancelled",
    },
    "JOB_COMPLETED": lambda job_title: {
        "title": "Job Completed",
        "message": f"{job_title} has been marked as completed",
    },
    "JOB_BLOCKED": lambda job_title: {
        "title": "Job Blocked",
        "message": f"{job_title} was blocked by admin",
    },
    "ACCOUNT_BLOCKED": lambda reason=None: {
        "title": "Account Blocked",
        "message": f"Your account was blocked by admin. Reason: {reason or 'Policy violation'}",
    },
    "PAYMENT_SUCCESS": lambda amount: {
        "title": "Payment Successful",
        "message": f"{_amount(amount)} payment completed successfully",
    },
    "PAYMENT_FAILED": lambda amount: {
        "title": "Payment Failed",
        "message": f"{_amount(amount)} payment failed",
    },
}


def build_message(key: str, **kwargs) -> dict:
    """Render a catalogue entry; unknown keys raise KeyError"""
    return NOTIFICATION_MESSAGES[key](**kwargs)
