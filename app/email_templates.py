"""
MJML Email Templates
Lifecycle emails for appointments, jobs, moderation and payments
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#4f46e5",
    "background": "#f9fafb",
    "text_primary": "#111827",
    "text_secondary": "#374151",
    "text_muted": "#6b7280",
    "border": "#e5e7eb",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Arial, sans-serif" />
          <mj-text font-size="14px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="24px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}

            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 0 0" />
            <mj-text font-size="12px" color="{THEME['text_muted']}">
              Panikkaran • Local Job Platform
            </mj-text>
          </mj-column>
        </mj-section>

        {cta_section}
      </mj-body>
    </mjml>
    """


def _greeting(name: str) -> str:
    return f"""
    <mj-text>
      Hello <b>{escape(name or "there")}</b>,
    </mj-text>
    """


def lifecycle_email_template(name: str, heading: str, lines: list[str], cta_path: str = "/") -> str:
    """Generic lifecycle email: greeting followed by one paragraph per line"""
    paragraphs = "".join(f"<mj-text>{line}</mj-text>" for line in lines)
    return get_base_template(
        title=heading,
        preview_text=heading,
        content_sections=_greeting(name) + paragraphs,
        cta_url=f"{FRONTEND_URL}{cta_path}",
        cta_label="Open Panikkaran",
    )


def appointment_requested_template(name: str, job_title: str) -> str:
    return lifecycle_email_template(
        name,
        "New Appointment Request",
        [
            "You have received a new appointment request for the job:",
            f"<b>{escape(job_title)}</b>",
            "Please log in to review and respond.",
        ],
        "/appointments",
    )


def appointment_accepted_template(name: str, job_title: str) -> str:
    return lifecycle_email_template(
        name,
        "Appointment Accepted",
        [
            f"Your appointment request for <b>{escape(job_title)}</b> has been accepted.",
            "You can now contact the employer.",
        ],
        "/appointments",
    )


def appointment_rejected_template(name: str, job_title: str) -> str:
    return lifecycle_email_template(
        name,
        "Appointment Rejected",
        [
            f"Your appointment request for <b>{escape(job_title)}</b> was rejected.",
            "You may apply for other jobs.",
        ],
        "/jobs",
    )


def appointment_cancelled_template(name: str, job_title: str) -> str:
    return lifecycle_email_template(
        name,
        "Appointment Cancelled",
        [f"The appointment for <b>{escape(job_title)}</b> has been cancelled."],
        "/appointments",
    )


def job_completed_template(name: str, job_title: str) -> str:
    return lifecycle_email_template(
        name,
        "Job Completed",
        [f"<b>{escape(job_title)}</b> has been marked as completed."],
        "/jobs",
    )


def job_blocked_template(name: str, job_title: str, reason: Optional[str] = None) -> str:
    lines = [f"Your job <b>{escape(job_title)}</b> was blocked by an administrator."]
    if reason:
        lines.append(f"Reason: {escape(reason)}")
    return lifecycle_email_template(name, "Job Blocked", lines, "/jobs")


def account_blocked_template(name: str, reason: Optional[str] = None) -> str:
    lines = ["Your account has been blocked by an administrator."]
    if reason:
        lines.append(f"Reason: {escape(reason)}")
    return lifecycle_email_template(name, "Account Blocked", lines)


def payment_template(name: str, amount: float, succeeded: bool) -> str:
    if succeeded:
        return lifecycle_email_template(
            name, "Payment Successful", [f"Your payment of <b>₹{amount}</b> was completed successfully."]
        )
    return lifecycle_email_template(
        name, "Payment Failed", [f"Your payment of <b>₹{amount}</b> could not be completed."]
    )
