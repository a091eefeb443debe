import asyncio

import pytest

from app import email_service
from app.email_templates import job_blocked_template


def test_send_without_api_key_raises(monkeypatch) -> None:
    monkeypatch.setattr(email_service, "RESEND_API_KEY", None)

    with pytest.raises(email_service.EmailNotConfiguredError):
        asyncio.run(email_service.send_email("bob@example.com", "Hi", "<mjml></mjml>"))


def test_send_compiles_and_hands_off_to_resend(monkeypatch) -> None:
    captured = {}

    def fake_send(params):
        captured.update(params)
        return {"id": "email_123"}

    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda mjml: "<html>ok</html>")
    monkeypatch.setattr(email_service.resend.Emails, "send", fake_send)

    response = asyncio.run(
        email_service.send_email("bob@example.com", "Job Blocked", job_blocked_template("Bob", "Gardening"))
    )

    assert response == {"id": "email_123"}
    assert captured["to"] == ["bob@example.com"]
    assert captured["subject"] == "Job Blocked"
    assert captured["html"] == "<html>ok</html>"
    assert captured["from"] == email_service.EMAIL_FROM_ADDRESS


def test_templates_escape_user_text() -> None:
    mjml = job_blocked_template("<b>Bob</b>", "Garden & Lawn", reason="<script>")
    assert "&lt;b&gt;Bob&lt;/b&gt;" in mjml
    assert "Garden &amp; Lawn" in mjml
    assert "<script>" not in mjml
