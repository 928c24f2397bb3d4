import pytest
from kombu.exceptions import OperationalError

from app.application.services import notification_queue
from app.application.services.notification_queue import EmailJob, deliver_email_job, queue_emails
from app.core.config import settings
from app.integrations.email_sender import EmailSenderError, EmailSendResult, render_email, send_templated_email


@pytest.fixture
def counters(monkeypatch):
    recorded: list[str] = []
    monkeypatch.setattr(notification_queue, "increment_background_counter", lambda name: recorded.append(name))
    return recorded


def _job(recipient: str, template: str = "casting_invite") -> EmailJob:
    return EmailJob(recipient=recipient, template=template, params={"creator_name": "Ana", "casting_title": "Summer"})


def test_queue_paces_jobs_and_survives_broker_errors(monkeypatch):
    enqueued: list[tuple[str, float]] = []

    def fake_enqueue(job, countdown):
        if job.recipient == "down@example.com":
            raise OperationalError("broker unavailable")
        enqueued.append((job.recipient, countdown))

    monkeypatch.setattr(notification_queue, "_enqueue", fake_enqueue)
    monkeypatch.setattr(settings, "email_send_interval_seconds", 0.5)

    queued = queue_emails([_job("a@example.com"), _job("down@example.com"), _job("c@example.com")])

    assert queued == 2
    assert enqueued == [("a@example.com", 0.0), ("c@example.com", 1.0)]


def test_queue_with_no_jobs_is_a_no_op(monkeypatch):
    monkeypatch.setattr(notification_queue, "_enqueue", pytest.fail)

    assert queue_emails([]) == 0


def test_deliver_reports_failed_send(monkeypatch, counters):
    monkeypatch.setattr(
        notification_queue,
        "send_templated_email",
        lambda recipient, template, params: EmailSendResult(success=False, error="Email API returned 422"),
    )

    assert deliver_email_job(_job("a@example.com")) is False
    assert counters == ["email_failures_total"]


def test_deliver_reports_sender_error(monkeypatch, counters):
    def explode(recipient, template, params):
        raise EmailSenderError("Unknown email template: nope")

    monkeypatch.setattr(notification_queue, "send_templated_email", explode)

    assert deliver_email_job(_job("a@example.com", template="nope")) is False
    assert counters == ["email_failures_total"]


def test_deliver_success(monkeypatch, counters):
    monkeypatch.setattr(
        notification_queue,
        "send_templated_email",
        lambda recipient, template, params: EmailSendResult(success=True, message_id="msg-1"),
    )

    assert deliver_email_job(_job("a@example.com")) is True
    assert counters == ["emails_sent_total"]


def test_send_without_api_key_fails_softly(monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", None)

    result = send_templated_email("a@example.com", "casting_invite", {})

    assert not result.success
    assert "RESEND_API_KEY" in result.error


def test_render_escapes_params_and_rejects_unknown_templates():
    rendered = render_email("casting_invite", {"creator_name": "<b>Ana</b>", "casting_title": "Summer"})

    assert "Summer" in rendered.subject
    assert "&lt;b&gt;Ana&lt;/b&gt;" in rendered.html
    with pytest.raises(EmailSenderError):
        render_email("newsletter", {})
