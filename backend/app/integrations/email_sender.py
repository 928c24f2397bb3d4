import html
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailTemplate(StrEnum):
    CASTING_INVITE = "casting_invite"
    CASTING_APPROVED_WITH_BRIEFING = "casting_approved_with_briefing"
    CASTING_APPROVED_NO_BRIEFING = "casting_approved_no_briefing"
    CASTING_NOT_SELECTED = "casting_not_selected"
    CASTING_CLOSED_NO_RESPONSE = "casting_closed_no_response"
    BRIEFING_READY = "briefing_ready"
    CASTING_READY_FOR_REVIEW = "casting_ready_for_review"


class EmailSenderError(RuntimeError):
    pass


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


@dataclass(frozen=True)
class EmailSendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


def _paragraphs(*lines: str) -> str:
    return "".join(f"<p>{line}</p>" for line in lines if line)


def _link(url: str, label: str) -> str:
    return f'<a href="{html.escape(url, quote=True)}">{html.escape(label)}</a>'


def _render_casting_invite(params: dict[str, Any]) -> RenderedEmail:
    title = html.escape(str(params.get("casting_title", "")))
    compensation = params.get("compensation")
    return RenderedEmail(
        subject=f"You're invited: {params.get('casting_title', '')}",
        html=_paragraphs(
            f"Hi {html.escape(str(params.get('creator_name', '')))},",
            f"You have been invited to the casting <strong>{title}</strong>.",
            f"Compensation: {compensation}" if compensation is not None else "",
            _link(params.get("opportunities_url", ""), "View the invitation"),
        ),
    )


def _render_approved_with_briefing(params: dict[str, Any]) -> RenderedEmail:
    title = html.escape(str(params.get("casting_title", "")))
    return RenderedEmail(
        subject=f"You're selected for {params.get('casting_title', '')}",
        html=_paragraphs(
            f"Hi {html.escape(str(params.get('creator_name', '')))},",
            f"Great news: you were selected for <strong>{title}</strong> and the briefing is ready.",
            _link(params.get("briefings_url", ""), "Open your briefing"),
        ),
    )


def _render_approved_no_briefing(params: dict[str, Any]) -> RenderedEmail:
    title = html.escape(str(params.get("casting_title", "")))
    return RenderedEmail(
        subject=f"You're selected for {params.get('casting_title', '')}",
        html=_paragraphs(
            f"Hi {html.escape(str(params.get('creator_name', '')))},",
            f"Great news: you were selected for <strong>{title}</strong>.",
            "We will let you know as soon as the briefing is ready.",
        ),
    )


def _render_not_selected(params: dict[str, Any]) -> RenderedEmail:
    title = html.escape(str(params.get("casting_title", "")))
    return RenderedEmail(
        subject=f"Update on {params.get('casting_title', '')}",
        html=_paragraphs(
            f"Hi {html.escape(str(params.get('creator_name', '')))},",
            f"Thank you for your interest in <strong>{title}</strong>. The client chose other creators this time.",
        ),
    )


def _render_closed_no_response(params: dict[str, Any]) -> RenderedEmail:
    title = html.escape(str(params.get("casting_title", "")))
    return RenderedEmail(
        subject=f"Casting closed: {params.get('casting_title', '')}",
        html=_paragraphs(
            f"Hi {html.escape(str(params.get('creator_name', '')))},",
            f"The casting <strong>{title}</strong> has been closed before we received your response.",
        ),
    )


def _render_briefing_ready(params: dict[str, Any]) -> RenderedEmail:
    title = html.escape(str(params.get("casting_title", "")))
    return RenderedEmail(
        subject=f"Briefing ready for {params.get('casting_title', '')}",
        html=_paragraphs(
            f"Hi {html.escape(str(params.get('creator_name', '')))},",
            f"The briefing for <strong>{title}</strong> is ready. You can start shooting.",
            _link(params.get("briefings_url", ""), "Open your briefing"),
        ),
    )


def _render_ready_for_review(params: dict[str, Any]) -> RenderedEmail:
    title = html.escape(str(params.get("casting_title", "")))
    return RenderedEmail(
        subject=f"Creators ready for review: {params.get('casting_title', '')}",
        html=_paragraphs(
            f"Hi {html.escape(str(params.get('client_name', '')))},",
            f"{params.get('selected_creators_count', 0)} creators are ready for your review in <strong>{title}</strong>.",
            _link(params.get("casting_url", ""), "Review the creators"),
        ),
    )


_RENDERERS: dict[EmailTemplate, Callable[[dict[str, Any]], RenderedEmail]] = {
    EmailTemplate.CASTING_INVITE: _render_casting_invite,
    EmailTemplate.CASTING_APPROVED_WITH_BRIEFING: _render_approved_with_briefing,
    EmailTemplate.CASTING_APPROVED_NO_BRIEFING: _render_approved_no_briefing,
    EmailTemplate.CASTING_NOT_SELECTED: _render_not_selected,
    EmailTemplate.CASTING_CLOSED_NO_RESPONSE: _render_closed_no_response,
    EmailTemplate.BRIEFING_READY: _render_briefing_ready,
    EmailTemplate.CASTING_READY_FOR_REVIEW: _render_ready_for_review,
}


def render_email(template: str, params: dict[str, Any]) -> RenderedEmail:
    try:
        renderer = _RENDERERS[EmailTemplate(template)]
    except ValueError as exc:
        raise EmailSenderError(f"Unknown email template: {template}") from exc
    return renderer(params)


def send_templated_email(recipient: str, template: str, params: dict[str, Any]) -> EmailSendResult:
    if not settings.resend_api_key:
        return EmailSendResult(success=False, error="RESEND_API_KEY is not configured")

    rendered = render_email(template, params)
    try:
        with httpx.Client(timeout=settings.email_timeout_seconds) as client:
            response = client.post(
                f"{settings.resend_api_base_url.rstrip('/')}/emails",
                headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                json={
                    "from": settings.email_from_address,
                    "to": [recipient],
                    "subject": rendered.subject,
                    "html": rendered.html,
                },
            )
    except httpx.HTTPError as exc:
        return EmailSendResult(success=False, error=f"Email transport error: {exc}")

    if response.status_code >= 400:
        return EmailSendResult(success=False, error=f"Email API returned {response.status_code}: {response.text[:300]}")
    return EmailSendResult(success=True, message_id=response.json().get("id"))
