"""Email delivery channel backed by the SendGrid REST API."""

from __future__ import annotations

import html
import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from mint_alerts.domain.entities import Notification, NotificationChannel, RecipientProfile
from mint_alerts.domain.errors import PermanentDeliveryError, TransientDeliveryError

from .base import DeliveryChannelAdapter

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = frozenset({408, 429})


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                help_link = item.get("help")
                if message and help_link:
                    messages.append(f"{message} (help: {help_link})")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        # Fall back to a JSON string for unrecognised payloads
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        try:
            return "; ".join(str(item) for item in parsed)
        except TypeError:
            return None

    return None


def _describe_failure(status_code: int | None, body: Any) -> str:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        return f"SendGrid responded with status {status_code}: {details}"
    if status_code:
        return f"SendGrid responded with status {status_code}"
    if details:
        return f"SendGrid request failed: {details}"
    return "SendGrid request failed"


def _raise_for_status(status_code: int | None, body: Any) -> None:
    reason = _describe_failure(status_code, body)
    if status_code is None or status_code in _RETRYABLE_STATUS_CODES or status_code >= 500:
        raise TransientDeliveryError(reason)
    raise PermanentDeliveryError(reason)


def _extract_message_id(response: Any) -> str | None:
    headers = getattr(response, "headers", None)
    if headers is None:
        return None
    try:
        value = headers.get("X-Message-Id")
    except AttributeError:
        return None
    return str(value) if value else None


def render_notification_html(notification: Notification) -> str:
    """Return the HTML body used for notification emails."""

    return "".join(
        (
            f"<h2>{html.escape(notification.title)}</h2>",
            f"<p>{html.escape(notification.message)}</p>",
        )
    )


class EmailChannel(DeliveryChannelAdapter):
    """Deliver notifications as transactional emails."""

    channel = NotificationChannel.EMAIL

    def __init__(
        self, *, api_key: str | None, sender: str | None, timeout: float = 30.0
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._sender)

    def send(
        self, notification: Notification, recipient: RecipientProfile | None
    ) -> str | None:
        if not self.configured:
            logger.info("SendGrid configuration incomplete; email delivery disabled")
            raise PermanentDeliveryError("Email delivery is not configured")

        address = recipient.email if recipient else None
        if not address:
            raise PermanentDeliveryError("Recipient has no email address")

        message = Mail(
            from_email=self._sender,
            to_emails=address,
            subject=notification.title,
            html_content=render_notification_html(notification),
        )

        try:
            client = SendGridAPIClient(self._api_key)
            client.client.timeout = self._timeout
            response = client.send(message)
        except Exception as exc:
            status_code = getattr(exc, "status_code", None)
            if not isinstance(status_code, int):
                status_code = None
            logger.error(
                "SendGrid request for notification %s failed: %s",
                notification.id,
                _describe_failure(status_code, getattr(exc, "body", None)),
            )
            _raise_for_status(status_code, getattr(exc, "body", None))

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            _raise_for_status(
                status_code if isinstance(status_code, int) else None,
                getattr(response, "body", None),
            )

        return _extract_message_id(response)


__all__ = ["EmailChannel", "render_notification_html"]
