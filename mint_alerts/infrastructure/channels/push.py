"""Push delivery channel using the Firebase Cloud Messaging HTTP v1 API.

iOS devices are reached through FCM as well; the ``apns`` block of the
message carries the APNS-specific headers and payload.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mint_alerts.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationPriority,
    RecipientProfile,
)
from mint_alerts.domain.errors import PermanentDeliveryError, TransientDeliveryError

from .base import DeliveryChannelAdapter

logger = logging.getLogger(__name__)

_UNREGISTERED_CODES = frozenset({"UNREGISTERED", "NOT_FOUND", "INVALID_ARGUMENT"})
_RETRYABLE_CODES = frozenset({"UNAVAILABLE", "INTERNAL", "QUOTA_EXCEEDED", "DEADLINE_EXCEEDED"})


def _error_details(response: httpx.Response) -> tuple[str | None, str]:
    """Return the FCM error code and message carried by ``response``."""

    try:
        payload = response.json()
    except ValueError:
        return None, response.text or f"HTTP {response.status_code}"

    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return None, f"HTTP {response.status_code}"

    code = error.get("status")
    for detail in error.get("details") or ():
        if isinstance(detail, dict) and detail.get("errorCode"):
            code = detail["errorCode"]
            break
    return code, str(error.get("message") or f"HTTP {response.status_code}")


def build_fcm_message(notification: Notification, device_token: str) -> dict[str, Any]:
    """Return the FCM v1 request body for ``notification``."""

    urgent = notification.priority in (NotificationPriority.HIGH, NotificationPriority.URGENT)
    data = {str(key): str(value) for key, value in (notification.data or {}).items()}
    data["notification_id"] = str(notification.id)
    data["type"] = notification.type.value
    return {
        "message": {
            "token": device_token,
            "notification": {
                "title": notification.title,
                "body": notification.message,
            },
            "data": data,
            "android": {
                "priority": "high" if urgent else "normal",
                "notification": {"channel_id": "default"},
            },
            "apns": {
                "headers": {"apns-priority": "10" if urgent else "5"},
                "payload": {"aps": {"sound": "default"}},
            },
        }
    }


class PushChannel(DeliveryChannelAdapter):
    """Deliver notifications to the recipient's registered device."""

    channel = NotificationChannel.PUSH

    def __init__(
        self,
        *,
        project_id: str | None,
        access_token: str | None,
        endpoint: str,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._project_id = project_id
        self._access_token = access_token
        self._endpoint = endpoint
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self._project_id and self._access_token)

    def send(
        self, notification: Notification, recipient: RecipientProfile | None
    ) -> str | None:
        if not self.configured:
            raise PermanentDeliveryError("Push delivery is not configured")

        device_token = recipient.device_token if recipient else None
        if not device_token:
            raise PermanentDeliveryError("Recipient has no registered device token")

        url = self._endpoint.format(project_id=self._project_id)
        try:
            response = self._client.post(
                url,
                json=build_fcm_message(notification, device_token),
                headers={"Authorization": f"Bearer {self._access_token}"},
            )
        except httpx.TimeoutException as exc:
            raise TransientDeliveryError(f"FCM request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransientDeliveryError(f"FCM request failed: {exc}") from exc

        if response.is_success:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            return payload.get("name") if isinstance(payload, dict) else None

        code, message = _error_details(response)
        reason = f"FCM responded with status {response.status_code}: {message}"
        status_code = response.status_code
        if code in _RETRYABLE_CODES or status_code in (401, 408, 429) or status_code >= 500:
            raise TransientDeliveryError(reason)
        if code in _UNREGISTERED_CODES:
            logger.info(
                "Device token for user %s rejected by FCM (%s)", notification.user_id, code
            )
        raise PermanentDeliveryError(reason)

    def close(self) -> None:
        self._client.close()


__all__ = ["PushChannel", "build_fcm_message"]
