"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from mint_alerts.application.use_cases.notifications import (
    cancel_notification as cancel_notification_uc,
    create_notification as create_notification_uc,
    get_notification as get_notification_uc,
    get_queue_status as get_queue_status_uc,
    list_notifications as list_notifications_uc,
    list_unread_notifications as list_unread_notifications_uc,
    mark_notification_read as mark_notification_read_uc,
    mark_notifications_read as mark_notifications_read_uc,
)
from mint_alerts.domain.entities import (
    NotificationDraft,
    NotificationFilter,
    NotificationStatus,
    NotificationType,
)
from mint_alerts.infrastructure.database import SessionLocal, get_db
from mint_alerts.infrastructure.notifications import (
    notification_manager,
    serialize_notification,
)
from mint_alerts.interfaces.api.routes_helpers import DOMAIN_ERRORS, to_http_exception
from mint_alerts.interfaces.api.schemas import (
    NotificationCreate,
    NotificationMarkReadRequest,
    NotificationRead,
    QueueStatusRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

_EnumT = TypeVar("_EnumT", bound=Enum)


def _parse_enum_values(
    enum_cls: type[_EnumT], values: Iterable[str] | None, label: str
) -> tuple[_EnumT, ...]:
    parsed: list[_EnumT] = []
    for value in values or ():
        try:
            parsed.append(enum_cls(value.strip().upper()))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid {label} filter '{value}'",
            ) from exc
    return tuple(parsed)


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    user_id: int = Query(..., gt=0),
    type_: list[str] | None = Query(default=None, alias="type"),
    status_: list[str] | None = Query(default=None, alias="status"),
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> list[NotificationRead]:
    """Return the user's notifications, newest first."""

    criteria = NotificationFilter(
        types=_parse_enum_values(NotificationType, type_, "type"),
        statuses=_parse_enum_values(NotificationStatus, status_, "status"),
        created_from=created_from,
        created_to=created_to,
    )
    try:
        notifications = list_notifications_uc(
            db, user_id=user_id, criteria=criteria, skip=skip, limit=limit
        )
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return [NotificationRead.model_validate(item) for item in notifications]


@router.get("/unread", response_model=list[NotificationRead])
def list_unread_notifications(
    user_id: int = Query(..., gt=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> list[NotificationRead]:
    notifications = list_unread_notifications_uc(db, user_id=user_id, limit=limit)
    return [NotificationRead.model_validate(item) for item in notifications]


@router.get("/queue/status", response_model=QueueStatusRead)
def read_queue_status(db: Session = Depends(get_db)) -> QueueStatusRead:
    return QueueStatusRead.model_validate(get_queue_status_uc(db))


@router.post("/", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def create_notification(
    payload: NotificationCreate, db: Session = Depends(get_db)
) -> NotificationRead:
    """Validate and enqueue a notification for dispatch."""

    draft = NotificationDraft(
        user_id=payload.user_id,
        type=payload.type,
        title=payload.title,
        message=payload.message,
        priority=payload.priority,
        data=payload.data,
        channels=tuple(payload.channels),
        scheduled_at=payload.scheduled_at,
        dedup_key=payload.dedup_key,
    )
    try:
        notification = create_notification_uc(db, draft)
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return NotificationRead.model_validate(notification)


@router.post("/read", response_model=list[NotificationRead])
def mark_notifications_read(
    payload: NotificationMarkReadRequest, db: Session = Depends(get_db)
) -> list[NotificationRead]:
    """Acknowledge several notifications; ids that cannot be read are skipped."""

    notifications = mark_notifications_read_uc(
        db, user_id=payload.user_id, notification_ids=payload.unique_ids()
    )
    return [NotificationRead.model_validate(item) for item in notifications]


@router.get("/{notification_id}", response_model=NotificationRead)
def read_notification(
    notification_id: int, db: Session = Depends(get_db)
) -> NotificationRead:
    try:
        notification = get_notification_uc(db, notification_id)
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return NotificationRead.model_validate(notification)


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: int,
    user_id: int | None = Query(default=None, gt=0),
    db: Session = Depends(get_db),
) -> NotificationRead:
    """Mark a sent notification as read; 409 while it has not been sent."""

    try:
        notification = mark_notification_read_uc(db, notification_id, user_id=user_id)
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return NotificationRead.model_validate(notification)


@router.delete("/{notification_id}/queue", response_model=NotificationRead)
def cancel_notification(
    notification_id: int,
    user_id: int | None = Query(default=None, gt=0),
    db: Session = Depends(get_db),
) -> NotificationRead:
    """Withdraw a pending notification; 409 once a worker has claimed it."""

    try:
        notification = cancel_notification_uc(db, notification_id, user_id=user_id)
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return NotificationRead.model_validate(notification)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams in-app notifications to a user."""

    raw_user_id = websocket.query_params.get("user_id")
    try:
        user_id = int(raw_user_id) if raw_user_id else 0
    except ValueError:
        user_id = 0
    if user_id <= 0:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        pending_notifications = list_unread_notifications_uc(session, user_id=user_id)
    finally:
        session.close()

    await notification_manager.connect(user_id, websocket)
    try:
        if pending_notifications:
            await websocket.send_json(
                {
                    "type": "init",
                    "data": [serialize_notification(item) for item in pending_notifications],
                }
            )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    ack_session = SessionLocal()
                    try:
                        acknowledged = mark_notifications_read_uc(
                            ack_session,
                            user_id=user_id,
                            notification_ids=[item for item in ids if isinstance(item, int)],
                        )
                    finally:
                        ack_session.close()
                    await websocket.send_json(
                        {"type": "ack", "ids": [item.id for item in acknowledged]}
                    )
                continue
    except WebSocketDisconnect:
        notification_manager.disconnect(user_id, websocket)
    except Exception:  # pragma: no cover - unexpected socket errors
        notification_manager.disconnect(user_id, websocket)
        raise
