"""Persistence helpers for notification entities and the dispatch queue."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import fields, replace
from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, or_, update
from sqlalchemy.orm import Session

from mint_alerts.domain.entities import (
    READABLE_STATUSES,
    Notification,
    NotificationChannel,
    NotificationFilter,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    QueueStatus,
)
from mint_alerts.domain.errors import NotificationNotFoundError, ValidationError
from mint_alerts.infrastructure.models import NotificationModel
from mint_alerts.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

_IMMUTABLE_FIELDS = frozenset({"id", "user_id", "created_at"})
_MUTABLE_FIELDS = frozenset(
    item.name for item in fields(Notification) if item.name not in _IMMUTABLE_FIELDS
)

_PENDING = NotificationStatus.PENDING.value
_CLAIMED = NotificationStatus.CLAIMED.value


class NotificationRepository:
    """Provide CRUD and queue operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, notification: Notification, *, commit: bool = True) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification, include_creation_fields=True)
        self.session.add(model)
        if not commit:
            self.session.flush()
            return self._to_entity(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(
            NotificationModel, notification_id, populate_existing=True
        )
        return self._to_entity(model) if model else None

    def get_by_external_id(self, external_message_id: str) -> Notification | None:
        model = (
            self.session.query(NotificationModel)
            .populate_existing()
            .filter(NotificationModel.external_message_id == external_message_id)
            .order_by(NotificationModel.id.desc())
            .first()
        )
        return self._to_entity(model) if model else None

    def get_by_dedup_key(self, dedup_key: str) -> Notification | None:
        model = (
            self.session.query(NotificationModel)
            .populate_existing()
            .filter(NotificationModel.dedup_key == dedup_key)
            .first()
        )
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: int,
        *,
        criteria: NotificationFilter | None = None,
        skip: int = 0,
        limit: int | None = 50,
    ) -> Sequence[Notification]:
        query = self.session.query(NotificationModel).populate_existing()
        query = query.filter(NotificationModel.user_id == user_id)
        if criteria is not None:
            if criteria.types:
                query = query.filter(
                    NotificationModel.type.in_([item.value for item in criteria.types])
                )
            if criteria.statuses:
                query = query.filter(
                    NotificationModel.status.in_(
                        [item.value for item in criteria.statuses]
                    )
                )
            if criteria.created_from is not None:
                query = query.filter(
                    NotificationModel.created_at
                    >= ensure_app_naive_datetime(criteria.created_from)
                )
            if criteria.created_to is not None:
                query = query.filter(
                    NotificationModel.created_at
                    <= ensure_app_naive_datetime(criteria.created_to)
                )
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def list_unread_for_user(
        self, user_id: int, *, limit: int | None = 50
    ) -> Sequence[Notification]:
        query = (
            self.session.query(NotificationModel)
            .populate_existing()
            .filter(NotificationModel.user_id == user_id)
            .filter(
                NotificationModel.status.in_([item.value for item in READABLE_STATUSES])
            )
            .order_by(
                NotificationModel.priority_rank.desc(),
                NotificationModel.created_at.desc(),
                NotificationModel.id.desc(),
            )
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def update(self, notification_id: int, changes: Mapping[str, Any]) -> Notification:
        """Apply ``changes`` to a stored notification, refusing identity fields."""

        forbidden = sorted(set(changes) & _IMMUTABLE_FIELDS)
        if forbidden:
            msg = f"Cannot modify immutable notification fields: {', '.join(forbidden)}"
            raise ValidationError(msg)
        unknown = sorted(set(changes) - _MUTABLE_FIELDS)
        if unknown:
            msg = f"Unknown notification fields: {', '.join(unknown)}"
            raise ValidationError(msg)

        current = self.get(notification_id)
        if current is None:
            raise NotificationNotFoundError(f"Notification with id {notification_id} not found")
        return self.save(replace(current, **changes))

    def save(self, notification: Notification) -> Notification:
        if notification.id is None:
            raise ValueError("Notification id is required for updates")
        model = self.session.get(NotificationModel, notification.id)
        if model is None:
            raise NotificationNotFoundError(
                f"Notification with id {notification.id} not found"
            )
        self._apply_entity_to_model(model, notification, include_creation_fields=False)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def find_dispatch_candidates(
        self, *, now: datetime, limit: int = 50
    ) -> Sequence[Notification]:
        """Return claimable notifications, highest priority and oldest first."""

        query = (
            self.session.query(NotificationModel)
            .populate_existing()
            .filter(self._claimable_clause(ensure_app_naive_datetime(now)))
            .order_by(
                NotificationModel.priority_rank.desc(),
                NotificationModel.created_at.asc(),
                NotificationModel.id.asc(),
            )
            .limit(limit)
        )
        return [self._to_entity(model) for model in query.all()]

    def has_dispatch_candidates(self, *, now: datetime) -> bool:
        query = self.session.query(NotificationModel.id).filter(
            self._claimable_clause(ensure_app_naive_datetime(now))
        )
        return self.session.query(query.exists()).scalar()

    def claim(
        self,
        notification_id: int,
        *,
        worker_id: str,
        now: datetime,
        lease_until: datetime,
    ) -> Notification | None:
        """Atomically take ownership of a claimable notification.

        Returns ``None`` when another worker already holds a live claim or the
        notification left the queue.
        """

        statement = (
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .where(self._claimable_clause(ensure_app_naive_datetime(now)))
            .values(
                status=_CLAIMED,
                claimed_by=worker_id,
                claim_expires_at=ensure_app_naive_datetime(lease_until),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.commit()
        if result.rowcount != 1:
            return None
        return self.get(notification_id)

    def complete_attempt(self, notification: Notification, *, worker_id: str) -> bool:
        """Persist the outcome of an attempt if ``worker_id`` still owns the claim."""

        statement = (
            update(NotificationModel)
            .where(NotificationModel.id == notification.id)
            .where(NotificationModel.status == _CLAIMED)
            .where(NotificationModel.claimed_by == worker_id)
            .values(
                status=notification.status.value,
                retry_count=notification.retry_count,
                scheduled_at=ensure_app_naive_datetime(notification.scheduled_at),
                sent_at=ensure_app_naive_datetime(notification.sent_at),
                failure_reason=notification.failure_reason,
                delivered_channels=[item.value for item in notification.delivered_channels],
                external_message_id=notification.external_message_id,
                claimed_by=None,
                claim_expires_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.commit()
        return result.rowcount == 1

    def cancel(self, notification_id: int, *, reason: str) -> bool:
        """Fail a notification that is still ``PENDING`` so no worker picks it up.

        Returns ``False`` when a worker already claimed it or it left the queue.
        """

        statement = (
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .where(NotificationModel.status == _PENDING)
            .values(
                status=NotificationStatus.FAILED.value,
                failure_reason=reason,
                claimed_by=None,
                claim_expires_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.commit()
        return result.rowcount == 1

    def queue_status(self, *, now: datetime) -> QueueStatus:
        now_naive = ensure_app_naive_datetime(now)
        counts = dict(
            self.session.query(NotificationModel.status, func.count(NotificationModel.id))
            .group_by(NotificationModel.status)
            .all()
        )
        delayed = (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.status == _PENDING)
            .filter(NotificationModel.scheduled_at > now_naive)
            .scalar()
        ) or 0
        pending = counts.get(_PENDING, 0)
        return QueueStatus(
            waiting=pending - delayed,
            delayed=delayed,
            active=counts.get(_CLAIMED, 0),
            completed=sum(
                counts.get(item.value, 0)
                for item in (
                    NotificationStatus.SENT,
                    NotificationStatus.DELIVERED,
                    NotificationStatus.READ,
                )
            ),
            failed=counts.get(NotificationStatus.FAILED.value, 0)
            + counts.get(NotificationStatus.BOUNCED.value, 0),
        )

    @staticmethod
    def _claimable_clause(now_naive: datetime | None):
        return or_(
            and_(
                NotificationModel.status == _PENDING,
                or_(
                    NotificationModel.scheduled_at.is_(None),
                    NotificationModel.scheduled_at <= now_naive,
                ),
            ),
            and_(
                NotificationModel.status == _CLAIMED,
                NotificationModel.claim_expires_at < now_naive,
            ),
        )

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationModel,
        notification: Notification,
        *,
        include_creation_fields: bool,
    ) -> None:
        if include_creation_fields:
            model.created_at = ensure_app_naive_datetime(
                notification.created_at or now_in_app_timezone()
            )
            model.user_id = notification.user_id
        model.type = notification.type.value
        model.priority = notification.priority.value
        model.priority_rank = notification.priority.rank
        model.title = notification.title
        model.message = notification.message
        model.data = dict(notification.data or {})
        model.channels = [item.value for item in notification.channels]
        model.delivered_channels = [item.value for item in notification.delivered_channels]
        model.status = notification.status.value
        model.retry_count = notification.retry_count
        model.failure_reason = notification.failure_reason
        model.scheduled_at = ensure_app_naive_datetime(notification.scheduled_at)
        model.sent_at = ensure_app_naive_datetime(notification.sent_at)
        model.read_at = ensure_app_naive_datetime(notification.read_at)
        model.claimed_by = notification.claimed_by
        model.claim_expires_at = ensure_app_naive_datetime(notification.claim_expires_at)
        model.external_message_id = notification.external_message_id
        model.dedup_key = notification.dedup_key

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            title=model.title,
            message=model.message,
            data=dict(model.data or {}),
            channels=tuple(NotificationChannel(item) for item in model.channels or ()),
            status=NotificationStatus(model.status),
            retry_count=model.retry_count or 0,
            scheduled_at=ensure_app_timezone(model.scheduled_at),
            sent_at=ensure_app_timezone(model.sent_at),
            read_at=ensure_app_timezone(model.read_at),
            failure_reason=model.failure_reason,
            claimed_by=model.claimed_by,
            claim_expires_at=ensure_app_timezone(model.claim_expires_at),
            delivered_channels=tuple(
                NotificationChannel(item) for item in model.delivered_channels or ()
            ),
            external_message_id=model.external_message_id,
            dedup_key=model.dedup_key,
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationRepository"]
