"""Notification store."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sqlalchemy import or_

from ..models import Notification
from .base import SqlRepository


class NotificationRepository(ABC):

    @abstractmethod
    def save(self, notification: Notification, *, commit: bool = True) -> Notification:
        """Persist a new notification."""

    @abstractmethod
    def find_by_id(self, notification_id: str) -> Notification | None:
        """Return a notification, or None."""

    @abstractmethod
    def find_by_user_id(self, user_id: str, *, include_broadcast: bool = True) -> list[Notification]:
        """Return a user's notifications, newest first."""

    @abstractmethod
    def count_unread(self, user_id: str, *, include_broadcast: bool = True) -> int:
        """Count a user's unread notifications."""

    @abstractmethod
    def update(self, notification_id: str, notification: Notification, *, commit: bool = True) -> Notification | None:
        """Persist changes; None when notification_id is unknown."""


class SqlNotificationRepository(SqlRepository, NotificationRepository):

    @staticmethod
    def _for_user(session, user_id: str, include_broadcast: bool):
        query = session.query(Notification)
        if include_broadcast:
            return query.filter(or_(Notification.user_id == user_id, Notification.user_id.is_(None)))
        return query.filter(Notification.user_id == user_id)

    def save(self, notification: Notification, *, commit: bool = True) -> Notification:
        self._write(notification, commit=commit, what=f"{notification.type} notification")
        return notification

    def find_by_id(self, notification_id: str) -> Notification | None:
        return self._read(
            lambda session: session.get(Notification, notification_id),
            what=f"notification {notification_id}",
        )

    def find_by_user_id(self, user_id: str, *, include_broadcast: bool = True) -> list[Notification]:
        return self._read(
            lambda session: self._for_user(session, user_id, include_broadcast)
            .order_by(Notification.created_at.desc())
            .all(),
            what=f"notifications for user {user_id}",
        )

    def count_unread(self, user_id: str, *, include_broadcast: bool = True) -> int:
        return self._read(
            lambda session: self._for_user(session, user_id, include_broadcast)
            .filter(Notification.is_read.is_(False))
            .count(),
            what=f"unread count for user {user_id}",
        )

    def update(self, notification_id: str, notification: Notification, *, commit: bool = True) -> Notification | None:
        existing = self.find_by_id(notification_id)
        if existing is None:
            return None
        if existing is not notification:
            notification = self.session.merge(notification)
        self._write(None, commit=commit, what=f"notification {notification_id}")
        return notification
