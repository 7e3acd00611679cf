# Overview: Service-layer operations for stock notifications.

from __future__ import annotations

from flask import current_app

from ..models import Inventory, Notification
from ..models.communications import NOTIFICATION_LOW_STOCK
from ..repositories import NotificationRepository, SqlNotificationRepository
from ..validation import NotFoundError


class NotificationService:
    """
    Side channel for stock alerts.

    Recording a low-stock alert is best effort: notify_low_stock() logs and
    swallows any failure so the inventory change that triggered it stands.
    """

    def __init__(self, notifications: NotificationRepository | None = None):
        self.notifications = notifications or SqlNotificationRepository()

    def create_notification(
        self,
        type: str,
        message: str,
        user_id: str | None = None,
        product_id: str | None = None,
    ) -> Notification:
        notification = Notification.create(type, message, user_id=user_id, product_id=product_id)
        return self.notifications.save(notification)

    def get_user_notifications(self, user_id: str) -> list[Notification]:
        """The user's own notifications plus broadcast ones, newest first."""
        return self.notifications.find_by_user_id(user_id)

    def get_unread_count(self, user_id: str) -> int:
        return self.notifications.count_unread(user_id)

    def mark_as_read(self, notification_id: str) -> Notification:
        notification = self.notifications.find_by_id(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found", details={"notification_id": notification_id})

        # Already read: nothing to write
        if notification.is_read:
            return notification

        notification.mark_as_read()
        updated = self.notifications.update(notification_id, notification)
        if updated is None:
            raise NotFoundError("Notification not found", details={"notification_id": notification_id})
        return updated

    def notify_low_stock(self, inventory: Inventory) -> Notification | None:
        """Record a LOW_STOCK alert if the row is at or below its threshold. Never raises."""
        if not inventory.is_low_stock():
            return None

        product_id = inventory.product_id
        current_stock = inventory.current_stock
        current_app.logger.info(
            "Product %s is low on stock (%d <= %d)", product_id, current_stock, inventory.reorder_threshold
        )
        try:
            return self.create_notification(
                NOTIFICATION_LOW_STOCK,
                f"Product {product_id} is low on stock. Current: {current_stock}",
                product_id=product_id,
            )
        except Exception:
            current_app.logger.exception("Failed to record low-stock notification for product %s", product_id)
            return None
