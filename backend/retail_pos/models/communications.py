from __future__ import annotations

from ..extensions import db
from ..ids import new_id
from ..validation import require_choice, require_text
from retail_pos.time_utils import to_utc_z, utcnow


NOTIFICATION_LOW_STOCK = "LOW_STOCK"
NOTIFICATION_OUT_OF_STOCK = "OUT_OF_STOCK"
NOTIFICATION_REORDER_ALERT = "REORDER_ALERT"
NOTIFICATION_TYPES = {NOTIFICATION_LOW_STOCK, NOTIFICATION_OUT_OF_STOCK, NOTIFICATION_REORDER_ALERT}


class Notification(db.Model):
    """
    Stock alert produced as a side effect of an inventory change.

    user_id is the optional recipient; rows without one are broadcast.
    The only mutation is mark_as_read, and it is one-way.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    type = db.Column(db.String(32), nullable=False, index=True)
    message = db.Column(db.String(500), nullable=False)

    user_id = db.Column(db.String(36), nullable=True)
    product_id = db.Column(db.String(36), nullable=True, index=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @classmethod
    def create(
        cls,
        type: str,
        message: str,
        user_id: str | None = None,
        product_id: str | None = None,
    ) -> "Notification":
        return cls(
            id=new_id(),
            type=require_choice(type, "type", NOTIFICATION_TYPES),
            message=require_text(message, "message")[:500],
            user_id=user_id,
            product_id=product_id,
            is_read=False,
            created_at=utcnow(),
        )

    def mark_as_read(self) -> None:
        self.is_read = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
