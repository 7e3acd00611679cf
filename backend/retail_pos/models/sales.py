from __future__ import annotations

import random
import time
from dataclasses import dataclass, replace

from sqlalchemy import event

from ..extensions import db
from ..ids import new_id
from ..validation import (
    MAX_PRICE_CENTS,
    ValidationError,
    require_choice,
    require_non_negative_int,
    require_positive_int,
    require_text,
)
from retail_pos.time_utils import to_utc_z, utcnow


PAYMENT_CASH = "Cash"
PAYMENT_MOBILE_MONEY = "Mobile Money"
PAYMENT_METHODS = {PAYMENT_CASH, PAYMENT_MOBILE_MONEY}


def generate_sale_number() -> str:
    """
    Human-readable, time based: SALE-<last 6 digits of epoch ms>-<0..999>.

    Not checked for uniqueness; the unique constraint on sales.sale_number
    turns a collision into a PersistenceError at save time.
    """
    millis = str(int(time.time() * 1000))[-6:]
    return f"SALE-{millis}-{random.randint(0, 999)}"


@dataclass(frozen=True)
class SaleLineRequest:
    """One requested line of a sale, before any stock is checked."""
    product_id: str
    quantity: int
    unit_price_cents: int

    @classmethod
    def from_dict(cls, data: dict) -> "SaleLineRequest":
        if not isinstance(data, dict):
            raise ValidationError("Each sale item must be an object")
        missing = [k for k in ("product_id", "quantity", "unit_price_cents") if k not in data]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        return cls(
            product_id=data["product_id"],
            quantity=data["quantity"],
            unit_price_cents=data["unit_price_cents"],
        )

    def validate(self) -> "SaleLineRequest":
        """Return the line with a trimmed product_id, or raise ValidationError."""
        product_id = require_text(self.product_id, "product_id")
        require_positive_int(self.quantity, "quantity")
        require_non_negative_int(self.unit_price_cents, "unit_price_cents", maximum=MAX_PRICE_CENTS)
        if product_id != self.product_id:
            return replace(self, product_id=product_id)
        return self


class Sale(db.Model):
    """
    Completed sale.

    A sale and its items are written together and never change afterwards:
    there is no void or amendment. total_amount_cents is fixed at creation to
    the sum of the item subtotals.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_cashier_created", "cashier_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # Human-readable number (e.g., "SALE-482913-57")
    sale_number = db.Column(db.String(32), nullable=False, unique=True)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)

    # Reference to the user who rang the sale up; not an ownership link
    cashier_id = db.Column(db.String(36), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.line_number",
        lazy="selectin",
    )

    @classmethod
    def create(
        cls,
        cashier_id: str,
        payment_method: str,
        lines: list[SaleLineRequest],
        *,
        sale_number: str | None = None,
    ) -> "Sale":
        if not lines:
            raise ValidationError("Sale must have at least one item")

        sale_id = new_id()
        items = [
            SaleItem.create(
                sale_id,
                line.product_id,
                line.quantity,
                line.unit_price_cents,
                line_number=i + 1,
            )
            for i, line in enumerate(lines)
        ]

        return cls(
            id=sale_id,
            sale_number=sale_number or generate_sale_number(),
            total_amount_cents=sum(item.subtotal_cents for item in items),
            payment_method=require_choice(payment_method, "payment_method", PAYMENT_METHODS),
            cashier_id=require_text(cashier_id, "cashier_id"),
            created_at=utcnow(),
            items=items,
        )

    def quantities_by_product(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for item in self.items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
        return totals

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "cashier_id": self.cashier_id,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
        }


class SaleItem(db.Model):
    """Line item owned by exactly one sale. subtotal_cents is stored, never recomputed."""
    __tablename__ = "sale_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False, default=1)

    # Plain reference: products can be hard-deleted while their sales remain
    product_id = db.Column(db.String(36), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    sale = db.relationship("Sale", back_populates="items")

    @classmethod
    def create(
        cls,
        sale_id: str,
        product_id: str,
        quantity: int,
        unit_price_cents: int,
        *,
        line_number: int = 1,
    ) -> "SaleItem":
        line = SaleLineRequest(product_id, quantity, unit_price_cents).validate()
        return cls(
            id=new_id(),
            sale_id=sale_id,
            line_number=line_number,
            product_id=line.product_id,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            subtotal_cents=quantity * unit_price_cents,
            created_at=utcnow(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(Sale, "before_update")
@event.listens_for(SaleItem, "before_update")
def _reject_sale_mutation(mapper, connection, target):
    raise ValidationError(f"{type(target).__name__} records cannot be modified once saved")
