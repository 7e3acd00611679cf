from __future__ import annotations

from ..extensions import db
from ..ids import new_id
from ..validation import (
    MAX_PRICE_CENTS,
    InsufficientStockError,
    ValidationError,
    require_choice,
    require_non_negative_int,
    require_positive_int,
    require_text,
)
from retail_pos.time_utils import to_utc_z, utcnow


UNIT_PCS = "pcs"
UNIT_BAG = "bag"
UNIT_LITER = "liter"
UNIT_KG = "kg"
UNIT_BOX = "box"
UNIT_ROLL = "roll"
UNIT_METER = "meter"
UNITS = {UNIT_PCS, UNIT_BAG, UNIT_LITER, UNIT_KG, UNIT_BOX, UNIT_ROLL, UNIT_METER}

PRODUCT_MUTABLE_FIELDS = {
    "sku",
    "name",
    "category",
    "supplier",
    "unit",
    "cost_price_cents",
    "selling_price_cents",
    "description",
}


def _price(value, field: str) -> int:
    return require_non_negative_int(value, field, maximum=MAX_PRICE_CENTS)


class Product(db.Model):
    """
    Catalog entry.

    SKU is globally unique. Prices are stored in cents and are never negative.
    Every product owns exactly one Inventory row, created alongside it and
    removed with it (hard delete, no history is kept).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_name", "category", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    supplier = db.Column(db.String(255), nullable=True)
    unit = db.Column(db.String(16), nullable=False, default=UNIT_PCS)

    # Authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    inventory = db.relationship(
        "Inventory",
        back_populates="product",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @classmethod
    def create(
        cls,
        *,
        sku: str,
        name: str,
        category: str,
        unit: str,
        cost_price_cents: int,
        selling_price_cents: int,
        supplier: str | None = None,
        description: str | None = None,
    ) -> "Product":
        """Validate required fields and price invariants, then build an unsaved product."""
        cost = _price(cost_price_cents, "cost_price_cents")
        selling = _price(selling_price_cents, "selling_price_cents")
        now = utcnow()
        return cls(
            id=new_id(),
            sku=require_text(sku, "sku"),
            name=require_text(name, "name"),
            category=require_text(category, "category"),
            unit=require_choice(unit, "unit", UNITS),
            cost_price_cents=cost,
            selling_price_cents=selling,
            supplier=supplier,
            description=description,
            created_at=now,
            updated_at=now,
        )

    def update(self, patch: dict) -> None:
        """
        Partial update: only keys present in patch change.

        Everything is validated before the first assignment so a rejected
        patch leaves the product untouched.
        """
        changes = {}
        for key, value in patch.items():
            if key not in PRODUCT_MUTABLE_FIELDS:
                continue
            if key in ("sku", "name", "category"):
                value = require_text(value, key)
            elif key == "unit":
                value = require_choice(value, "unit", UNITS)
            elif key in ("cost_price_cents", "selling_price_cents"):
                value = _price(value, key)
            changes[key] = value

        for key, value in changes.items():
            setattr(self, key, value)
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "supplier": self.supplier,
            "unit": self.unit,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Inventory(db.Model):
    """
    Per-product stock ledger.

    Invariant after every mutation:
        current_stock == opening_stock + stock_in - stock_out
    current_stock never drops below zero. Mutations validate first and leave
    the row unchanged when they raise.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_inventory_current_stock_non_negative"),
        db.Index("ix_inventory_stock_threshold", "current_stock", "reorder_threshold"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    product_id = db.Column(
        db.String(36),
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    opening_stock = db.Column(db.Integer, nullable=False, default=0)
    stock_in = db.Column(db.Integer, nullable=False, default=0)
    stock_out = db.Column(db.Integer, nullable=False, default=0)
    current_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_threshold = db.Column(db.Integer, nullable=False, default=10)

    last_restocked = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product", back_populates="inventory")

    @classmethod
    def create(cls, product_id: str, opening_stock: int = 0, reorder_threshold: int = 10) -> "Inventory":
        opening = require_non_negative_int(opening_stock, "opening_stock")
        threshold = require_non_negative_int(reorder_threshold, "reorder_threshold")
        now = utcnow()
        return cls(
            id=new_id(),
            product_id=require_text(product_id, "product_id"),
            opening_stock=opening,
            stock_in=0,
            stock_out=0,
            current_stock=opening,
            reorder_threshold=threshold,
            last_restocked=now if opening > 0 else None,
            created_at=now,
            updated_at=now,
        )

    def add_stock(self, quantity: int) -> None:
        require_positive_int(quantity, "quantity")
        now = utcnow()
        self.stock_in += quantity
        self.current_stock += quantity
        self.last_restocked = now
        self.updated_at = now

    def remove_stock(self, quantity: int) -> None:
        require_positive_int(quantity, "quantity")
        if quantity > self.current_stock:
            raise InsufficientStockError(self.product_id, quantity, self.current_stock)
        self.stock_out += quantity
        self.current_stock -= quantity
        self.updated_at = utcnow()

    def adjust_opening_stock(self, opening_stock: int) -> None:
        """
        Replace the opening balance and recompute current stock from the ledger.

        The result is not tied to any physical movement; it only moves by the
        difference between the old and new opening balance.
        """
        opening = require_non_negative_int(opening_stock, "opening_stock")
        recomputed = opening + self.stock_in - self.stock_out
        if recomputed < 0:
            raise ValidationError(
                "Opening stock would make current stock negative",
                details={"product_id": self.product_id, "current_stock": recomputed},
            )
        self.opening_stock = opening
        self.current_stock = recomputed
        self.updated_at = utcnow()

    def set_reorder_threshold(self, threshold: int) -> None:
        self.reorder_threshold = require_non_negative_int(threshold, "reorder_threshold")
        self.updated_at = utcnow()

    def is_low_stock(self) -> bool:
        return self.current_stock <= self.reorder_threshold

    def __repr__(self) -> str:
        return f"<Inventory product_id={self.product_id} current_stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "opening_stock": self.opening_stock,
            "stock_in": self.stock_in,
            "stock_out": self.stock_out,
            "current_stock": self.current_stock,
            "reorder_threshold": self.reorder_threshold,
            "is_low_stock": self.is_low_stock(),
            "last_restocked": to_utc_z(self.last_restocked),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
