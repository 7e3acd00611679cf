"""
Sales Service - sale recording and stock consumption

A sale request is (cashier, payment method, lines of product/quantity/unit
price). Recording it runs five steps:

1. Availability: every product's summed quantity is checked against its
   current stock. The first failure aborts with nothing written.
2. Aggregate: the Sale and its SaleItems are built; subtotals and the total
   are fixed here.
3. Commit: the sale row and every item row are written atomically.
4. Decrement: each item is removed from its Inventory row and persisted.
5. Alert: a row left at or below its reorder threshold gets a LOW_STOCK
   notification. Alert failures are logged and swallowed.

KNOWN INCONSISTENCY WINDOW (default mode):
Steps 1 and 4 are separate from the commit in step 3. Two concurrent sales
can both pass step 1 for the same stock; the loser then fails in step 4
with InsufficientStockError after its sale is already committed. Any
persistence failure in step 4 likewise leaves a committed sale whose stock
was not deducted. The raised error carries sale_id/sale_number in
details so the caller can reconcile; nothing is rolled back.

LOCKED MODE (lock_inventory=True, config SALE_LOCK_INVENTORY):
Steps 1-4 run in one transaction with the inventory rows locked, so
competing sales serialise and at most the stock on hand is sold. Step 5
still runs after the commit.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Inventory, Sale, SaleLineRequest
from ..repositories import (
    InventoryRepository,
    SaleRepository,
    SqlInventoryRepository,
    SqlSaleRepository,
    commit_or_raise,
)
from ..validation import DomainError, InsufficientStockError, NotFoundError, ValidationError
from retail_pos.time_utils import normalize_bound
from .concurrency import begin_write_lock, run_with_retry
from .notifications_service import NotificationService


def coerce_lines(items) -> list[SaleLineRequest]:
    """Accept SaleLineRequest objects or plain dicts; validate each line."""
    if items is None:
        return []
    if isinstance(items, (str, bytes, dict)):
        raise ValidationError("items must be a list")

    lines = []
    for item in items:
        line = item if isinstance(item, SaleLineRequest) else SaleLineRequest.from_dict(item)
        lines.append(line.validate())
    return lines


def quantities_by_product(lines: list[SaleLineRequest]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


class SaleService:
    """
    Records sales and consumes stock.

    The individual steps are public so callers (and tests) can run them one
    at a time; create_sale() is the normal entry point.
    """

    def __init__(
        self,
        sales: SaleRepository | None = None,
        inventory: InventoryRepository | None = None,
        notifications: NotificationService | None = None,
        *,
        lock_inventory: bool = False,
    ):
        self.sales = sales or SqlSaleRepository()
        self.inventory = inventory or SqlInventoryRepository()
        self.notifications = notifications or NotificationService()
        self.lock_inventory = lock_inventory

    def create_sale(self, cashier_id: str, payment_method: str, items) -> Sale:
        """
        Record a sale and deduct its stock.

        Raises ValidationError, NotFoundError or InsufficientStockError before
        anything is written. PersistenceError from step 3 means no sale rows
        exist; errors from step 4 mean the sale is committed (see module doc).
        """
        lines = coerce_lines(items)
        if not lines:
            raise ValidationError("Sale must have at least one item")

        if self.lock_inventory:
            return self._create_sale_locked(cashier_id, payment_method, lines)

        self.check_availability(lines)
        sale = self.build_sale(cashier_id, payment_method, lines)
        self.commit_sale(sale)
        self.deduct_stock(sale)
        return sale

    def check_availability(self, lines: list[SaleLineRequest], *, for_update: bool = False) -> dict[str, Inventory]:
        """Step 1. Returns the inventory rows keyed by product id."""
        rows: dict[str, Inventory] = {}
        for product_id, quantity in quantities_by_product(lines).items():
            inventory = self.inventory.find_by_product_id(product_id, for_update=for_update)
            if inventory is None:
                raise NotFoundError("Inventory not found", details={"product_id": product_id})
            if quantity > inventory.current_stock:
                raise InsufficientStockError(product_id, quantity, inventory.current_stock)
            rows[product_id] = inventory
        return rows

    def build_sale(self, cashier_id: str, payment_method: str, lines: list[SaleLineRequest]) -> Sale:
        """Step 2."""
        return Sale.create(cashier_id, payment_method, lines)

    def commit_sale(self, sale: Sale) -> Sale:
        """Step 3: sale and items land together or not at all."""
        return self.sales.save(sale)

    def deduct_stock(self, sale: Sale) -> list[Inventory]:
        """
        Steps 4 and 5, run after the sale is committed.

        Each item is removed from stock and persisted on its own. The first
        failure stops the loop and propagates; earlier items stay deducted.
        """
        sale_id = sale.id
        sale_number = sale.sale_number
        movements = [(item.product_id, item.quantity) for item in sale.items]

        updated = []
        for product_id, quantity in movements:
            try:
                inventory = self.inventory.find_by_product_id(product_id)
                if inventory is None:
                    raise NotFoundError("Inventory not found", details={"product_id": product_id})
                inventory.remove_stock(quantity)
                if self.inventory.update(inventory.id, inventory) is None:
                    raise NotFoundError("Inventory not found", details={"product_id": product_id})
            except DomainError as exc:
                exc.details.update({"sale_id": sale_id, "sale_number": sale_number})
                current_app.logger.error(
                    "Sale %s is committed but stock for product %s was not deducted: %s",
                    sale_number,
                    product_id,
                    exc,
                )
                raise

            updated.append(inventory)
            self.notifications.notify_low_stock(inventory)
        return updated

    def _create_sale_locked(self, cashier_id: str, payment_method: str, lines: list[SaleLineRequest]) -> Sale:
        session = getattr(self.sales, "session", db.session)

        def _op():
            try:
                begin_write_lock(session)
                rows = self.check_availability(lines, for_update=True)
                sale = self.build_sale(cashier_id, payment_method, lines)
                self.sales.save(sale, commit=False)

                for item in sale.items:
                    inventory = rows[item.product_id]
                    inventory.remove_stock(item.quantity)
                    self.inventory.update(inventory.id, inventory, commit=False)

                commit_or_raise(session, f"sale {sale.sale_number}")
            except Exception:
                # Release the write lock before the error leaves this function
                session.rollback()
                raise
            return sale, list(rows.values())

        sale, rows = run_with_retry(_op)
        for inventory in rows:
            self.notifications.notify_low_stock(inventory)
        return sale

    def list_sales(
        self,
        *,
        start_date: datetime | str | None = None,
        end_date: datetime | str | None = None,
        cashier_id: str | None = None,
    ) -> list[Sale]:
        """Sales history, newest first. Date bounds are inclusive; plain dates cover the whole day."""
        try:
            start = normalize_bound(start_date)
            end = normalize_bound(end_date, end_of_day=True)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        if start is not None and end is not None and start > end:
            raise ValidationError("start_date must not be after end_date")
        return self.sales.find_all(start_date=start, end_date=end, cashier_id=cashier_id)

    def get_sale(self, sale_id: str) -> Sale:
        sale = self.sales.find_by_id(sale_id)
        if sale is None:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})
        return sale
