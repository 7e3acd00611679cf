# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/retail_pos/services/inventory_service.py
"""
Inventory Invariants (authoritative)

Stock model:
- One Inventory row per product, created with the product.
- current_stock == opening_stock + stock_in - stock_out after every mutation.
- current_stock may never go negative; removing more than is on hand raises
  InsufficientStockError and leaves the row unchanged.
- "Low stock" means current_stock <= reorder_threshold.

Side effects:
- Every stock movement that leaves a row low records a LOW_STOCK
  notification. Notification failures are logged, never raised.
"""

from __future__ import annotations

from ..models import Inventory
from ..repositories import InventoryRepository, SqlInventoryRepository
from ..validation import NotFoundError, ValidationError
from .notifications_service import NotificationService


DIRECTION_IN = "in"
DIRECTION_OUT = "out"
DIRECTIONS = {DIRECTION_IN, DIRECTION_OUT}


class InventoryService:

    def __init__(
        self,
        inventory: InventoryRepository | None = None,
        notifications: NotificationService | None = None,
    ):
        self.inventory = inventory or SqlInventoryRepository()
        self.notifications = notifications or NotificationService()

    def get_inventory(self, product_id: str) -> Inventory:
        inventory = self.inventory.find_by_product_id(product_id)
        if inventory is None:
            raise NotFoundError("Inventory not found", details={"product_id": product_id})
        return inventory

    def list_inventory(self) -> list[Inventory]:
        return self.inventory.find_all()

    def list_low_stock(self) -> list[Inventory]:
        return self.inventory.find_low_stock()

    def _persist(self, inventory: Inventory) -> Inventory:
        updated = self.inventory.update(inventory.id, inventory)
        if updated is None:
            raise NotFoundError("Inventory not found", details={"product_id": inventory.product_id})
        return updated

    def adjust_stock(self, product_id: str, quantity: int, direction: str) -> Inventory:
        """
        Manual stock movement: "in" receives stock, "out" removes it.

        Raises ValidationError for a bad direction or quantity and
        InsufficientStockError when removing more than is on hand.
        """
        if direction not in DIRECTIONS:
            raise ValidationError("direction must be 'in' or 'out'")

        inventory = self.get_inventory(product_id)
        if direction == DIRECTION_IN:
            inventory.add_stock(quantity)
        else:
            inventory.remove_stock(quantity)

        inventory = self._persist(inventory)
        self.notifications.notify_low_stock(inventory)
        return inventory

    def update_reorder_threshold(self, product_id: str, threshold: int) -> Inventory:
        inventory = self.get_inventory(product_id)
        inventory.set_reorder_threshold(threshold)
        return self._persist(inventory)

    def adjust_opening_stock(self, product_id: str, opening_stock: int) -> Inventory:
        inventory = self.get_inventory(product_id)
        inventory.adjust_opening_stock(opening_stock)
        inventory = self._persist(inventory)
        self.notifications.notify_low_stock(inventory)
        return inventory
