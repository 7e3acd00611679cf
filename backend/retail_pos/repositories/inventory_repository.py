"""Inventory store: one row per product."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import Inventory
from ..services.concurrency import lock_for_update
from .base import SqlRepository


class InventoryRepository(ABC):

    @abstractmethod
    def find_by_product_id(self, product_id: str, *, for_update: bool = False) -> Inventory | None:
        """Return the inventory row for a product, or None."""

    @abstractmethod
    def find_all(self) -> list[Inventory]:
        """Return every inventory row, lowest stock first."""

    @abstractmethod
    def find_low_stock(self) -> list[Inventory]:
        """Return rows at or below their reorder threshold."""

    @abstractmethod
    def save(self, inventory: Inventory, *, commit: bool = True) -> Inventory:
        """Persist a new inventory row."""

    @abstractmethod
    def update(self, inventory_id: str, inventory: Inventory, *, commit: bool = True) -> Inventory | None:
        """Persist changes; None when inventory_id is unknown."""


class SqlInventoryRepository(SqlRepository, InventoryRepository):

    def find_by_product_id(self, product_id: str, *, for_update: bool = False) -> Inventory | None:
        def load(session):
            query = session.query(Inventory).filter_by(product_id=product_id)
            if for_update:
                # Re-read the row under lock instead of trusting the identity map
                query = lock_for_update(query).populate_existing()
            return query.first()

        return self._read(load, what=f"inventory for product {product_id}")

    def find_all(self) -> list[Inventory]:
        return self._read(
            lambda session: session.query(Inventory)
            .order_by(Inventory.current_stock.asc(), Inventory.product_id.asc())
            .all(),
            what="inventory",
        )

    def find_low_stock(self) -> list[Inventory]:
        return self._read(
            lambda session: session.query(Inventory)
            .filter(Inventory.current_stock <= Inventory.reorder_threshold)
            .order_by(Inventory.current_stock.asc(), Inventory.product_id.asc())
            .all(),
            what="low-stock inventory",
        )

    def save(self, inventory: Inventory, *, commit: bool = True) -> Inventory:
        self._write(inventory, commit=commit, what=f"inventory for product {inventory.product_id}")
        return inventory

    def update(self, inventory_id: str, inventory: Inventory, *, commit: bool = True) -> Inventory | None:
        existing = self._read(lambda session: session.get(Inventory, inventory_id), what=f"inventory {inventory_id}")
        if existing is None:
            return None
        if existing is not inventory:
            inventory = self.session.merge(inventory)
        self._write(None, commit=commit, what=f"inventory for product {inventory.product_id}")
        return inventory
