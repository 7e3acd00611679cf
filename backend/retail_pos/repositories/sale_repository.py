"""Sale store: a sale and its items are always written together."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..models import Sale
from .base import SqlRepository


class SaleRepository(ABC):

    @abstractmethod
    def save(self, sale: Sale, *, commit: bool = True) -> Sale:
        """Insert the sale row and all item rows atomically."""

    @abstractmethod
    def find_by_id(self, sale_id: str) -> Sale | None:
        """Return a sale with its items, or None."""

    @abstractmethod
    def find_all(
        self,
        *,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        cashier_id: str | None = None,
    ) -> list[Sale]:
        """Return sales newest first, optionally filtered (bounds inclusive)."""


class SqlSaleRepository(SqlRepository, SaleRepository):

    def save(self, sale: Sale, *, commit: bool = True) -> Sale:
        # Items cascade from the sale, so one commit covers every row
        self._write(sale, commit=commit, what=f"sale {sale.sale_number}")
        return sale

    def find_by_id(self, sale_id: str) -> Sale | None:
        return self._read(lambda session: session.get(Sale, sale_id), what=f"sale {sale_id}")

    def find_all(
        self,
        *,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        cashier_id: str | None = None,
    ) -> list[Sale]:
        def load(session):
            query = session.query(Sale)
            if start_date is not None:
                query = query.filter(Sale.created_at >= start_date)
            if end_date is not None:
                query = query.filter(Sale.created_at <= end_date)
            if cashier_id is not None:
                query = query.filter(Sale.cashier_id == cashier_id)
            return query.order_by(Sale.created_at.desc(), Sale.sale_number.desc()).all()

        return self._read(load, what="sales")
