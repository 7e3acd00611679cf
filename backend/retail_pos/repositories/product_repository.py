from __future__ import annotations

from sqlalchemy import func, or_

from ..models import Product
from .base import SqlRepository


class ProductRepository(SqlRepository):
    """Catalog store. Deleting a product also deletes its inventory row."""

    def find_all(self, *, category: str | None = None, search: str | None = None) -> list[Product]:
        def load(session):
            query = session.query(Product)
            if category:
                query = query.filter(Product.category == category)
            if search:
                pattern = f"%{search.strip().lower()}%"
                query = query.filter(
                    or_(func.lower(Product.name).like(pattern), func.lower(Product.sku).like(pattern))
                )
            return query.order_by(Product.name.asc(), Product.id.asc()).all()

        return self._read(load, what="products")

    def find_by_id(self, product_id: str) -> Product | None:
        return self._read(lambda session: session.get(Product, product_id), what=f"product {product_id}")

    def find_by_sku(self, sku: str) -> Product | None:
        return self._read(
            lambda session: session.query(Product).filter_by(sku=sku).first(),
            what=f"product {sku}",
        )

    def save(self, product: Product, *, commit: bool = True) -> Product:
        self._write(product, commit=commit, what=f"product {product.sku}")
        return product

    def update(self, product_id: str, product: Product, *, commit: bool = True) -> Product | None:
        if self.find_by_id(product_id) is None:
            return None
        self._write(product, commit=commit, what=f"product {product.sku}")
        return product

    def delete(self, product_id: str, *, commit: bool = True) -> bool:
        product = self.find_by_id(product_id)
        if product is None:
            return False
        self._delete(product, commit=commit, what=f"product {product.sku}")
        return True
