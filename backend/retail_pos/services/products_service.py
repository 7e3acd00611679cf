# backend/retail_pos/services/products_service.py
"""
Products Service

Every product owns one Inventory row. create_product writes both in the
same commit; delete_product is a hard delete that takes the row with it.
"""
from __future__ import annotations

from ..models import Inventory, Product
from ..models.inventory import PRODUCT_MUTABLE_FIELDS
from ..repositories import InventoryRepository, ProductRepository, SqlInventoryRepository, commit_or_raise
from ..validation import ConflictError, ModelValidationPolicy, NotFoundError, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"sku", "name", "category", "unit", "cost_price_cents", "selling_price_cents"},
)


class ProductService:

    def __init__(
        self,
        products: ProductRepository | None = None,
        inventory: InventoryRepository | None = None,
        *,
        default_reorder_threshold: int = 10,
    ):
        self.products = products or ProductRepository()
        self.inventory = inventory or SqlInventoryRepository()
        self.default_reorder_threshold = default_reorder_threshold

    def list_products(self, *, category: str | None = None, search: str | None = None) -> list[Product]:
        """Catalog listing; search matches name or SKU, case-insensitive."""
        return self.products.find_all(category=category, search=search)

    def get_product(self, product_id: str) -> Product:
        product = self.products.find_by_id(product_id)
        if product is None:
            raise NotFoundError("Product doesn't exist", details={"product_id": product_id})
        return product

    def create_product(self, data: dict) -> Product:
        """
        Create product and its zero-stock inventory row.

        Raises:
            ValidationError: bad or missing fields, negative prices
            ConflictError: SKU already exists
        """
        patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=False)

        if self.products.find_by_sku(patch["sku"]) is not None:
            raise ConflictError(f"Product with SKU {patch['sku']} already exists", details={"sku": patch["sku"]})

        product = Product.create(**patch)
        inventory = Inventory.create(product.id, 0, self.default_reorder_threshold)

        self.products.save(product, commit=False)
        self.inventory.save(inventory, commit=False)
        commit_or_raise(self.products.session, f"product {product.sku}")
        return product

    def update_product(self, product_id: str, data: dict) -> Product:
        """Partial update: only the provided fields change."""
        patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=True)
        product = self.get_product(product_id)

        new_sku = patch.get("sku")
        if new_sku and new_sku != product.sku:
            if self.products.find_by_sku(new_sku) is not None:
                raise ConflictError(f"Product with SKU {new_sku} already exists", details={"sku": new_sku})

        product.update(patch)
        updated = self.products.update(product_id, product)
        if updated is None:
            raise NotFoundError("Product doesn't exist", details={"product_id": product_id})
        return updated

    def delete_product(self, product_id: str) -> dict:
        """Hard delete. Returns the product as it was before deletion."""
        product = self.get_product(product_id)
        snapshot = product.to_dict()
        if not self.products.delete(product_id):
            raise NotFoundError("Product doesn't exist", details={"product_id": product_id})
        return snapshot
