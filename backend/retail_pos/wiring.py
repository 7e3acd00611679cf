# Overview: Builds the service graph once per app and hands it out inside the app context.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from .repositories import (
    ProductRepository,
    SqlInventoryRepository,
    SqlNotificationRepository,
    SqlSaleRepository,
)
from .services.inventory_service import InventoryService
from .services.notifications_service import NotificationService
from .services.products_service import ProductService
from .services.sales_service import SaleService


EXTENSION_KEY = "retail_pos"


@dataclass
class Services:
    notifications: NotificationService
    inventory: InventoryService
    products: ProductService
    sales: SaleService


def build_services(config) -> Services:
    """
    Wire repositories into services.

    One inventory repository and one notification service are shared so
    every stock movement goes through the same gateway and alert path.
    """
    inventory_repo = SqlInventoryRepository()
    notifications = NotificationService(SqlNotificationRepository())

    return Services(
        notifications=notifications,
        inventory=InventoryService(inventory_repo, notifications),
        products=ProductService(
            ProductRepository(),
            inventory_repo,
            default_reorder_threshold=config.get("DEFAULT_REORDER_THRESHOLD", 10),
        ),
        sales=SaleService(
            SqlSaleRepository(),
            inventory_repo,
            notifications,
            lock_inventory=bool(config.get("SALE_LOCK_INVENTORY", False)),
        ),
    )


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
