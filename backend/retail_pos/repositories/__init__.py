from .base import SqlRepository, commit_or_raise
from .inventory_repository import InventoryRepository, SqlInventoryRepository
from .sale_repository import SaleRepository, SqlSaleRepository
from .notification_repository import NotificationRepository, SqlNotificationRepository
from .product_repository import ProductRepository
from .user_repository import UserRepository

__all__ = [
    'SqlRepository', 'commit_or_raise',
    'InventoryRepository', 'SqlInventoryRepository',
    'SaleRepository', 'SqlSaleRepository',
    'NotificationRepository', 'SqlNotificationRepository',
    'ProductRepository',
    'UserRepository',
]
