from .inventory import Product, Inventory
from .sales import Sale, SaleItem, SaleLineRequest
from .communications import Notification
from .auth import User

__all__ = [
    'Product', 'Inventory',
    'Sale', 'SaleItem', 'SaleLineRequest',
    'Notification',
    'User',
]
