from .auth import User, UserRole
from .customers import Customer
from .inventory import Product, Inventory, InventoryMovement, MovementType
from .sales import Sale, SaleItem, SaleStatus, format_sale_number
from .security import SecurityEvent

__all__ = [
    'User', 'UserRole',
    'Customer',
    'Product', 'Inventory', 'InventoryMovement', 'MovementType',
    'Sale', 'SaleItem', 'SaleStatus', 'format_sale_number',
    'SecurityEvent',
]
