from .auth import User, Role, UserRole, SessionToken
from .security import SecurityEvent
from .inventory import Product, Supplier, StockInTransaction, StockOutTransaction
from .menus import Menu, Recipe
from .notifications import Notification

__all__ = [
    'User', 'Role', 'UserRole', 'SessionToken',
    'SecurityEvent',
    'Product', 'Supplier', 'StockInTransaction', 'StockOutTransaction',
    'Menu', 'Recipe',
    'Notification',
]
