from .auth import User, SessionToken, ROLES, ROLE_USER, ROLE_ADMIN, ROLE_LOGISTICS
from .catalog import Product
from .cart import CartItem
from .orders import Order, OrderItem, ORDER_STATUSES

__all__ = [
    'User', 'SessionToken', 'ROLES', 'ROLE_USER', 'ROLE_ADMIN', 'ROLE_LOGISTICS',
    'Product',
    'CartItem',
    'Order', 'OrderItem', 'ORDER_STATUSES',
]
