from .catalog import Product
from .orders import Order
from .customers import Customer
from .settings import StoreSettings, DEFAULT_STORE_SETTINGS
from .auth import Account

# Collection name -> model, as addressed through the remote store boundary
TABLES = {
    "products": Product,
    "orders": Order,
    "customers": Customer,
    "store_settings": StoreSettings,
}

__all__ = [
    'Product', 'Order', 'Customer', 'StoreSettings', 'DEFAULT_STORE_SETTINGS',
    'Account', 'TABLES',
]
