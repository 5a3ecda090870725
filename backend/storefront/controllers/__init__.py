from .collection import CollectionController
from .products import ProductController, ImageUpload
from .customers import CustomerController
from .orders import OrderController
from .settings import SettingsController

__all__ = [
    'CollectionController', 'ProductController', 'ImageUpload',
    'CustomerController', 'OrderController', 'SettingsController',
]
