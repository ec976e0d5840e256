from .users import User, Role
from .category import Category
from .supplier import Supplier
from .storage_area import StorageArea
from .product import Product
from .inventory import Inventory
from .movement import Movement, MovementStatus
from .log import Log

__all__ = [
    "User",
    "Role",
    "Category",
    "Supplier",
    "StorageArea",
    "Product",
    "Inventory",
    "Movement",
    "MovementStatus",
    "Log",
]
