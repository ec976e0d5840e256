"""
Demo warehouse: users, catalogue, storage zones, opening stock and a few
sample movements. Loading is an explicit step, never a side effect of
building the session or the app.
"""
import logging

from sqlalchemy.orm import Session

from models.movement import MovementStatus
from models.product import Product
from models.users import Role, User
from schemas.category import CategoryCreate
from schemas.product import ProductCreate
from schemas.storage_area import StorageAreaCreate
from schemas.supplier import SupplierCreate
from schemas.user import UserCreate
from services.entities import EntityStore
from services.ledger import InventoryLedger, KeyLockRegistry, default_lock_registry
from services.movements import MovementEngine

logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("admin", "admin123", "Admin User", Role.ADMIN),
    ("manager", "manager123", "Manager User", Role.MANAGER),
    ("worker", "worker123", "Worker User", Role.WORKER),
]

DEMO_CATEGORIES = [
    ("Electronics", "Electronic devices and accessories"),
    ("Accessories", "Various accessories for electronic devices"),
]

DEMO_SUPPLIERS = [
    dict(name="Tech Solutions Inc.", contact_name="John Smith", email="john@techsolutions.com",
         phone="555-1234", address="123 Tech St, San Francisco, CA"),
    dict(name="Accessory World", contact_name="Jane Doe", email="jane@accessoryworld.com",
         phone="555-5678", address="456 Market St, San Francisco, CA"),
]

DEMO_AREAS = [
    ("Zone A", "Main storage area for electronics", 1000),
    ("Zone B", "Storage for accessories", 2000),
    ("Zone C", "Overflow storage area", 1500),
    ("Receiving", "Receiving area for new inventory", 500),
    ("Shipping Area", "Area for items ready to be shipped", 500),
]

# sku, name, description, category, supplier, min stock, (area, opening quantity)
DEMO_PRODUCTS = [
    ("WH-BT-001", "Wireless Headphones", "Premium wireless headphones with noise cancellation",
     "Electronics", "Tech Solutions Inc.", 20, ("Zone A", 50)),
    ("EB-BT-001", "Bluetooth Earbuds", "True wireless earbuds with charging case",
     "Electronics", "Tech Solutions Inc.", 20, ("Zone A", 5)),
    ("LS-AL-001", "Laptop Stand", "Adjustable aluminium laptop stand",
     "Accessories", "Accessory World", 30, ("Zone B", 80)),
    ("UC-001", "USB-C Cables", "USB-C to USB-C fast charging cables, 6ft",
     "Accessories", "Accessory World", 30, ("Zone C", 100)),
    ("KB-WL-001", "Wireless Keyboard", "Slim wireless keyboard with numeric keypad",
     "Electronics", "Tech Solutions Inc.", 15, ("Zone A", 32)),
    ("SP-BT-001", "Bluetooth Speakers", "Portable Bluetooth speakers with 20hr battery life",
     "Electronics", "Tech Solutions Inc.", 15, ("Zone B", 30)),
    ("HDMI-001", "HDMI Cables", "4K HDMI cables, 3ft",
     "Accessories", "Accessory World", 30, ("Zone C", 8)),
    ("PC-001", "Phone Chargers", "Fast charging wall adapters",
     "Electronics", "Tech Solutions Inc.", 15, ("Zone B", 12)),
    ("LB-001", "Laptop Bags", "Padded laptop bags with multiple compartments",
     "Accessories", "Accessory World", 20, ("Zone A", 14)),
]

# sku, from, to, quantity, status
DEMO_MOVEMENTS = [
    ("WH-BT-001", "Zone A", "Shipping Area", 24, MovementStatus.COMPLETED),
    ("LS-AL-001", "Zone B", "Receiving", 50, MovementStatus.COMPLETED),
    ("UC-001", "Zone C", "Zone A", 100, MovementStatus.PENDING),
    ("KB-WL-001", "Zone A", "Shipping Area", 12, MovementStatus.COMPLETED),
    ("SP-BT-001", "Zone B", "Shipping Area", 30, MovementStatus.IN_PROGRESS),
]


def is_empty(db: Session) -> bool:
    return db.query(User).count() == 0 and db.query(Product).count() == 0


def load_demo_data(db: Session, locks: KeyLockRegistry = default_lock_registry) -> None:
    store = EntityStore(db, locks)
    ledger = InventoryLedger(db, locks)
    engine = MovementEngine(db, locks)

    users = {
        username: store.create_user(UserCreate(username=username, password=password, full_name=full_name, role=role))
        for username, password, full_name, role in DEMO_USERS
    }
    categories = {
        name: store.create_category(CategoryCreate(name=name, description=description))
        for name, description in DEMO_CATEGORIES
    }
    suppliers = {data["name"]: store.create_supplier(SupplierCreate(**data)) for data in DEMO_SUPPLIERS}
    areas = {
        name: store.create_storage_area(StorageAreaCreate(name=name, description=description, capacity=capacity))
        for name, description, capacity in DEMO_AREAS
    }

    products = {}
    for sku, name, description, category, supplier, min_stock, (area, quantity) in DEMO_PRODUCTS:
        product = store.create_product(ProductCreate(
            sku=sku,
            name=name,
            description=description,
            category_id=categories[category].id,
            supplier_id=suppliers[supplier].id,
            min_stock_level=min_stock,
        ))
        ledger.set(product.id, areas[area].id, quantity)
        products[sku] = product

    admin = users["admin"]
    for sku, source, destination, quantity, status in DEMO_MOVEMENTS:
        engine.create(
            product_id=products[sku].id,
            from_area_id=areas[source].id,
            to_area_id=areas[destination].id,
            quantity=quantity,
            status=status,
            user_id=admin.id,
        )

    logger.info(
        "Loaded demo data: %s users, %s products, %s areas, %s movements",
        len(users), len(products), len(areas), len(DEMO_MOVEMENTS),
    )
