"""
Read-only views derived from the ledger: total stock per product, low-stock
rows, storage utilization and the dashboard summary.

These are point-in-time scans. They take no ledger locks, so a report built
while movements are being committed may mix before/after states of
different keys; every single value it reads is still a committed one.
"""
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.inventory import Inventory
from models.movement import Movement
from models.product import Product
from models.storage_area import StorageArea
from services.ledger import InventoryLedger, KeyLockRegistry, default_lock_registry
from services.movements import OPEN_STATUSES


def utilization_percent(stored: int, capacity: int) -> int:
    if capacity <= 0:
        return 0
    # Half-up like Math.round, not banker's rounding
    return int(100 * stored / capacity + 0.5)


class Aggregation:
    def __init__(self, db: Session, locks: Optional[KeyLockRegistry] = None):
        self.db = db
        self.ledger = InventoryLedger(db, locks or default_lock_registry)

    def total_stock(self, product_id: int) -> int:
        return sum(entry.quantity for entry in self.ledger.list_by_product(product_id))

    def is_low_stock(self, product: Product) -> bool:
        # A tie counts as low
        return self.total_stock(product.id) <= product.min_stock_level

    def product_with_inventory(self, product_id: int) -> Optional[Dict]:
        product = self.db.get(Product, product_id)
        if product is None:
            return None
        entries = self.ledger.list_by_product(product_id)
        return self._with_inventory(product, entries)

    def all_products_with_inventory(self) -> List[Dict]:
        by_product: Dict[int, List[Inventory]] = defaultdict(list)
        for entry in self.ledger.list_all():
            by_product[entry.product_id].append(entry)
        products = self.db.query(Product).order_by(Product.id).all()
        return [self._with_inventory(p, by_product.get(p.id, [])) for p in products]

    @staticmethod
    def _with_inventory(product: Product, entries: List[Inventory]) -> Dict:
        return {
            "id": product.id,
            "sku": product.sku,
            "name": product.name,
            "description": product.description,
            "category_id": product.category_id,
            "supplier_id": product.supplier_id,
            "min_stock_level": product.min_stock_level,
            "category": product.category,
            "supplier": product.supplier,
            "total_stock": sum(e.quantity for e in entries),
            "inventory_by_area": entries,
        }

    def low_stock_items(self) -> List[Dict]:
        """One row per ledger entry of every low-stock product.

        A low-stock product without any ledger entry yields no row, there is
        no area to attribute it to.
        """
        rows = []
        for item in self.all_products_with_inventory():
            if item["total_stock"] > item["min_stock_level"]:
                continue
            for entry in item["inventory_by_area"]:
                rows.append({
                    "product": item,
                    "category": item["category"],
                    "current_stock": entry.quantity,
                    "storage_area": entry.storage_area,
                })
        return rows

    def storage_utilization(self) -> int:
        stored = self.db.query(func.coalesce(func.sum(Inventory.quantity), 0)).scalar()
        capacity = self.db.query(func.coalesce(func.sum(StorageArea.capacity), 0)).scalar()
        return utilization_percent(int(stored), int(capacity))

    def area_occupancy(self) -> List[Dict]:
        stored_by_area = dict(
            self.db.query(Inventory.storage_area_id, func.sum(Inventory.quantity))
            .group_by(Inventory.storage_area_id)
            .all()
        )
        report = []
        for area in self.db.query(StorageArea).order_by(StorageArea.id).all():
            stored = int(stored_by_area.get(area.id) or 0)
            report.append({
                "storage_area": area,
                "items_stored": stored,
                "capacity": area.capacity,
                "utilization": utilization_percent(stored, area.capacity),
            })
        return report

    def dashboard_stats(self) -> Dict[str, int]:
        pending = self.db.query(Movement).filter(Movement.status.in_(OPEN_STATUSES)).count()
        return {
            "total_products": self.db.query(Product).count(),
            "low_stock_items": len(self.low_stock_items()),
            "pending_movements": pending,
            "storage_utilization": self.storage_utilization(),
        }
