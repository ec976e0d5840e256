from schemas.category import CategoryCreate
from schemas.product import ProductCreate
from schemas.storage_area import StorageAreaCreate
from services.aggregation import Aggregation, utilization_percent


def test_low_stock_follows_total_across_areas(db, movements, warehouse):
    aggregation = Aggregation(db)
    movements.create(warehouse.widget.id, warehouse.zone_a.id, warehouse.shipping.id, 24, "completed",
                     warehouse.user.id)

    assert aggregation.total_stock(warehouse.widget.id) == 50
    assert aggregation.is_low_stock(warehouse.widget) is False


def test_shipping_out_below_minimum_reports_one_row(db, movements, warehouse):
    aggregation = Aggregation(db)
    movements.create(warehouse.widget.id, warehouse.zone_a.id, None, 45, "completed", warehouse.user.id)

    assert aggregation.total_stock(warehouse.widget.id) == 5
    assert aggregation.is_low_stock(warehouse.widget) is True

    rows = aggregation.low_stock_items()
    assert len(rows) == 1
    assert rows[0]["product"]["name"] == "Widget"
    assert rows[0]["storage_area"].name == "Zone A"
    assert rows[0]["current_stock"] == 5


def test_minimum_is_inclusive(db, ledger, warehouse):
    ledger.set(warehouse.widget.id, warehouse.zone_a.id, 20)
    assert Aggregation(db).is_low_stock(warehouse.widget) is True


def test_low_stock_rows_per_area_and_none_without_entries(db, store, ledger, warehouse):
    tools = store.create_category(CategoryCreate(name="Tools"))
    gadget = store.create_product(ProductCreate(sku="GAD-1", name="Gadget", category_id=tools.id, min_stock_level=10))
    store.create_product(ProductCreate(sku="GHOST-1", name="Ghost", min_stock_level=10))
    ledger.set(gadget.id, warehouse.zone_a.id, 3)
    ledger.set(gadget.id, warehouse.shipping.id, 4)

    rows = Aggregation(db).low_stock_items()

    assert sorted((r["product"]["sku"], r["storage_area"].name, r["current_stock"]) for r in rows) == [
        ("GAD-1", "Shipping", 4),
        ("GAD-1", "Zone A", 3),
    ]
    assert all(r["category"].name == "Tools" for r in rows)


def test_product_with_inventory(db, ledger, warehouse):
    ledger.set(warehouse.widget.id, warehouse.shipping.id, 6)
    aggregation = Aggregation(db)

    item = aggregation.product_with_inventory(warehouse.widget.id)
    assert item["total_stock"] == 56
    assert sorted(e.quantity for e in item["inventory_by_area"]) == [6, 50]
    assert aggregation.product_with_inventory(999) is None

    everything = aggregation.all_products_with_inventory()
    assert [p["sku"] for p in everything] == ["WID-001"]


def test_utilization_rounds_half_up():
    assert utilization_percent(2310, 5500) == 42
    assert utilization_percent(1, 8) == 13
    assert utilization_percent(5, 1000) == 1
    assert utilization_percent(10, 0) == 0
    assert utilization_percent(700, 500) == 140


def test_storage_utilization_over_all_areas(db, store, ledger, warehouse):
    # 1000 + 500 from the fixture
    store.create_storage_area(StorageAreaCreate(name="Overflow", capacity=4000))
    ledger.set(warehouse.widget.id, warehouse.zone_a.id, 2000)
    ledger.set(warehouse.widget.id, warehouse.shipping.id, 310)

    aggregation = Aggregation(db)
    assert aggregation.storage_utilization() == 42

    occupancy = {row["storage_area"].name: row for row in aggregation.area_occupancy()}
    assert occupancy["Zone A"]["utilization"] == 200
    assert occupancy["Shipping"]["items_stored"] == 310
    assert occupancy["Overflow"]["utilization"] == 0


def test_empty_warehouse_utilization_is_zero(db):
    assert Aggregation(db).storage_utilization() == 0


def test_dashboard_stats(db, movements, warehouse):
    movements.create(warehouse.widget.id, warehouse.zone_a.id, None, 40, "completed", warehouse.user.id)
    movements.create(warehouse.widget.id, warehouse.zone_a.id, None, 1, "pending", warehouse.user.id)
    movements.create(warehouse.widget.id, warehouse.zone_a.id, None, 1, "in_progress", warehouse.user.id)
    cancelled = movements.create(warehouse.widget.id, warehouse.zone_a.id, None, 1, "pending", warehouse.user.id)
    movements.set_status(cancelled.id, "cancelled")

    stats = Aggregation(db).dashboard_stats()

    assert stats == {
        "total_products": 1,
        "low_stock_items": 1,
        "pending_movements": 2,
        "storage_utilization": 1,
    }


def test_uses_the_injected_lock_registry(db, locks):
    assert Aggregation(db, locks).ledger.locks is locks
