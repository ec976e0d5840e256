import pytest


@pytest.fixture
def stocked(client, manager_headers):
    """Widget with 50 units in Zone A and an empty Shipping area, created over HTTP."""
    zone_a = client.post("/storage-areas", json={"name": "Zone A", "capacity": 1000}, headers=manager_headers).json()
    shipping = client.post("/storage-areas", json={"name": "Shipping", "capacity": 500}, headers=manager_headers).json()
    widget = client.post(
        "/products", json={"sku": "WID-001", "name": "Widget", "min_stock_level": 20}, headers=manager_headers
    ).json()
    r = client.post(
        "/inventory",
        json={"product_id": widget["id"], "storage_area_id": zone_a["id"], "quantity": 50},
        headers=manager_headers,
    )
    assert r.status_code == 201
    return {"zone_a": zone_a["id"], "shipping": shipping["id"], "widget": widget["id"]}


def _level(client, headers, product_id, area_id):
    r = client.get(f"/inventory/{product_id}/{area_id}", headers=headers)
    assert r.status_code == 200
    return r.json()["quantity"]


# ---- auth ----

def test_login_returns_token_and_user(client, admin_headers):
    r = client.post("/auth/login", json={"username": "admin", "password": "admin123"})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["role"] == "admin"
    assert "password_hash" not in body["user"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.json()["username"] == "admin"


def test_bad_credentials_are_rejected(client, admin_headers):
    r = client.post("/auth/login", json={"username": "admin", "password": "nope"})
    assert r.status_code == 401


def test_requests_without_token_are_rejected(client):
    assert client.get("/products").status_code == 401
    assert client.get("/products", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_roles_are_enforced(client, worker_headers):
    r = client.post("/categories", json={"name": "Tools"}, headers=worker_headers)
    assert r.status_code == 403
    assert client.get("/users", headers=worker_headers).status_code == 403
    assert client.get("/logs", headers=worker_headers).status_code == 403


# ---- catalogue ----

def test_product_lookup(client, worker_headers, stocked):
    products = client.get("/products", headers=worker_headers).json()
    assert [(p["sku"], p["total_stock"]) for p in products] == [("WID-001", 50)]

    one = client.get(f"/products/{stocked['widget']}", headers=worker_headers).json()
    assert one["inventory_by_area"][0]["storage_area"]["name"] == "Zone A"

    assert client.get("/products/sku/WID-001", headers=worker_headers).json()["id"] == stocked["widget"]
    assert client.get("/products/sku/NOPE", headers=worker_headers).status_code == 404
    assert client.get("/products/999", headers=worker_headers).status_code == 404


def test_product_filters(client, worker_headers, stocked):
    assert len(client.get("/products?q=wid", headers=worker_headers).json()) == 1
    assert client.get("/products?q=bolt", headers=worker_headers).json() == []
    assert client.get("/products?low_stock=true", headers=worker_headers).json() == []


def test_duplicate_sku_maps_to_conflict(client, manager_headers, stocked):
    r = client.post("/products", json={"sku": "WID-001", "name": "Copy"}, headers=manager_headers)
    assert r.status_code == 409
    assert r.json()["code"] == "DUPLICATE_KEY"
    assert r.json()["field"] == "sku"


def test_update_rejects_identity_field(client, manager_headers, stocked):
    r = client.put(f"/products/{stocked['widget']}", json={"id": 7}, headers=manager_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_area_in_use_cannot_be_deleted(client, manager_headers, stocked):
    r = client.delete(f"/storage-areas/{stocked['zone_a']}", headers=manager_headers)
    assert r.status_code == 409
    assert r.json()["code"] == "REFERENTIAL_CONFLICT"


def test_product_delete_cascades(client, manager_headers, worker_headers, stocked):
    r = client.delete(f"/products/{stocked['widget']}", headers=manager_headers)
    assert r.status_code == 204
    assert client.get(f"/inventory/product/{stocked['widget']}", headers=worker_headers).json() == []
    assert client.delete(f"/storage-areas/{stocked['zone_a']}", headers=manager_headers).status_code == 204


# ---- movements ----

def test_movement_lifecycle(client, worker_headers, stocked):
    payload = {"product_id": stocked["widget"], "from_area_id": stocked["zone_a"],
               "to_area_id": stocked["shipping"], "quantity": 10}
    r = client.post("/movements", json=payload, headers=worker_headers)
    assert r.status_code == 201
    movement = r.json()
    assert movement["status"] == "pending"
    assert _level(client, worker_headers, stocked["widget"], stocked["zone_a"]) == 50

    r = client.put(f"/movements/{movement['id']}/status", json={"status": "completed"}, headers=worker_headers)
    assert r.status_code == 200
    assert _level(client, worker_headers, stocked["widget"], stocked["zone_a"]) == 40
    assert _level(client, worker_headers, stocked["widget"], stocked["shipping"]) == 10

    r = client.put(f"/movements/{movement['id']}/status", json={"status": "cancelled"}, headers=worker_headers)
    assert r.status_code == 409
    assert r.json()["code"] == "INVALID_TRANSITION"

    detail = client.get(f"/movements/{movement['id']}", headers=worker_headers).json()
    assert detail["user"]["username"] == "worker"
    assert detail["to_area"]["name"] == "Shipping"


def test_insufficient_stock_response(client, worker_headers, stocked):
    payload = {"product_id": stocked["widget"], "from_area_id": stocked["zone_a"],
               "to_area_id": stocked["shipping"], "quantity": 60, "status": "completed"}
    r = client.post("/movements", json=payload, headers=worker_headers)

    assert r.status_code == 409
    assert r.json()["code"] == "INSUFFICIENT_STOCK"
    assert r.json()["available"] == 50
    assert client.get("/movements", headers=worker_headers).json() == []


@pytest.mark.parametrize("payload, field", [
    ({"quantity": 0, "from_area_id": 1}, "quantity"),
    ({"quantity": True, "from_area_id": 1}, "quantity"),
    ({"quantity": 3}, None),
])
def test_bad_movement_payloads(client, worker_headers, stocked, payload, field):
    r = client.post("/movements", json={"product_id": stocked["widget"], **payload}, headers=worker_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert r.json()["field"] == field


def test_unknown_area_is_not_found(client, worker_headers, stocked):
    r = client.post("/movements", json={"product_id": stocked["widget"], "to_area_id": 999, "quantity": 1},
                    headers=worker_headers)
    assert r.status_code == 404
    assert r.json()["message"] == "Destination storage area not found"


def test_movement_list_filter(client, worker_headers, stocked):
    base = {"product_id": stocked["widget"], "to_area_id": stocked["shipping"], "quantity": 1}
    client.post("/movements", json=base, headers=worker_headers)
    client.post("/movements", json={**base, "status": "completed"}, headers=worker_headers)

    pending = client.get("/movements?status=pending", headers=worker_headers).json()
    assert [m["status"] for m in pending] == ["pending"]
    assert len(client.get(f"/movements?product_id={stocked['widget']}", headers=worker_headers).json()) == 2


# ---- dashboard ----

def test_dashboard_endpoints(client, worker_headers, stocked):
    client.post("/movements", json={"product_id": stocked["widget"], "from_area_id": stocked["zone_a"],
                                    "quantity": 45, "status": "completed"}, headers=worker_headers)
    client.post("/movements", json={"product_id": stocked["widget"], "to_area_id": stocked["shipping"],
                                    "quantity": 1}, headers=worker_headers)

    stats = client.get("/dashboard/stats", headers=worker_headers).json()
    assert stats == {"total_products": 1, "low_stock_items": 1, "pending_movements": 1, "storage_utilization": 0}

    low = client.get("/dashboard/low-stock", headers=worker_headers).json()
    assert [(row["product"]["sku"], row["storage_area"]["name"], row["current_stock"]) for row in low] == [
        ("WID-001", "Zone A", 5)
    ]

    recent = client.get("/dashboard/recent-movements?limit=1", headers=worker_headers).json()
    assert len(recent) == 1
    assert recent[0]["product"]["sku"] == "WID-001"


def test_storage_occupancy(client, worker_headers, stocked):
    report = client.get("/storage-areas/occupancy", headers=worker_headers).json()
    assert report["storage_utilization"] == 3
    assert [(a["storage_area"]["name"], a["utilization"]) for a in report["areas"]] == [
        ("Zone A", 5), ("Shipping", 0),
    ]


# ---- users and audit ----

def test_admin_manages_users(client, admin_headers):
    r = client.post("/users", json={"username": "sam", "password": "sampass", "full_name": "Sam", "role": "manager"},
                    headers=admin_headers)
    assert r.status_code == 201
    sam = r.json()

    r = client.put(f"/users/{sam['id']}", json={"role": "worker"}, headers=admin_headers)
    assert r.json()["role"] == "worker"

    me = client.get("/auth/me", headers=admin_headers).json()
    assert client.delete(f"/users/{me['id']}", headers=admin_headers).status_code == 400
    assert client.delete(f"/users/{sam['id']}", headers=admin_headers).status_code == 204


def test_actions_are_audited(client, admin_headers, stocked):
    client.post("/auth/login", json={"username": "admin", "password": "wrong"})

    logs = client.get("/logs", headers=admin_headers).json()
    actions = {item["action"] for item in logs["items"]}
    assert {"AREA_CREATE", "PRODUCT_CREATE", "INVENTORY_SET", "LOGIN"} <= actions

    failed = client.get("/logs?action=LOGIN&status=fail", headers=admin_headers).json()
    assert failed["total"] == 1
