"""
End-to-end route tests through FastAPI's TestClient.

The app's insights service is swapped for one backed by FakeLLM; the
lifespan (init_db, admin seeding) is not run, tables come from the db
fixture.
"""
import pytest
from fastapi.testclient import TestClient

from shopdesk.api.ai import get_insights_service
from shopdesk.main import app
from shopdesk.services.insights_service import InsightsService
from shopdesk.utils.cache import InsightsCache


@pytest.fixture
def insights(fake_llm, clock):
    return InsightsService(fake_llm, cache=InsightsCache(clock=clock))


@pytest.fixture
def client(db, insights):
    app.dependency_overrides[get_insights_service] = lambda: insights
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def signup(client, email="owner@example.com", shop_name="Corner Shop"):
    """Register an owner; return (auth headers for their first shop, shop id)."""
    resp = client.post("/auth/signup", json={
        "email": email, "password": "correct-horse", "name": "Owner", "shop_name": shop_name,
    })
    assert resp.status_code == 201, resp.text
    client.cookies.clear()
    body = resp.json()
    shop_id = body["shops"][0]["id"]
    return {"Authorization": f"Bearer {body['token']}", "X-Shop-Id": shop_id}, shop_id


def stock_and_sell(client, headers, sales=10, stock=30):
    resp = client.post("/products", json={"name": "Rice", "price": 1500, "stock": stock}, headers=headers)
    assert resp.status_code == 201, resp.text
    product_id = resp.json()["id"]
    for _ in range(sales):
        resp = client.post("/sales", json={"items": [{"product_id": product_id, "quantity": 1}]}, headers=headers)
        assert resp.status_code == 201, resp.text
    return product_id


# ────────────────────────────────────────────
# AUTH & SHOP CONTEXT
# ────────────────────────────────────────────


def test_health_is_public(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_unauthenticated_request_rejected(client):
    resp = client.get("/ai/insights")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Not authenticated"
    assert "message" in resp.json()


def test_login_sets_session(client):
    signup(client)
    resp = client.post("/auth/login", json={"email": "owner@example.com", "password": "correct-horse"})
    assert resp.status_code == 200
    assert "session_token" in resp.cookies
    me = client.get("/auth/me")
    assert me.json()["email"] == "owner@example.com"


def test_bad_password_rejected(client):
    signup(client)
    resp = client.post("/auth/login", json={"email": "owner@example.com", "password": "wrong-password"})
    assert resp.status_code == 401


def test_duplicate_signup_conflicts(client):
    signup(client)
    resp = client.post("/auth/signup", json={
        "email": "owner@example.com", "password": "correct-horse", "name": "Again", "shop_name": "Other",
    })
    assert resp.status_code == 409


def test_missing_shop_context(client):
    headers, _ = signup(client)
    del headers["X-Shop-Id"]
    resp = client.get("/ai/insights", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["kind"] == "ShopContextMissing"


def test_foreign_shop_denied(client):
    _, other_shop = signup(client, email="other@example.com", shop_name="Other Shop")
    headers, _ = signup(client)
    headers["X-Shop-Id"] = other_shop
    resp = client.get("/products", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["kind"] == "ShopAccessDenied"


def test_my_shops_lists_owned_shop(client):
    headers, shop_id = signup(client)
    shops = client.get("/shops/my-shops", headers=headers).json()["shops"]
    assert [s["id"] for s in shops] == [shop_id]
    assert shops[0]["role"] == "owner"


# ────────────────────────────────────────────
# PRODUCTS, SALES, NOTIFICATIONS
# ────────────────────────────────────────────


def test_sale_decrements_stock_and_computes_total(client):
    headers, _ = signup(client)
    product_id = stock_and_sell(client, headers, sales=0, stock=10)

    resp = client.post("/sales", json={"items": [{"product_id": product_id, "quantity": 3}]}, headers=headers)
    assert resp.status_code == 201
    assert resp.json()["total_amount"] == 4500
    assert client.get(f"/products/{product_id}", headers=headers).json()["stock"] == 7


def test_insufficient_stock_rejected(client):
    headers, _ = signup(client)
    product_id = stock_and_sell(client, headers, sales=0, stock=2)
    resp = client.post("/sales", json={"items": [{"product_id": product_id, "quantity": 5}]}, headers=headers)
    assert resp.status_code == 400
    assert client.get(f"/products/{product_id}", headers=headers).json()["stock"] == 2


def test_low_stock_creates_notification(client):
    headers, _ = signup(client)
    stock_and_sell(client, headers, sales=2, stock=6)

    body = client.get("/notifications", headers=headers).json()
    assert body["unread_count"] >= 1
    assert body["notifications"][0]["type"] == "low_stock"

    client.post("/notifications/read-all", headers=headers)
    assert client.get("/notifications", headers=headers).json()["unread_count"] == 0


def test_cashier_cannot_create_products(client):
    owner_headers, shop_id = signup(client)
    staff_headers, _ = signup(client, email="cashier@example.com", shop_name="Cashier's Own Shop")

    roles = client.get("/roles", headers=owner_headers).json()["roles"]
    cashier = next(r for r in roles if r["name"] == "cashier")
    resp = client.post("/staff", json={"email": "cashier@example.com", "role_id": cashier["id"]},
                       headers=owner_headers)
    assert resp.status_code == 201

    staff_headers["X-Shop-Id"] = shop_id
    assert client.get("/products", headers=staff_headers).status_code == 200
    resp = client.post("/products", json={"name": "Salt", "price": 200}, headers=staff_headers)
    assert resp.status_code == 403
    assert resp.json()["kind"] == "PermissionDenied"


def test_custom_role_rejects_unknown_permission(client):
    headers, _ = signup(client)
    resp = client.post("/roles", json={"name": "auditor", "permissions": ["sales:read", "vault:open"]},
                       headers=headers)
    assert resp.status_code == 400


# ────────────────────────────────────────────
# AI INSIGHTS
# ────────────────────────────────────────────


def test_insights_end_to_end(client, fake_llm):
    headers, _ = signup(client)
    stock_and_sell(client, headers, sales=10)

    first = client.get("/ai/insights", headers=headers)
    assert first.status_code == 200, first.text
    bundle = first.json()
    assert bundle["predictions"]
    assert bundle["restocking"]
    assert bundle["summary"]

    second = client.get("/ai/insights", headers=headers)
    assert second.json() == bundle
    assert fake_llm.calls == 1
    assert "Total Sales: 10" in fake_llm.prompts[0]


def test_views_reuse_cached_bundle(client, fake_llm):
    headers, _ = signup(client)
    stock_and_sell(client, headers, sales=3)

    assert client.get("/ai/predictions", headers=headers).json()["predictions"]
    assert client.get("/ai/restocking", headers=headers).json()["restocking"]
    assert client.get("/ai/summary", headers=headers).json()["period"] == "daily"
    assert fake_llm.calls == 1


def test_summary_rejects_unknown_period(client):
    headers, _ = signup(client)
    resp = client.get("/ai/summary?period=weekly", headers=headers)
    assert resp.status_code == 400


def test_generation_failure_response(client, fake_llm, insights):
    headers, shop_id = signup(client)
    stock_and_sell(client, headers, sales=1)
    fake_llm.error = RuntimeError("quota exceeded")

    resp = client.get("/ai/insights", headers=headers)

    assert resp.status_code == 502
    body = resp.json()
    assert body["kind"] == "GenerationFailure"
    assert body["error"] == "Failed to generate insights"
    assert "quota exceeded" in body["message"]
    assert len(insights.cache) == 0


def test_parse_failure_response(client, fake_llm, insights):
    headers, _ = signup(client)
    stock_and_sell(client, headers, sales=1)
    fake_llm.response = "I think sales will go up."

    resp = client.get("/ai/insights", headers=headers)
    assert resp.status_code == 502
    assert resp.json()["kind"] == "ParseFailure"
    assert len(insights.cache) == 0


def test_refresh_regenerates(client, fake_llm):
    headers, _ = signup(client)
    stock_and_sell(client, headers, sales=2)
    client.get("/ai/insights", headers=headers)
    resp = client.post("/ai/insights/refresh", headers=headers)
    assert resp.status_code == 200
    assert fake_llm.calls == 2


def test_new_shop_gets_empty_insights_without_model(client, fake_llm):
    headers, _ = signup(client)
    resp = client.get("/ai/insights", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["restocking"] == []
    assert fake_llm.calls == 0


def join_as_staff(client, owner_headers, shop_id, email, role_id):
    """Sign up a second user and add them to the owner's shop with role_id."""
    headers, _ = signup(client, email=email, shop_name=f"{email} shop")
    resp = client.post("/staff", json={"email": email, "role_id": role_id}, headers=owner_headers)
    assert resp.status_code == 201, resp.text
    headers["X-Shop-Id"] = shop_id
    return headers


# ────────────────────────────────────────────
# PARTIAL UPDATES
# ────────────────────────────────────────────


@pytest.mark.parametrize("payload", [
    {"name": None},
    {"name": "   "},
    {"price": None},
    {"stock": None},
])
def test_product_update_rejects_clearing_required_fields(client, payload):
    headers, _ = signup(client)
    product_id = stock_and_sell(client, headers, sales=0, stock=10)

    resp = client.patch(f"/products/{product_id}", json=payload, headers=headers)

    assert resp.status_code == 400
    product = client.get(f"/products/{product_id}", headers=headers).json()
    assert product["name"] == "Rice"
    assert product["price"] == 1500
    assert product["stock"] == 10


def test_product_update_clears_optional_fields(client):
    headers, _ = signup(client)
    resp = client.post("/products", json={"name": "Rice", "price": 1500, "sku": "RC-5"}, headers=headers)
    product_id = resp.json()["id"]

    resp = client.patch(f"/products/{product_id}", json={"sku": None, "name": " Rice 5kg "}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["sku"] is None
    assert resp.json()["name"] == "Rice 5kg"


@pytest.mark.parametrize("payload", [{"name": None}, {"name": ""}])
def test_supplier_update_rejects_clearing_name(client, payload):
    headers, _ = signup(client)
    supplier_id = client.post("/suppliers", json={"name": "Wholesale Ltd"}, headers=headers).json()["id"]

    resp = client.patch(f"/suppliers/{supplier_id}", json=payload, headers=headers)

    assert resp.status_code == 400
    names = [s["name"] for s in client.get("/suppliers", headers=headers).json()["suppliers"]]
    assert names == ["Wholesale Ltd"]


# ────────────────────────────────────────────
# SUPPLIERS
# ────────────────────────────────────────────


def test_supplier_crud(client):
    headers, _ = signup(client)

    resp = client.post("/suppliers", json={"name": "  Wholesale Ltd ", "phone": "0800"}, headers=headers)
    assert resp.status_code == 201
    supplier_id = resp.json()["id"]
    assert resp.json()["name"] == "Wholesale Ltd"

    resp = client.patch(f"/suppliers/{supplier_id}", json={"email": "sales@wholesale.test"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "sales@wholesale.test"
    assert resp.json()["phone"] == "0800"

    listed = client.get("/suppliers", headers=headers).json()["suppliers"]
    assert [(s["id"], s["product_count"]) for s in listed] == [(supplier_id, 0)]

    assert client.delete(f"/suppliers/{supplier_id}", headers=headers).status_code == 200
    assert client.get("/suppliers", headers=headers).json()["suppliers"] == []
    assert client.patch(f"/suppliers/{supplier_id}", json={"phone": "1"}, headers=headers).status_code == 404


def test_blank_supplier_name_rejected(client):
    headers, _ = signup(client)
    assert client.post("/suppliers", json={"name": " "}, headers=headers).status_code == 400


def test_deleting_supplier_unlinks_products(client):
    headers, _ = signup(client)
    supplier_id = client.post("/suppliers", json={"name": "Wholesale Ltd"}, headers=headers).json()["id"]
    resp = client.post("/products", json={"name": "Rice", "price": 1500, "supplier_id": supplier_id},
                       headers=headers)
    product_id = resp.json()["id"]
    assert client.get("/suppliers", headers=headers).json()["suppliers"][0]["product_count"] == 1

    client.delete(f"/suppliers/{supplier_id}", headers=headers)

    product = client.get(f"/products/{product_id}", headers=headers).json()
    assert product["supplier_id"] is None


def test_product_rejects_supplier_from_other_shop(client):
    other_headers, _ = signup(client, email="other@example.com", shop_name="Other Shop")
    foreign = client.post("/suppliers", json={"name": "Theirs"}, headers=other_headers).json()["id"]

    headers, _ = signup(client)
    resp = client.post("/products", json={"name": "Rice", "price": 1500, "supplier_id": foreign},
                       headers=headers)
    assert resp.status_code == 400


# ────────────────────────────────────────────
# NOTIFICATION PERMISSIONS
# ────────────────────────────────────────────


def test_marking_read_requires_update_permission(client):
    owner_headers, shop_id = signup(client)
    stock_and_sell(client, owner_headers, sales=1, stock=3)

    role = client.post("/roles", json={"name": "viewer", "permissions": ["notifications:read"]},
                       headers=owner_headers).json()
    viewer = join_as_staff(client, owner_headers, shop_id, "viewer@example.com", role["id"])

    body = client.get("/notifications", headers=viewer).json()
    assert body["unread_count"] == 1
    note_id = body["notifications"][0]["id"]

    assert client.post("/notifications/read-all", headers=viewer).status_code == 403
    assert client.post(f"/notifications/{note_id}/read", headers=viewer).status_code == 403
    assert client.get("/notifications", headers=viewer).json()["unread_count"] == 1


def test_cashier_can_mark_notifications_read(client):
    owner_headers, shop_id = signup(client)
    stock_and_sell(client, owner_headers, sales=1, stock=3)
    roles = client.get("/roles", headers=owner_headers).json()["roles"]
    cashier_role = next(r for r in roles if r["name"] == "cashier")
    cashier = join_as_staff(client, owner_headers, shop_id, "cashier@example.com", cashier_role["id"])

    note_id = client.get("/notifications", headers=cashier).json()["notifications"][0]["id"]
    resp = client.post(f"/notifications/{note_id}/read", headers=cashier)

    assert resp.status_code == 200
    assert resp.json()["is_read"] is True
