"""
Integration tests for the HTTP layer.

Tests verify:
- cart identity from the X-User-Id header and the sessionId cookie
- 403 for someone else's cart vs 404 for a missing one
- catalog listing, detail and metadata
- inventory webhook stock updates
- cron secret and configuration checks
"""

from datetime import datetime, timezone

import pytest

from conftest import FakeProvider, classification
from storefront.api.routers.cron import get_sync_service
from storefront.domain.schemas import RawItem
from storefront.repos.product_repo import ProductRepo
from storefront.services.classification_cache import ClassificationCache, MemoryTTLStore
from storefront.services.classifier import NameClassifier
from storefront.services.normalization_service import NormalizationService
from storefront.services.sync_service import SyncService
from storefront.utils import settings


def seed_catalog(db):
    """Dwa warianty Jordan 4 + Nike Dunk bez stanu."""
    repo = ProductRepo(db)
    now = datetime.now(timezone.utc)
    repo.insert_raw(RawItem(external_id="ext-1", display_name="Jordan 4 Bred 10", unit_price=20000, stock_count=2), now)
    repo.insert_raw(RawItem(external_id="ext-2", display_name="Jordan 4 Bred 11", unit_price=20000, stock_count=1), now)
    repo.insert_raw(RawItem(external_id="ext-3", display_name="Nike Dunk Low 9", unit_price=11000, stock_count=0), now)
    db.commit()

    provider = FakeProvider(
        responses={
            "Jordan 4 Bred 10": classification(size="10"),
            "Jordan 4 Bred 11": classification(size="11"),
            "Nike Dunk Low 9": classification(
                cleanedName="Nike Dunk Low", brand="Nike", model="Dunk Low", size="9", colorway=None
            ),
        }
    )
    classifier = NameClassifier(providers=[provider], cache=ClassificationCache(store=MemoryTTLStore()))
    NormalizationService(db, classifier, delay_seconds=0).normalize_batch(10)


# ── Health ───────────────────────────────────────────────────────────────

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# ── Cart ─────────────────────────────────────────────────────────────────

class TestCartEndpoints:
    def test_anonymous_gets_session_cookie(self, client):
        response = client.get("/cart")

        assert response.status_code == 200
        assert response.cookies.get("sessionId", "").startswith("session_")
        body = response.json()
        assert body["user_id"] is None
        assert body["items"] == []

        #to samo ciasteczko -> ten sam koszyk
        again = client.get("/cart")
        assert again.json()["id"] == body["id"]

    def test_user_header_identity(self, client):
        headers = {"X-User-Id": "u1"}
        cart = client.post("/cart", headers=headers).json()

        assert cart["user_id"] == "u1"
        assert client.get(f"/cart/{cart['id']}", headers=headers).status_code == 200

    def test_add_update_remove_flow(self, client):
        headers = {"X-User-Id": "u1"}
        cart_id = client.post("/cart", headers=headers).json()["id"]

        added = client.post(f"/cart/{cart_id}/items", json={"product_id": "A", "quantity": 2}, headers=headers)
        assert added.status_code == 201
        item_id = added.json()["id"]

        updated = client.put(f"/cart/{cart_id}/items/{item_id}", json={"quantity": 4}, headers=headers)
        assert updated.json()["quantity"] == 4

        removed = client.delete(f"/cart/{cart_id}/items/{item_id}", headers=headers)
        assert removed.status_code == 200
        assert removed.json()["items"] == []

    def test_quantity_over_cap_is_400(self, client):
        headers = {"X-User-Id": "u1"}
        cart_id = client.post("/cart", headers=headers).json()["id"]

        response = client.post(f"/cart/{cart_id}/items", json={"product_id": "A", "quantity": 11}, headers=headers)
        assert response.status_code == 400

    def test_invalid_payload_is_422(self, client):
        headers = {"X-User-Id": "u1"}
        cart_id = client.post("/cart", headers=headers).json()["id"]

        response = client.post(f"/cart/{cart_id}/items", json={"product_id": "", "quantity": 0}, headers=headers)
        assert response.status_code == 422

    def test_foreign_cart_is_403(self, client):
        cart_id = client.post("/cart", headers={"X-User-Id": "u1"}).json()["id"]

        other = {"X-User-Id": "u2"}
        assert client.get(f"/cart/{cart_id}", headers=other).status_code == 403
        assert client.post(f"/cart/{cart_id}/items", json={"product_id": "A"}, headers=other).status_code == 403
        assert client.delete(f"/cart/{cart_id}", headers=other).status_code == 403

    def test_missing_cart_is_404(self, client):
        assert client.get("/cart/does-not-exist", headers={"X-User-Id": "u1"}).status_code == 404

    def test_missing_item_is_404(self, client):
        headers = {"X-User-Id": "u1"}
        cart_id = client.post("/cart", headers=headers).json()["id"]
        assert client.delete(f"/cart/{cart_id}/items/nope", headers=headers).status_code == 404

    def test_stale_cart_id_falls_back_to_identity(self, client):
        cart_id = client.post("/cart", headers={"X-User-Id": "u1"}).json()["id"]

        response = client.get("/cart", params={"cart_id": "stale"}, headers={"X-User-Id": "u1"})
        assert response.json()["id"] == cart_id

    def test_login_merges_session_cart(self, client):
        session_cart = client.get("/cart").json()
        client.post(f"/cart/{session_cart['id']}/items", json={"product_id": "A", "quantity": 2})

        user_headers = {"X-User-Id": "u1"}
        user_cart = client.post("/cart", headers=user_headers).json()

        assert user_cart["id"] == session_cart["id"]
        assert user_cart["user_id"] == "u1"
        assert [(i["product_id"], i["quantity"]) for i in user_cart["items"]] == [("A", 2)]

    def test_clear_cart(self, client):
        headers = {"X-User-Id": "u1"}
        cart_id = client.post("/cart", headers=headers).json()["id"]
        client.post(f"/cart/{cart_id}/items", json={"product_id": "A"}, headers=headers)

        response = client.delete(f"/cart/{cart_id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == cart_id
        assert response.json()["items"] == []

    def test_new_cart_endpoint(self, client):
        headers = {"X-User-Id": "u1"}
        first = client.post("/cart", headers=headers).json()["id"]

        response = client.post("/cart/new", headers=headers)
        assert response.status_code == 201
        assert response.json()["id"] != first


# ── Catalog ──────────────────────────────────────────────────────────────

class TestCatalogEndpoints:
    def test_lists_in_stock_parents(self, client, db):
        seed_catalog(db)

        body = client.get("/products").json()

        assert body["total"] == 1
        product = body["items"][0]
        assert product["brand"] == "Jordan"
        assert product["model"] == "4"
        assert product["stock_quantity"] == 3
        assert sorted(v["size"] for v in product["variants"]) == ["10", "11"]

    def test_include_out_of_stock_and_brand_filter(self, client, db):
        seed_catalog(db)

        assert client.get("/products", params={"in_stock": False}).json()["total"] == 2
        body = client.get("/products", params={"in_stock": False, "brand": "nike"}).json()
        assert [p["name"] for p in body["items"]] == ["Nike Dunk Low"]

    def test_pagination(self, client, db):
        seed_catalog(db)

        body = client.get("/products", params={"in_stock": False, "page_size": 1}).json()
        assert body["total_pages"] == 2
        assert body["has_more"] is True
        assert len(body["items"]) == 1

    def test_detail_and_missing(self, client, db):
        seed_catalog(db)
        product_id = client.get("/products").json()["items"][0]["id"]

        assert client.get(f"/products/{product_id}").json()["id"] == product_id
        assert client.get("/products/missing").status_code == 404

    def test_metadata(self, client, db):
        seed_catalog(db)

        body = client.get("/products/metadata").json()
        assert body == {"total": 2, "in_stock": 1, "normalized": 3, "brands": ["Jordan", "Nike"]}


# ── Webhooks ─────────────────────────────────────────────────────────────

class TestWebhookEndpoints:
    def test_stock_update_recomputes_parent(self, client, db):
        seed_catalog(db)

        response = client.post(
            "/webhooks/inventory", json={"type": "INVENTORY_UPDATE", "itemId": "ext-1", "stockCount": 5}
        )
        assert response.json() == {"success": True, "item_id": "ext-1"}

        db.expire_all()
        assert ProductRepo(db).get_by_external_id("ext-1").stock_quantity == 5
        assert client.get("/products").json()["items"][0]["stock_quantity"] == 6

    def test_nested_envelope(self, client, db):
        seed_catalog(db)

        response = client.post(
            "/webhooks/inventory", json={"eventType": "item_update", "data": {"itemId": "ext-3", "stockCount": 4}}
        )
        assert response.json()["success"] is True
        assert client.get("/products", params={"brand": "Nike"}).json()["total"] == 1

    def test_item_delete_zeroes_stock(self, client, db):
        seed_catalog(db)

        client.post("/webhooks/inventory", json={"type": "ITEM_DELETE", "itemId": "ext-1"})

        db.expire_all()
        row = ProductRepo(db).get_by_external_id("ext-1")
        assert row is not None
        assert row.stock_quantity == 0

    def test_unknown_item_reports_failure(self, client):
        response = client.post(
            "/webhooks/inventory", json={"type": "INVENTORY_UPDATE", "itemId": "nope", "stockCount": 1}
        )
        assert response.json() == {"success": False, "item_id": "nope"}

    def test_item_create_is_queued(self, client):
        response = client.post("/webhooks/inventory", json={"type": "ITEM_CREATE", "itemId": "new"})
        assert response.json() == {"success": True, "message": "Queued for sync"}

    def test_unrecognized_payload_is_400(self, client):
        assert client.post("/webhooks/inventory", json={"hello": "world"}).status_code == 400

    def test_ping(self, client):
        assert client.get("/webhooks/inventory").json()["status"] == "ok"


# ── Cron ─────────────────────────────────────────────────────────────────

class EmptyInventory:
    def iter_pages(self):
        return iter([])


@pytest.fixture
def fake_sync(client, db):
    from storefront.main import app

    app.dependency_overrides[get_sync_service] = lambda: SyncService(db, EmptyInventory())
    yield
    app.dependency_overrides.pop(get_sync_service, None)


class TestCronEndpoint:
    def test_runs_job(self, client, fake_sync):
        response = client.get("/cron/sync")

        assert response.status_code == 200
        body = response.json()
        assert body["sync"] == {"total": 0, "synced": 0, "errors": []}
        assert body["normalization"]["total"] == 0

    def test_secret_required_when_configured(self, client, fake_sync, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        assert client.post("/cron/sync").status_code == 401
        assert client.post("/cron/sync", headers={"Authorization": "Bearer wrong"}).status_code == 401
        assert client.post("/cron/sync", headers={"Authorization": "Bearer s3cret"}).status_code == 200

    def test_missing_pos_credentials_is_500(self, client):
        response = client.get("/cron/sync")
        assert response.status_code == 500
        assert "CLOVER_API_TOKEN" in response.json()["detail"]
