"""Tests for webhook envelope parsing and stock updates."""

from datetime import datetime, timezone

import pytest

from storefront.domain.schemas import RawItem, WebhookEvent
from storefront.repos.product_repo import ProductRepo
from storefront.services.webhook_service import WebhookService, parse_webhook_event


class TestParseWebhookEvent:
    def test_flat_envelope(self):
        event = parse_webhook_event({"type": "inventory_update", "itemId": "X1", "stockCount": "3"})
        assert event == WebhookEvent(type="INVENTORY_UPDATE", item_id="X1", stock_count=3)

    def test_nested_envelope(self):
        event = parse_webhook_event({"eventType": "ITEM_UPDATE", "data": {"itemId": 42, "stockCount": 0}})
        assert event.item_id == "42"
        assert event.stock_count == 0

    def test_bad_stock_is_dropped(self):
        assert parse_webhook_event({"type": "ITEM_UPDATE", "itemId": "X1", "stockCount": "lots"}).stock_count is None

    @pytest.mark.parametrize("body", [None, [], "text", {}, {"type": ""}, {"type": 5}])
    def test_unrecognized(self, body):
        assert parse_webhook_event(body) is None


class TestWebhookService:
    def test_updates_raw_row_without_variant(self, db):
        ProductRepo(db).insert_raw(
            RawItem(external_id="X1", display_name="Nike Dunk", unit_price=100, stock_count=1),
            datetime.now(timezone.utc),
        )
        db.commit()

        assert WebhookService(db).update_stock("X1", 9) is True
        assert ProductRepo(db).get_by_external_id("X1").stock_quantity == 9

    def test_negative_stock_clamped(self, db):
        ProductRepo(db).insert_raw(
            RawItem(external_id="X1", display_name="Nike Dunk", unit_price=100, stock_count=1),
            datetime.now(timezone.utc),
        )
        db.commit()

        WebhookService(db).update_stock("X1", -4)
        assert ProductRepo(db).get_by_external_id("X1").stock_quantity == 0

    def test_stock_event_without_item(self, db):
        result = WebhookService(db).handle_event(WebhookEvent(type="ITEM_UPDATE"))
        assert result["success"] is True

    def test_unknown_type_acknowledged(self, db):
        assert WebhookService(db).handle_event(WebhookEvent(type="PAYMENT_CREATED")) == {"success": True}
