# storefront/services/webhook_service.py
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.domain.schemas import WebhookEvent
from storefront.repos.product_repo import ProductRepo
from storefront.repos.variant_repo import VariantRepo
from storefront.services.stock_service import StockService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

STOCK_EVENTS = ("INVENTORY_UPDATE", "ITEM_UPDATE")


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def parse_webhook_event(body: Any) -> Optional[WebhookEvent]:
    """
    Znane koperty: pola na gorze ({type, itemId, stockCount}) albo
    zagniezdzone w data ({eventType, data: {itemId, stockCount}}).
    Nieznany ksztalt -> None.
    """
    if not isinstance(body, dict):
        return None
    data = body.get("data") if isinstance(body.get("data"), dict) else {}

    event_type = _first(body.get("type"), body.get("eventType"))
    if not isinstance(event_type, str) or not event_type:
        return None

    item_id = _first(body.get("itemId"), data.get("itemId"))
    stock = _first(body.get("stockCount"), data.get("stockCount"))
    try:
        stock_count = int(stock) if stock is not None else None
    except (TypeError, ValueError):
        stock_count = None

    return WebhookEvent(
        type=event_type.upper(),
        item_id=str(item_id) if item_id is not None else None,
        stock_count=stock_count,
    )


class WebhookService:
    """Pojedyncze zmiany stanu pushowane przez POS."""

    def __init__(self, db: Session):
        self.products = ProductRepo(db)
        self.variants = VariantRepo(db)
        self.stock = StockService(db)

    def update_stock(self, external_id: str, stock_quantity: int) -> bool:
        stock_quantity = max(int(stock_quantity), 0)
        try:
            row = self.products.get_by_external_id(external_id)
            if row is None:
                logger.warning(f"[Webhook] No product for item {external_id}, waiting for next sync")
                return False

            self.products.set_stock(row, stock_quantity, datetime.now(timezone.utc))

            variant = self.variants.get_by_external_item_id(external_id)
            if variant is not None:
                variant.stock_quantity = stock_quantity
                self.variants.db.flush()
                self.stock.recompute_parent_stock(variant.product_id)

            self.products.commit()
        except SQLAlchemyError as e:
            self.products.rollback()
            logger.error(f"[Webhook] Failed to update stock for {external_id}: {e}")
            return False

        logger.info(f"[Webhook] Updated stock for {external_id}: {stock_quantity}")
        return True

    def handle_event(self, event: WebhookEvent) -> dict:
        if event.type in STOCK_EVENTS:
            if event.item_id and event.stock_count is not None:
                success = self.update_stock(event.item_id, event.stock_count)
                return {"success": success, "item_id": event.item_id}
            logger.warning(f"[Webhook] {event.type} without itemId/stockCount, ignoring")
            return {"success": True, "message": "Missing itemId or stockCount"}

        if event.type == "ITEM_DELETE":
            #nie kasujemy wiersza, tylko stan na 0
            if event.item_id:
                success = self.update_stock(event.item_id, 0)
                return {"success": success, "item_id": event.item_id}
            return {"success": True, "message": "Missing itemId"}

        if event.type == "ITEM_CREATE":
            logger.info("[Webhook] New item created, will sync on next cron run")
            return {"success": True, "message": "Queued for sync"}

        logger.info(f"[Webhook] Unhandled event type: {event.type}")
        return {"success": True}
