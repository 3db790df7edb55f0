# storefront/api/routers/webhooks.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.services.webhook_service import WebhookService, parse_webhook_event
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/inventory")
def inventory_webhook(body: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    logger.info(f"[Webhook] Received inventory event: {body}")

    event = parse_webhook_event(body)
    if event is None:
        raise HTTPException(status_code=400, detail="Unrecognized webhook payload")

    return WebhookService(db).handle_event(event)


@router.get("/inventory")
def inventory_webhook_ping():
    #POS moze wyslac zapytanie weryfikacyjne
    return {"status": "ok", "service": "inventory-webhook"}
