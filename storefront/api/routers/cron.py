# storefront/api/routers/cron.py
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import ConfigurationError
from storefront.domain.schemas import FullSyncResult
from storefront.services.classifier import NameClassifier
from storefront.services.inventory_client import InventoryClient
from storefront.services.normalization_service import NormalizationService
from storefront.services.sync_service import SyncService
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def get_sync_service(db: Session = Depends(get_db)) -> SyncService:
    try:
        inventory_client = InventoryClient()
    except ConfigurationError as e:
        logger.error(f"[Cron] Sync not configured: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    normalizer = NormalizationService(db, NameClassifier())
    return SyncService(db, inventory_client, normalizer)


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    if settings.CRON_SECRET and authorization != f"Bearer {settings.CRON_SECRET}":
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.api_route(
    "/sync",
    methods=["GET", "POST"],
    response_model=FullSyncResult,
    dependencies=[Depends(verify_cron_secret)],
)
def run_sync(svc: SyncService = Depends(get_sync_service)):
    logger.info("[Cron] Starting scheduled sync job")
    return svc.run_full_sync_job()
