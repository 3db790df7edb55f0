# storefront/tasks/catalog.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.classifier import NameClassifier
from storefront.services.inventory_client import InventoryClient
from storefront.services.normalization_service import NormalizationService
from storefront.services.stock_service import StockService
from storefront.services.sync_service import SyncService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.catalog.run_full_sync_task")
def run_full_sync_task(normalize_limit: int | None = None):
    logger.info("Full sync task started")

    #brak tokenu -> ConfigurationError od razu, przed otwarciem sesji
    inventory_client = InventoryClient()

    db = SessionLocal()
    try:
        normalizer = NormalizationService(db, NameClassifier())
        result = SyncService(db, inventory_client, normalizer).run_full_sync_job(normalize_limit)
        return result.model_dump(mode="json")
    finally:
        db.close()


@celery_app.task(name="storefront.tasks.catalog.normalize_batch_task")
def normalize_batch_task(limit: int = 20, in_stock_only: bool = False):
    db = SessionLocal()
    try:
        result = NormalizationService(db, NameClassifier()).normalize_batch(limit, in_stock_only)
        return result.model_dump(mode="json")
    finally:
        db.close()


@celery_app.task(name="storefront.tasks.catalog.recalc_all_parents_task")
def recalc_all_parents_task():
    db = SessionLocal()
    try:
        count = StockService(db).recompute_all_parents()
        logger.info(f"Recalculated stock for {count} parents")
        return {"parents": count}
    finally:
        db.close()
