# storefront/services/sync_service.py
from datetime import datetime, timezone
from typing import List

from sqlalchemy.orm import Session

from storefront.domain.schemas import FullSyncResult, NormalizeResult, RawItem, SyncResult
from storefront.repos.product_repo import ProductRepo
from storefront.repos.variant_repo import VariantRepo
from storefront.services.inventory_client import InventoryClient
from storefront.services.normalization_service import NormalizationService
from storefront.services.stock_service import StockService
from storefront.utils.logging import get_logger
from storefront.utils.settings import NORMALIZE_BATCH_SIZE

logger = get_logger(__name__)


class SyncService:
    """
    Lustro inwentarza POS -> tabela products (surowe wiersze).

    Upsert strona po stronie, kazda strona w osobnej transakcji. Jesli pozniejsza
    strona padnie, wczesniejsze zostaja zapisane (sync czesciowy, at-least-once);
    nastepny przebieg i tak nadpisze wszystko upsertem.
    """

    def __init__(
        self,
        db: Session,
        inventory_client: InventoryClient,
        normalizer: NormalizationService | None = None,
    ):
        self.products = ProductRepo(db)
        self.variants = VariantRepo(db)
        self.stock = StockService(db)
        self.inventory_client = inventory_client
        self.normalizer = normalizer

    def sync_from_source(self) -> SyncResult:
        result = SyncResult()
        logger.info("[Sync] Fetching all products from inventory source")

        try:
            for page in self.inventory_client.iter_pages():
                result.total += len(page)
                priced = [item for item in page if item.unit_price and item.unit_price > 0]
                result.synced += self._upsert_page(priced)
        except Exception as e:
            self.products.rollback()
            message = f"Sync failed: {e}"
            result.errors.append(message)
            logger.error(f"[Sync] {message}")

        logger.info(f"[Sync] Raw sync complete: {result.synced}/{result.total} products synced")
        return result

    def _upsert_page(self, items: List[RawItem]) -> int:
        now = datetime.now(timezone.utc)
        touched_parents = set()

        for item in items:
            row = self.products.get_by_external_id(item.external_id)
            if row is None:
                self.products.insert_raw(item, now)
                continue

            self.products.update_raw(row, item, now)

            #wariant juz istnieje: odswiezamy tylko stan i cene, klasyfikacja bez zmian
            variant = self.variants.get_by_external_item_id(item.external_id)
            if variant is not None:
                variant.stock_quantity = item.stock_count
                variant.price = item.unit_price
                touched_parents.add(variant.product_id)

        self.variants.db.flush()
        for parent_id in touched_parents:
            self.stock.recompute_parent_stock(parent_id)

        self.products.commit()
        return len(items)

    def run_full_sync_job(self, normalize_limit: int | None = None) -> FullSyncResult:
        """Sync surowych danych + jeden ograniczony batch normalizacji (cron)."""
        logger.info("[CronJob] Starting full sync job")
        sync_result = self.sync_from_source()

        if self.normalizer is not None:
            normalize_result = self.normalizer.normalize_batch(normalize_limit or NORMALIZE_BATCH_SIZE)
        else:
            normalize_result = NormalizeResult()

        logger.info("[CronJob] Full sync job complete")
        return FullSyncResult(
            sync=sync_result,
            normalization=normalize_result,
            finished_at=datetime.now(timezone.utc),
        )
