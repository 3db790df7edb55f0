# storefront/services/normalization_service.py
import time
from typing import Callable, Optional

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.schemas import ClassificationResult, NormalizeResult
from storefront.repos.product_repo import ProductRepo
from storefront.repos.variant_repo import VariantRepo
from storefront.services.classifier import NameClassifier
from storefront.services.stock_service import StockService
from storefront.utils.logging import get_logger
from storefront.utils.settings import NORMALIZE_DELAY_SECONDS

logger = get_logger(__name__)


class NormalizationService:
    """
    Klasyfikacja surowych wierszy i uzgadnianie hierarchii Parent/Variant.

    Wiersze przetwarzane sa sekwencyjnie, ze stalym odstepem miedzy nimi
    (limit zapytan u dostawcy klasyfikatora). Kazdy wiersz to osobna transakcja,
    blad jednego wiersza nie przerywa batcha. Sygnal rate limit przerywa batch,
    reszta wierszy czeka na nastepne wywolanie.
    """

    def __init__(
        self,
        db: Session,
        classifier: NameClassifier,
        delay_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.products = ProductRepo(db)
        self.variants = VariantRepo(db)
        self.stock = StockService(db)
        self.classifier = classifier
        self.delay_seconds = NORMALIZE_DELAY_SECONDS if delay_seconds is None else delay_seconds
        self.sleep = sleep

    def normalize_batch(self, limit: int, in_stock_only: bool = False) -> NormalizeResult:
        result = NormalizeResult()

        logger.info(f"[Normalize] Fetching up to {limit} unnormalized products")
        rows = self.products.get_unnormalized(limit, in_stock_only=in_stock_only)
        result.total = len(rows)

        if not rows:
            logger.info("[Normalize] All products are already normalized")
            return result

        for index, row in enumerate(rows):
            if index > 0 and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

            external_id = row.external_id
            try:
                outcome = self.classifier.classify_with_status(row.raw_name or "")
                if outcome.rate_limited:
                    result.rate_limited = True
                    logger.warning("[Normalize] Rate limited, stopping batch")
                    break

                if outcome.result is not None and outcome.result.is_confident:
                    self._reconcile(row, outcome.result)
                    result.normalized += 1
                else:
                    self._park(row)
                    result.fallen_back += 1

                self.products.commit()
            except Exception as e:
                self.products.rollback()
                message = f"Failed to normalize {external_id}: {e}"
                result.errors.append(message)
                logger.error(f"[Normalize] {message}")

        logger.info(
            f"[Normalize] Complete: {result.normalized} normalized, "
            f"{result.fallen_back} parked, {len(result.errors)} errors"
        )
        return result

    def normalize_all(self, batch_size: int, max_batches: Optional[int] = None) -> NormalizeResult:
        """Petla po batchach az do wyczerpania wierszy albo rate limitu."""
        totals = NormalizeResult()
        batches = 0

        while max_batches is None or batches < max_batches:
            batches += 1
            batch = self.normalize_batch(batch_size)

            totals.total += batch.total
            totals.normalized += batch.normalized
            totals.fallen_back += batch.fallen_back
            totals.errors.extend(batch.errors)

            if batch.rate_limited:
                totals.rate_limited = True
                break
            #batch z samymi bledami nie robi postepu, nie krecimy sie w kolko
            if batch.total == 0 or batch.normalized + batch.fallen_back == 0:
                break

            logger.info(
                f"[Normalize] Batch #{batches}: "
                f"{totals.normalized + totals.fallen_back} processed, {len(totals.errors)} errors"
            )

        return totals

    def _reconcile(self, row: ProductModel, data: ClassificationResult) -> None:
        #lookup parenta w kazdej iteracji, bo poprzedni wiersz mogl go wlasnie utworzyc
        parent = self.products.find_parent(data.brand, data.model)
        if parent is None:
            parent = self.products.create_parent(
                brand=data.brand,
                model=data.model,
                product_type=data.product_type,
                price=row.price,
                colorway=data.colorway,
            )
            logger.info(f"[Normalize] Created parent {parent.id} '{parent.clean_name}'")

        previous = self.variants.get_by_external_item_id(row.external_id)
        previous_parent_id = previous.product_id if previous is not None else None

        self.variants.upsert(
            parent.id,
            row.external_id,
            size=data.size,
            color=data.colorway,
            condition=data.condition,
            variant_label=data.variant_label,
            price=row.price,
            stock_quantity=row.stock_quantity or 0,
        )

        self.stock.recompute_parent_stock(parent.id)
        if previous_parent_id and previous_parent_id != parent.id:
            self.stock.recompute_parent_stock(previous_parent_id)

        self.products.mark_normalized(
            row,
            clean_name=data.cleaned_name,
            clean_brand=data.brand,
            clean_model=data.model,
            clean_size=data.size,
            clean_colorway=data.colorway,
            product_type=data.product_type,
        )
        logger.info(
            f"[Normalize] {row.raw_name} -> {data.brand} {data.model} ({data.product_type})"
        )

    def _park(self, row: ProductModel) -> None:
        #nie da sie sklasyfikowac: oznaczamy jako znormalizowany, zeby nie ponawiac w nieskonczonosc
        self.products.mark_normalized(row, clean_name=row.raw_name, product_type="other")
        logger.warning(f"[Normalize] {row.raw_name} (could not classify, parked)")
