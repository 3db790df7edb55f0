# storefront/services/stock_service.py
from sqlalchemy.orm import Session

from storefront.repos.product_repo import ProductRepo
from storefront.repos.variant_repo import VariantRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class StockService:
    """
    Stan parenta = suma stanow jego wariantow.
    Zawsze przeliczany od zera, nigdy nie poprawiany przyrostowo.
    """

    def __init__(self, db: Session):
        self.products = ProductRepo(db)
        self.variants = VariantRepo(db)

    def recompute_parent_stock(self, parent_id: str) -> int:
        """Nie commituje, robi to wywolujacy razem ze swoja zmiana."""
        parent = self.products.get_parent(parent_id)
        if parent is None:
            logger.warning(f"recompute_parent_stock: parent {parent_id} not found")
            return 0

        total = int(self.variants.sum_stock(parent_id))
        if parent.stock_quantity != total:
            logger.info(f"Parent {parent_id} stock {parent.stock_quantity} -> {total}")
        parent.stock_quantity = total
        self.products.db.flush()
        return total

    def recompute_all_parents(self) -> int:
        parent_ids = self.products.list_parent_ids()
        logger.info(f"Recalculating stock for {len(parent_ids)} parents")

        for parent_id in parent_ids:
            self.recompute_parent_stock(parent_id)

        self.products.commit()
        return len(parent_ids)
