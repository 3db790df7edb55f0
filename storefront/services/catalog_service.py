# storefront/services/catalog_service.py
import math
from typing import Optional

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import CatalogMetadata, ProductOut, ProductPage
from storefront.repos.product_repo import ProductRepo


class CatalogService:
    """Odczyt katalogu: tylko parenty (z wariantami)."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def list_products(
        self,
        page: int = 1,
        page_size: int = 50,
        brand: Optional[str] = None,
        in_stock: bool = True,
    ) -> ProductPage:
        if page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= page_size <= 200:
            raise ValueError("page_size must be between 1 and 200")

        total = self.repo.count_parents(brand=brand, in_stock=in_stock)
        rows = self.repo.list_parents(
            brand=brand,
            in_stock=in_stock,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        total_pages = math.ceil(total / page_size) if total else 0

        return ProductPage(
            items=[ProductOut.model_validate(r) for r in rows],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_more=page < total_pages,
        )

    def get_product(self, product_id: str) -> ProductModel:
        parent = self.repo.get_parent(product_id)
        if parent is None:
            raise NotFoundError("Product not found")
        return parent

    def get_metadata(self) -> CatalogMetadata:
        #same zapytania COUNT/DISTINCT, bez skanowania wierszy w pythonie
        return CatalogMetadata(
            total=self.repo.count_parents(),
            in_stock=self.repo.count_parents(in_stock=True),
            normalized=self.repo.count_normalized_rows(),
            brands=self.repo.distinct_brands(),
        )
