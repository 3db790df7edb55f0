# storefront/repos/product_repo.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.product import ProductModel
from storefront.domain.schemas import RawItem


class ProductRepo:
    """Dostep do tabeli products (parenty i surowe wiersze z POS)."""

    def __init__(self, db: Session):
        self.db = db

    # ---------- raw rows ----------
    def get_by_external_id(self, external_id: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(
                ProductModel.external_id == external_id,
                ProductModel.is_parent.is_(False),
            )
        ).scalar_one_or_none()

    def get_unnormalized(self, limit: int, in_stock_only: bool = False) -> List[ProductModel]:
        stmt = (
            select(ProductModel)
            .where(
                ProductModel.is_parent.is_(False),
                ProductModel.is_normalized.is_(False),
            )
            .order_by(ProductModel.created_at, ProductModel.id)
            .limit(limit)
        )
        if in_stock_only:
            stmt = stmt.where(ProductModel.stock_quantity > 0)
        return list(self.db.execute(stmt).scalars().all())

    def insert_raw(self, item: RawItem, synced_at: datetime) -> ProductModel:
        row = ProductModel(
            external_id=item.external_id,
            raw_name=item.display_name,
            price=item.unit_price,
            stock_quantity=item.stock_count,
            is_parent=False,
            is_normalized=False,
            last_synced=synced_at,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def update_raw(self, row: ProductModel, item: RawItem, synced_at: datetime) -> ProductModel:
        #tylko pola z POS, stan normalizacji zostaje
        if item.display_name:
            row.raw_name = item.display_name
        row.price = item.unit_price
        row.stock_quantity = item.stock_count
        row.last_synced = synced_at
        self.db.flush()
        return row

    def set_stock(self, row: ProductModel, stock_quantity: int, synced_at: datetime) -> ProductModel:
        row.stock_quantity = stock_quantity
        row.last_synced = synced_at
        self.db.flush()
        return row

    def mark_normalized(self, row: ProductModel, **clean_fields) -> ProductModel:
        for key, value in clean_fields.items():
            setattr(row, key, value)
        row.is_normalized = True
        row.is_parent = False
        self.db.flush()
        return row

    # ---------- parents ----------
    def get_parent(self, parent_id: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel)
            .options(selectinload(ProductModel.variants))
            .where(ProductModel.id == parent_id, ProductModel.is_parent.is_(True))
        ).scalar_one_or_none()

    def find_parent(self, brand: str, model: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel)
            .where(
                ProductModel.is_parent.is_(True),
                ProductModel.clean_brand == brand,
                ProductModel.clean_model == model,
            )
            .order_by(ProductModel.created_at)
            .limit(1)
        ).scalar_one_or_none()

    def create_parent(
        self,
        brand: str,
        model: str,
        product_type: str,
        price: Optional[int],
        colorway: Optional[str] = None,
    ) -> ProductModel:
        name = f"{brand} {model}".strip()
        parent = ProductModel(
            external_id=None,
            raw_name=name,
            clean_name=name,
            clean_brand=brand,
            clean_model=model,
            clean_colorway=colorway,
            product_type=product_type,
            price=price,
            stock_quantity=0,
            is_parent=True,
            is_normalized=True,
        )
        self.db.add(parent)
        self.db.flush()
        return parent

    def list_parent_ids(self) -> List[str]:
        return list(
            self.db.execute(
                select(ProductModel.id).where(ProductModel.is_parent.is_(True))
            ).scalars().all()
        )

    def _parent_filters(self, brand: Optional[str], in_stock: bool):
        filters = [ProductModel.is_parent.is_(True)]
        if brand:
            filters.append(func.lower(ProductModel.clean_brand) == brand.lower())
        if in_stock:
            filters.append(ProductModel.stock_quantity > 0)
        return filters

    def list_parents(
        self,
        brand: Optional[str] = None,
        in_stock: bool = True,
        offset: int = 0,
        limit: int = 50,
    ) -> List[ProductModel]:
        stmt = (
            select(ProductModel)
            .options(selectinload(ProductModel.variants))
            .where(*self._parent_filters(brand, in_stock))
            .order_by(ProductModel.clean_brand, ProductModel.clean_model, ProductModel.id)
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def count_parents(self, brand: Optional[str] = None, in_stock: bool = False) -> int:
        return self.db.execute(
            select(func.count(ProductModel.id)).where(*self._parent_filters(brand, in_stock))
        ).scalar_one()

    def count_normalized_rows(self) -> int:
        return self.db.execute(
            select(func.count(ProductModel.id)).where(
                ProductModel.is_parent.is_(False),
                ProductModel.is_normalized.is_(True),
            )
        ).scalar_one()

    def distinct_brands(self) -> List[str]:
        return list(
            self.db.execute(
                select(ProductModel.clean_brand)
                .where(
                    ProductModel.is_parent.is_(True),
                    ProductModel.clean_brand.is_not(None),
                    ProductModel.clean_brand != "",
                )
                .distinct()
                .order_by(ProductModel.clean_brand)
            ).scalars().all()
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
