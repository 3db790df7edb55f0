# storefront/repos/variant_repo.py
from typing import Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.data.models.variant import VariantModel


class VariantRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_external_item_id(self, external_item_id: str) -> VariantModel | None:
        return self.db.execute(
            select(VariantModel).where(VariantModel.external_item_id == external_item_id)
        ).scalar_one_or_none()

    def upsert(self, parent_id: str, external_item_id: str, **fields) -> Tuple[VariantModel, bool]:
        """Upsert po external_item_id. Zwraca (wariant, czy_utworzony)."""
        variant = self.get_by_external_item_id(external_item_id)
        created = variant is None
        if created:
            variant = VariantModel(external_item_id=external_item_id, product_id=parent_id)
            self.db.add(variant)
        else:
            variant.product_id = parent_id

        for key, value in fields.items():
            setattr(variant, key, value)

        self.db.flush()
        return variant, created

    def sum_stock(self, parent_id: str) -> int:
        return self.db.execute(
            select(func.coalesce(func.sum(VariantModel.stock_quantity), 0)).where(
                VariantModel.product_id == parent_id
            )
        ).scalar_one()
