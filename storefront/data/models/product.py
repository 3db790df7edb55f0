# storefront/data/models/product.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, CheckConstraint, Index
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.data.models._common import new_id, utcnow


class ProductModel(Base):
    """
    Jedna tabela na dwie role:
    - parent (is_parent=True): produkt widoczny w sklepie, brand + model
    - raw row (is_parent=False): lustro pozycji z POS, klucz external_id
    """

    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    external_id = Column(String, unique=True, nullable=True)
    raw_name = Column(String, nullable=True)

    clean_name = Column(String, nullable=True)
    clean_brand = Column(String, nullable=True, index=True)
    clean_model = Column(String, nullable=True)
    clean_size = Column(String, nullable=True)
    clean_colorway = Column(String, nullable=True)
    product_type = Column(String(20), nullable=False, default="other")

    price = Column(Integer, nullable=True)  # grosze / centy
    stock_quantity = Column(Integer, nullable=False, default=0)

    is_parent = Column(Boolean, nullable=False, default=False, index=True)
    is_normalized = Column(Boolean, nullable=False, default=False, index=True)

    last_synced = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    variants = relationship(
        "VariantModel",
        back_populates="parent",
        cascade="all, delete-orphan",
        order_by="VariantModel.created_at",
    )

    __table_args__ = (
        CheckConstraint(
            "NOT is_parent OR clean_name IS NOT NULL",
            name="check_parent_has_name",
        ),
        Index("ix_products_parent_key", "clean_brand", "clean_model"),
    )
