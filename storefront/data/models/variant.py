# storefront/data/models/variant.py
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.data.models._common import new_id, utcnow


class VariantModel(Base):
    __tablename__ = "product_variants"

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    #klucz upsertu, ten sam co external_id surowego wiersza
    external_item_id = Column(String, unique=True, nullable=False)

    size = Column(String, nullable=True)
    color = Column(String, nullable=True)
    condition = Column(String(20), nullable=True)
    variant_label = Column(String, nullable=True)
    price = Column(Integer, nullable=True)
    stock_quantity = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    parent = relationship("ProductModel", back_populates="variants")
