# storefront/domain/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

PRODUCT_TYPES = ("sneaker", "apparel", "accessory", "other")
CONDITIONS = ("new", "used", "deadstock")
CONDITION_ALIASES = {"ds": "deadstock"}
CONFIDENCE_LEVELS = ("high", "medium", "low")


# =====================================================
# CATALOG / SYNC
# =====================================================
class RawItem(BaseModel):
    """Pozycja z POS, odswiezana przy kazdym syncu."""

    external_id: str
    display_name: str
    unit_price: Optional[int] = None
    stock_count: int = Field(0, ge=0)


class ClassificationResult(BaseModel):
    """
    Ustrukturyzowana nazwa produktu zwrocona przez klasyfikator.
    Akceptuje klucze camelCase z odpowiedzi modelu.
    """

    model_config = ConfigDict(populate_by_name=True)

    cleaned_name: str = Field(validation_alias=AliasChoices("cleanedName", "cleaned_name"))
    brand: str
    model: str = ""
    product_type: str = Field("other", validation_alias=AliasChoices("productType", "product_type"))
    size: Optional[str] = None
    colorway: Optional[str] = None
    condition: Optional[str] = None
    variant_label: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("variantLabel", "variantNumber", "variant_label"),
    )
    confidence: str = "low"

    @field_validator("cleaned_name", "brand", mode="before")
    @classmethod
    def _required_text(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()

    @field_validator("model", mode="before")
    @classmethod
    def _model_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("size", "colorway", "variant_label", mode="before")
    @classmethod
    def _optional_text(cls, v):
        if v is None or isinstance(v, (dict, list, bool)):
            return None
        text = str(v).strip()
        if not text or text.lower() in ("null", "none", "n/a"):
            return None
        return text

    @field_validator("product_type", mode="before")
    @classmethod
    def _coerce_product_type(cls, v):
        value = str(v).strip().lower() if v is not None else ""
        return value if value in PRODUCT_TYPES else "other"

    @field_validator("condition", mode="before")
    @classmethod
    def _coerce_condition(cls, v):
        if v is None:
            return None
        value = str(v).strip().lower()
        value = CONDITION_ALIASES.get(value, value)
        return value if value in CONDITIONS else None

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, v):
        value = str(v).strip().lower() if v is not None else ""
        return value if value in CONFIDENCE_LEVELS else "low"

    @model_validator(mode="after")
    def _strip_brand_from_model(self):
        #"Jordan Jordan 4" -> model "4"... zostawiamy jesli po obcieciu nic nie zostaje
        if self.model.lower().startswith(self.brand.lower()):
            stripped = self.model[len(self.brand):].strip()
            if stripped:
                self.model = stripped
        return self

    @property
    def is_confident(self) -> bool:
        return self.confidence != "low"


class NormalizeResult(BaseModel):
    total: int = 0
    normalized: int = 0
    fallen_back: int = 0
    errors: List[str] = Field(default_factory=list)
    rate_limited: bool = False


class SyncResult(BaseModel):
    total: int = 0
    synced: int = 0
    errors: List[str] = Field(default_factory=list)


class FullSyncResult(BaseModel):
    sync: SyncResult
    normalization: NormalizeResult
    finished_at: datetime


class WebhookEvent(BaseModel):
    type: str
    item_id: Optional[str] = None
    stock_count: Optional[int] = None


# =====================================================
# CATALOG READ
# =====================================================
class VariantOut(BaseModel):
    id: str
    external_item_id: str
    size: Optional[str] = None
    color: Optional[str] = None
    condition: Optional[str] = None
    variant_label: Optional[str] = None
    price: Optional[int] = None
    stock_quantity: int

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: str
    name: str = Field(validation_alias=AliasChoices("clean_name", "name"))
    brand: Optional[str] = Field(None, validation_alias=AliasChoices("clean_brand", "brand"))
    model: Optional[str] = Field(None, validation_alias=AliasChoices("clean_model", "model"))
    product_type: str
    price: Optional[int] = None
    stock_quantity: int
    variants: List[VariantOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ProductPage(BaseModel):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_more: bool


class CatalogMetadata(BaseModel):
    total: int
    in_stock: int
    normalized: int
    brands: List[str]


# =====================================================
# CART
# =====================================================
class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: str = Field(..., min_length=1, description="ID produktu")
    quantity: int = Field(1, gt=0, description="Ilosc (musi byc > 0)")


class QuantityIn(BaseModel):
    quantity: int = Field(..., gt=0, description="Nowa ilosc (musi byc > 0)")


class CartItemOut(BaseModel):
    id: str
    product_id: str
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    id: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    items: List[CartItemOut]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
