# storefront/api/routers/catalog.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import CatalogMetadata, ProductOut, ProductPage
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["catalog"])


@router.get("", response_model=ProductPage)
def list_products(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    brand: Optional[str] = Query(None),
    in_stock: bool = Query(True),
    db: Session = Depends(get_db),
):
    svc = CatalogService(db)
    try:
        return svc.list_products(page=page, page_size=page_size, brand=brand, in_stock=in_stock)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/metadata", response_model=CatalogMetadata)
def catalog_metadata(db: Session = Depends(get_db)):
    """Liczniki i lista marek dla filtrow UI."""
    return CatalogService(db).get_metadata()


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    try:
        return CatalogService(db).get_product(product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
