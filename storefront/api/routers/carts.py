#storefront/api/routers/carts.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from storefront.api.identity import get_identity, get_or_start_identity, remember_session
from storefront.data.database import get_db
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import CartItemOut, CartOut, ItemIn, QuantityIn
from storefront.services.cart_service import CartService, Identity
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db=db)


def _resolve(db: Session, identity: Identity, response: Response):
    svc = get_service(db)
    try:
        cart = svc.get_or_create_cart(identity.user_id, identity.session_id)
    except ValueError as e:
        #np. scalenie przekroczyloby limit ilosci
        raise HTTPException(status_code=400, detail=str(e))
    remember_session(response, identity)
    return cart


@router.get("", response_model=CartOut)
def get_current_cart(
    response: Response,
    cart_id: Optional[str] = Query(None),
    identity: Identity = Depends(get_or_start_identity),
    db: Session = Depends(get_db),
):
    if cart_id:
        svc = get_service(db)
        try:
            cart = svc.get_authorized_cart(cart_id, identity)
            remember_session(response, identity)
            return cart
        except (NotFoundError, PermissionError):
            #zapamietany cart_id jest nieaktualny albo cudzy, rozwiazujemy od nowa
            logger.info(f"Stored cart {cart_id} not usable, resolving by identity")

    return _resolve(db, identity, response)


@router.post("", response_model=CartOut)
def resolve_cart(
    response: Response,
    identity: Identity = Depends(get_or_start_identity),
    db: Session = Depends(get_db),
):
    return _resolve(db, identity, response)


@router.post("/new", response_model=CartOut, status_code=201)
def start_new_cart(
    response: Response,
    identity: Identity = Depends(get_or_start_identity),
    db: Session = Depends(get_db),
):
    cart = get_service(db).start_new_cart(identity.user_id, identity.session_id)
    remember_session(response, identity)
    return cart


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(
    cart_id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.get_authorized_cart(cart_id, identity)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{cart_id}", response_model=CartOut)
def clear_cart(
    cart_id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.get_authorized_cart(cart_id, identity)
        return svc.clear_cart(cart_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{cart_id}/items", response_model=CartItemOut, status_code=201)
def add_item(
    cart_id: str,
    payload: ItemIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.get_authorized_cart(cart_id, identity)
        return svc.add_item(cart_id, payload.product_id, payload.quantity)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{cart_id}/items/{item_id}", response_model=CartItemOut)
def update_item(
    cart_id: str,
    item_id: str,
    payload: QuantityIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.get_authorized_cart(cart_id, identity)
        return svc.update_item_quantity(cart_id, item_id, payload.quantity)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{cart_id}/items/{item_id}", response_model=CartOut)
def remove_item(
    cart_id: str,
    item_id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.get_authorized_cart(cart_id, identity)
        return svc.remove_item(cart_id, item_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
