# storefront/repos/cart_repo.py
from datetime import datetime
from typing import Iterable, List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .options(selectinload(CartModel.items))
            .where(CartModel.id == cart_id)
        ).scalar_one_or_none()

    def get_latest_user_cart(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .options(selectinload(CartModel.items))
            .where(CartModel.user_id == user_id)
            .order_by(CartModel.updated_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def get_latest_session_cart(self, session_id: str) -> CartModel | None:
        #tylko koszyki bez wlasciciela, koszyk z user_id nalezy juz do usera
        return self.db.execute(
            select(CartModel)
            .options(selectinload(CartModel.items))
            .where(CartModel.session_id == session_id, CartModel.user_id.is_(None))
            .order_by(CartModel.updated_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_user_cart_ids(self, user_id: str) -> List[str]:
        """Od najnowszego do najstarszego (updated_at)."""
        return list(
            self.db.execute(
                select(CartModel.id)
                .where(CartModel.user_id == user_id)
                .order_by(CartModel.updated_at.desc(), CartModel.created_at.desc())
            ).scalars().all()
        )

    def list_session_cart_ids(self, session_id: str) -> List[str]:
        return list(
            self.db.execute(
                select(CartModel.id)
                .where(CartModel.session_id == session_id, CartModel.user_id.is_(None))
                .order_by(CartModel.updated_at.desc(), CartModel.created_at.desc())
            ).scalars().all()
        )

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def delete_carts(self, cart_ids: Iterable[str]) -> int:
        ids = list(cart_ids)
        if not ids:
            return 0
        self.db.flush()
        #najpierw pozycje, sqlite nie wymusza ON DELETE CASCADE
        self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id.in_(ids)))
        result = self.db.execute(delete(CartModel).where(CartModel.id.in_(ids)))
        self.db.expire_all()
        return result.rowcount

    def get_cart_items(self, cart_id: str) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.created_at)
            ).scalars().all()
        )

    def count_cart_items(self, cart_id: str) -> int:
        return len(self.get_cart_items(cart_id))

    def get_cart_item(self, cart_id: str, product_id: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def get_cart_item_by_id(self, cart_id: str, item_id: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == item_id,
                CartItemModel.cart_id == cart_id,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_cart_items(self, cart_id: str) -> int:
        self.db.flush()
        result = self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))
        self.db.expire_all()
        return result.rowcount

    def touch(self, cart: CartModel, now: datetime) -> None:
        cart.updated_at = now
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
