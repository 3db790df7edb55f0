from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models._common import new_id, utcnow
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import NotFoundError
from storefront.repos.cart_repo import CartRepo
from storefront.utils.logging import get_logger
from storefront.utils import settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """Kto pyta: zalogowany user (user_id) albo anonimowa sesja (session_id)."""

    user_id: Optional[str] = None
    session_id: Optional[str] = None

    def owns(self, cart: CartModel) -> bool:
        if self.user_id:
            return cart.user_id == self.user_id
        return bool(self.session_id) and cart.user_id is None and cart.session_id == self.session_id


class CartAction(str, Enum):
    MERGE = "merge"
    RETURN_USER_CART = "return_user_cart"
    REHOME_SESSION_CART = "rehome_session_cart"
    CREATE_USER_CART = "create_user_cart"


#(znaleziony koszyk usera, znaleziony koszyk sesji) -> akcja
LOGIN_DECISIONS = {
    (True, True): CartAction.MERGE,
    (True, False): CartAction.RETURN_USER_CART,
    (False, True): CartAction.REHOME_SESSION_CART,
    (False, False): CartAction.CREATE_USER_CART,
}


class CartService:
    """
    Koszyki dla sesji anonimowych i zalogowanych userow.
    commands (get_or_create, add, update, remove, clear) modyfikuja stan,
    kazda komenda to jedna transakcja i przestemplowuje updated_at.
    Autoryzacja po stronie wolajacego (get_authorized_cart), tu tylko cart_id.
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        max_cart_items: int | None = None,
        max_item_quantity: int | None = None,
        max_carts_per_user: int | None = None,
        max_session_carts: int | None = None,
    ):
        self.repo = CartRepo(db)
        self.clock = clock
        self.max_cart_items = max_cart_items or settings.MAX_CART_ITEMS
        self.max_item_quantity = max_item_quantity or settings.MAX_ITEM_QUANTITY
        self.max_carts_per_user = max_carts_per_user or settings.MAX_CARTS_PER_USER
        self.max_session_carts = max_session_carts or settings.MAX_SESSION_CARTS

    #query - odczyt
    def get_cart(self, cart_id: str) -> CartModel | None:
        return self.repo.get_cart(cart_id)

    def get_authorized_cart(self, cart_id: str, identity: Identity) -> CartModel:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            raise NotFoundError("Cart not found")
        if not identity.owns(cart):
            raise PermissionError("Cart does not belong to the caller")
        return cart

    #commands
    def get_or_create_cart(
        self,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> CartModel:
        try:
            if user_id:
                cart = self._resolve_user_cart(user_id, session_id)
            elif session_id:
                cart = self._resolve_session_cart(session_id)
            else:
                cart = self._create_capped(None, None)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        return self.repo.get_cart(cart.id)

    def start_new_cart(
        self,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> CartModel:
        """Zawsze nowy koszyk (np. po zlozeniu zamowienia), z limitem koszykow na wlasciciela."""
        try:
            cart = self._create_capped(user_id, session_id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        return self.repo.get_cart(cart.id)

    def _create_capped(self, user_id: Optional[str], session_id: Optional[str]) -> CartModel:
        if user_id:
            self._evict_oldest(self.repo.list_user_cart_ids(user_id), self.max_carts_per_user)
            return self._new_cart(user_id=user_id, session_id=None)
        if session_id:
            self._evict_oldest(self.repo.list_session_cart_ids(session_id), self.max_session_carts)
            return self._new_cart(user_id=None, session_id=session_id)
        return self._new_cart(user_id=None, session_id=None)

    def _resolve_user_cart(self, user_id: str, session_id: Optional[str]) -> CartModel:
        user_cart = self.repo.get_latest_user_cart(user_id)
        session_cart = self.repo.get_latest_session_cart(session_id) if session_id else None

        action = LOGIN_DECISIONS[(user_cart is not None, session_cart is not None)]
        logger.info(f"Resolving cart for user {user_id}: {action.value}")

        if action is CartAction.MERGE:
            return self._merge(session_cart, user_cart)
        if action is CartAction.RETURN_USER_CART:
            return user_cart
        if action is CartAction.REHOME_SESSION_CART:
            return self._rehome(session_cart, user_id)

        return self._create_capped(user_id, None)

    def _resolve_session_cart(self, session_id: str) -> CartModel:
        existing = self.repo.get_latest_session_cart(session_id)
        if existing:
            return existing

        return self._create_capped(None, session_id)

    def _merge(self, session_cart: CartModel, user_cart: CartModel) -> CartModel:
        """Pozycje koszyka sesji wchodza do koszyka usera, koszyk sesji znika."""
        session_items = [(i.product_id, i.quantity) for i in session_cart.items]
        item_count = len(self.repo.get_cart_items(user_cart.id))

        for product_id, quantity in session_items:
            existing = self.repo.get_cart_item(user_cart.id, product_id)
            if existing:
                new_quantity = existing.quantity + quantity
                if new_quantity > self.max_item_quantity:
                    raise ValueError(
                        f"Merged quantity for product {product_id} would exceed "
                        f"{self.max_item_quantity} per item"
                    )
                existing.quantity = new_quantity
                continue

            if item_count >= self.max_cart_items:
                raise ValueError(f"Cart cannot have more than {self.max_cart_items} items")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=user_cart.id,
                    product_id=product_id,
                    quantity=quantity,
                    created_at=self.clock(),
                )
            )
            item_count += 1

        user_cart_id, session_cart_id = user_cart.id, session_cart.id
        self.repo.delete_carts([session_cart_id])
        merged = self.repo.get_cart(user_cart_id)
        self.repo.touch(merged, self.clock())

        logger.info(
            f"Merged session cart {session_cart_id} ({len(session_items)} items) into user cart {user_cart_id}"
        )
        return merged

    def _rehome(self, session_cart: CartModel, user_id: str) -> CartModel:
        #bez kopiowania, koszyk sesji po prostu zmienia wlasciciela
        session_cart.user_id = user_id
        session_cart.session_id = None
        self.repo.touch(session_cart, self.clock())
        logger.info(f"Session cart {session_cart.id} converted to user cart for {user_id}")
        return session_cart

    def _evict_oldest(self, cart_ids_newest_first: List[str], cap: int) -> None:
        if len(cart_ids_newest_first) < cap:
            return
        to_delete = cart_ids_newest_first[max(cap - 1, 0):]
        deleted = self.repo.delete_carts(to_delete)
        logger.info(f"Evicted {deleted} old carts (cap {cap})")

    def _new_cart(self, user_id: Optional[str], session_id: Optional[str]) -> CartModel:
        now = self.clock()
        created = self.repo.create_cart(
            CartModel(
                id=new_id(),
                user_id=user_id,
                session_id=session_id,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(f"Created cart {created.id} (user={user_id}, session={session_id})")
        return created

    # ---------- mutacje pozycji ----------
    def _validate_quantity(self, quantity) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError("Quantity must be a positive integer")
        if quantity > self.max_item_quantity:
            raise ValueError(f"Quantity cannot exceed {self.max_item_quantity} per item")

    def _require_cart(self, cart_id: str) -> CartModel:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            raise NotFoundError("Cart not found")
        return cart

    def _add_or_increment(self, cart: CartModel, product_id: str, quantity: int) -> CartItemModel:
        existing = self.repo.get_cart_item(cart.id, product_id)
        if existing:
            new_quantity = existing.quantity + quantity
            if new_quantity > self.max_item_quantity:
                raise ValueError(f"Total quantity cannot exceed {self.max_item_quantity} per item")
            logger.info(
                f"Produkt {product_id} juz jest w koszyku {cart.id}, "
                f"ilosc {existing.quantity} -> {new_quantity}"
            )
            existing.quantity = new_quantity
            self.repo.db.flush()
            return existing

        if self.repo.count_cart_items(cart.id) >= self.max_cart_items:
            raise ValueError(f"Cart cannot have more than {self.max_cart_items} items")

        logger.info(f"Dodaje nowy produkt {product_id} do koszyka {cart.id}")
        return self.repo.add_cart_item(
            CartItemModel(
                cart_id=cart.id,
                product_id=product_id,
                quantity=quantity,
                created_at=self.clock(),
            )
        )

    def add_item(self, cart_id: str, product_id: str, quantity: int = 1) -> CartItemModel:
        self._validate_quantity(quantity)
        if not product_id:
            raise ValueError("product_id is required")

        #unique (cart_id, product_id): przegrany wyscig insertu ponawiamy raz jako update
        for attempt in range(2):
            cart = self._require_cart(cart_id)
            try:
                item = self._add_or_increment(cart, product_id, quantity)
                self.repo.touch(cart, self.clock())
                self.repo.commit()
                return item
            except IntegrityError:
                self.repo.rollback()
                if attempt:
                    raise
                logger.warning(f"Concurrent insert of product {product_id} into cart {cart_id}, retrying as update")
            except Exception:
                self.repo.rollback()
                raise

    def update_item_quantity(self, cart_id: str, item_id: str, quantity: int) -> CartItemModel:
        self._validate_quantity(quantity)
        cart = self._require_cart(cart_id)

        item = self.repo.get_cart_item_by_id(cart_id, item_id)
        if not item:
            raise NotFoundError("Cart item not found or does not belong to this cart")

        item.quantity = quantity
        self.repo.touch(cart, self.clock())
        self.repo.commit()
        return item

    def remove_item(self, cart_id: str, item_id: str) -> CartModel:
        cart = self._require_cart(cart_id)

        item = self.repo.get_cart_item_by_id(cart_id, item_id)
        if not item:
            raise NotFoundError("Cart item not found or does not belong to this cart")

        logger.info(f"Usuwanie pozycji {item_id} z koszyka {cart_id}")
        self.repo.delete_cart_item(item)
        self.repo.touch(cart, self.clock())
        self.repo.commit()
        return self.repo.get_cart(cart_id)

    def clear_cart(self, cart_id: str) -> CartModel:
        cart = self._require_cart(cart_id)

        removed = self.repo.delete_cart_items(cart_id)
        cart = self._require_cart(cart_id)
        self.repo.touch(cart, self.clock())
        self.repo.commit()

        logger.info(f"Cleared cart {cart_id} ({removed} items)")
        return self.repo.get_cart(cart_id)
