# storefront/api/identity.py
import uuid

from fastapi import Request, Response

from storefront.services.cart_service import Identity
from storefront.utils.settings import SESSION_COOKIE_MAX_AGE, SESSION_COOKIE_NAME, USER_ID_HEADER


def generate_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


def get_identity(request: Request) -> Identity:
    """
    user_id z naglowka ustawianego przez bramke auth, session_id z ciasteczka.
    Nie tworzy nowej sesji, uzywane przy mutacjach.
    """
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip() or None
    session_id = (request.cookies.get(SESSION_COOKIE_NAME) or "").strip() or None
    return Identity(user_id=user_id, session_id=session_id)


def get_or_start_identity(request: Request) -> Identity:
    """Jak get_identity, ale anonim bez ciasteczka dostaje nowa sesje."""
    identity = get_identity(request)
    if not identity.user_id and not identity.session_id:
        return Identity(user_id=None, session_id=generate_session_id())
    return identity


def remember_session(response: Response, identity: Identity) -> None:
    if identity.user_id or not identity.session_id:
        return
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=identity.session_id,
        max_age=SESSION_COOKIE_MAX_AGE,
        path="/",
        samesite="lax",
        httponly=True,
    )
