# app/api/deps.py
from fastapi import Depends, Query
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.owner import Owner, require_user, resolve_owner
from app.services.cart_service import CartService
from app.services.lock_service import LockService
from app.services.payment_client import PaymentClient

_lock_service: LockService | None = None


def get_lock_service() -> LockService:
    global _lock_service
    if _lock_service is None:
        _lock_service = LockService()
    return _lock_service


def get_payment_client() -> PaymentClient:
    return PaymentClient()


def get_owner(
    user_id: int | None = Query(None, gt=0),
    session_id: str | None = Query(None, min_length=1, max_length=100),
) -> Owner:
    # tozsamosc przekazywana jawnie, bez globalnego "current user"
    return resolve_owner(user_id, session_id)


def get_user(user_id: int | None = Query(None, gt=0)) -> Owner:
    return require_user(user_id)


def get_cart_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(db=db, lock_service=lock_service)
