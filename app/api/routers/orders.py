# app/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_user
from app.api.responses import envelope
from app.data.database import get_db
from app.domain.owner import Owner
from app.domain.states import OrderStatus
from app.services.order_service import OrderService

router = APIRouter(prefix="/account", tags=["account"])


def get_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.get("/")
def dashboard(user: Owner = Depends(get_user), svc: OrderService = Depends(get_service)):
    return envelope(data=svc.dashboard(user))


@router.get("/orders")
def list_orders(
    status: OrderStatus | None = Query(None),
    search: str | None = Query(None, max_length=64),
    page: int = Query(1, ge=1),
    user: Owner = Depends(get_user),
    svc: OrderService = Depends(get_service),
):
    return envelope(data=svc.list_orders(user, status.value if status else None, search, page))


@router.get("/orders/{order_id}")
def get_order(order_id: int, user: Owner = Depends(get_user), svc: OrderService = Depends(get_service)):
    """
    Szczegoly zamowienia z pozycjami i osia czasu.
    Cudze zamowienie zwraca 404.
    """
    return envelope(data=svc.get_order(user, order_id))


@router.get("/orders/{order_id}/track")
def track_order(order_id: int, user: Owner = Depends(get_user), svc: OrderService = Depends(get_service)):
    return envelope(data=svc.track_order(user, order_id))


@router.put("/orders/{order_id}/cancel")
def cancel_order(order_id: int, user: Owner = Depends(get_user), svc: OrderService = Depends(get_service)):
    return envelope(data=svc.cancel_order(user, order_id), message="Order cancelled successfully.")
