# app/api/routers/admin.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.responses import envelope
from app.data.database import get_db
from app.domain.schemas import ShipIn
from app.services.order_service import OrderService

# przejscia operatora, autoryzacja admina poza zakresem tego serwisu
router = APIRouter(prefix="/admin/orders", tags=["admin"])


def get_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.post("/{order_id}/ship")
def ship_order(order_id: int, payload: ShipIn, svc: OrderService = Depends(get_service)):
    return envelope(data=svc.ship_order(order_id, payload.tracking_number), message="Order marked as shipped.")


@router.post("/{order_id}/deliver")
def deliver_order(order_id: int, svc: OrderService = Depends(get_service)):
    return envelope(data=svc.deliver_order(order_id), message="Order marked as delivered.")


@router.post("/{order_id}/refund")
def refund_order(order_id: int, svc: OrderService = Depends(get_service)):
    return envelope(data=svc.refund_order(order_id), message="Order refunded.")
