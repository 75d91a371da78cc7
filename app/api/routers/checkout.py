# app/api/routers/checkout.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_payment_client, get_user
from app.api.responses import envelope
from app.data.database import get_db
from app.domain.owner import Owner
from app.domain.schemas import CheckoutIn
from app.services.checkout_service import CheckoutService
from app.services.payment_client import PaymentClient

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_service(
    db: Session = Depends(get_db),
    payment_client: PaymentClient = Depends(get_payment_client),
) -> CheckoutService:
    return CheckoutService(db, payment_client)


@router.get("/")
def checkout_summary(user: Owner = Depends(get_user), svc: CheckoutService = Depends(get_service)):
    return envelope(data=svc.begin_checkout(user))


@router.post("/payment-intent")
def create_payment_intent(user: Owner = Depends(get_user), svc: CheckoutService = Depends(get_service)):
    return envelope(data=svc.create_payment_intent(user))


@router.post("/process", status_code=201)
def process_checkout(
    payload: CheckoutIn,
    user: Owner = Depends(get_user),
    svc: CheckoutService = Depends(get_service),
):
    """
    Tworzy zamowienie z koszyka i pobiera platnosc.
    Kwoty liczone sa po stronie serwera, klient ich nie przesyla.
    """
    order = svc.place_order(
        user,
        payload.billing_address.model_dump(),
        payload.shipping_address.model_dump(),
        payload.payment_method,
        payload.payment_token,
    )
    return envelope(
        data={"order_id": order["id"], "order_number": order["order_number"], "order": order},
        message="Order placed successfully!",
        status_code=201,
    )
