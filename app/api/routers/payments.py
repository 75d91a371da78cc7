# app/api/routers/payments.py
from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.api.deps import get_payment_client
from app.api.responses import envelope
from app.data.database import get_db
from app.services.checkout_service import CheckoutService
from app.services.payment_client import PaymentClient

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    payment_client: PaymentClient = Depends(get_payment_client),
):
    # podpis liczony z surowego body, dlatego nie parsujemy go przez pydantic
    payload = await request.body()
    # zapytania ORM sa blokujace, nie moga isc na petli zdarzen
    outcome = await run_in_threadpool(
        CheckoutService(db, payment_client).handle_payment_webhook, payload, stripe_signature
    )
    if outcome["result"] == "unknown_payment":
        return envelope(status="info", message="No order for this payment.", data=outcome)
    return envelope(data=outcome)
