# app/services/payment_client.py
import hashlib
import hmac
import time
from dataclasses import dataclass
from decimal import Decimal

import requests
from requests import RequestException

from app.domain.errors import PaymentFailed, WebhookRejected
from app.domain.pricing import to_cents
from app.utils.retry import http_retry
from app.utils.settings import (
    PAYMENT_TIMEOUT_SECONDS,
    STRIPE_API_URL,
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    WEBHOOK_TOLERANCE_SECONDS,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    payment_id: str | None = None
    error: str | None = None


class PaymentClient:
    """
    Waski kontrakt do bramki platnosci:
    - create_payment_intent -> client_secret
    - capture_or_verify -> PaymentResult
    - verify_webhook -> zweryfikowany payload (fail closed)
    """

    def __init__(
        self,
        base_url: str | None = None,
        secret_key: str | None = None,
        webhook_secret: str | None = None,
        timeout: float = PAYMENT_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or STRIPE_API_URL).rstrip("/")
        self.secret_key = secret_key if secret_key is not None else STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else STRIPE_WEBHOOK_SECRET
        self.timeout = timeout

    def create_payment_intent(self, amount: Decimal, currency: str, metadata: dict) -> str:
        url = f"{self.base_url}/v1/payment_intents"
        logger.info(f"PaymentClient POST {url} amount={amount} {currency}")

        form = {"amount": to_cents(amount), "currency": currency.lower()}
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)

        try:
            resp = requests.post(url, data=form, auth=(self.secret_key, ""), timeout=self.timeout)
            resp.raise_for_status()
        except RequestException as e:
            logger.error(f"Payment intent creation failed: {e}")
            raise PaymentFailed("Failed to create payment intent.")
        return resp.json()["client_secret"]

    def capture_or_verify(self, method: str, token: str, amount: Decimal) -> PaymentResult:
        if method == "stripe":
            return self._verify_stripe_intent(token, amount)
        if method == "paypal":
            # brak integracji PayPal, token traktujemy jako potwierdzenie
            return PaymentResult(success=True, payment_id=f"paypal_{token}")
        return PaymentResult(success=False, error="Invalid payment method")

    def _verify_stripe_intent(self, token: str, amount: Decimal) -> PaymentResult:
        try:
            intent = self._fetch_intent(token)
        except RequestException as e:
            # timeout albo blad sieci = nieudana platnosc, transakcja idzie do rollbacku
            logger.warning(f"Stripe verification for {token} failed: {e}")
            return PaymentResult(success=False, error="Payment provider did not respond")

        if intent.get("status") != "succeeded":
            return PaymentResult(success=False, error="Payment not completed")
        if intent.get("amount") is not None and int(intent["amount"]) != to_cents(amount):
            return PaymentResult(success=False, error="Payment amount does not match order total")
        return PaymentResult(success=True, payment_id=intent["id"])

    @http_retry()
    def _fetch_intent(self, token: str) -> dict:
        url = f"{self.base_url}/v1/payment_intents/{token}"
        logger.info(f"PaymentClient GET {url}")

        resp = requests.get(url, auth=(self.secret_key, ""), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def verify_webhook(self, payload: bytes, signature_header: str | None) -> None:
        """
        Naglowek w stylu Stripe: t=<timestamp>,v1=<hmac_sha256(t.payload)>.
        Kazdy blad weryfikacji -> WebhookRejected.
        """
        if not self.webhook_secret or not signature_header:
            raise WebhookRejected("Missing webhook signature.")

        try:
            parts = dict(item.split("=", 1) for item in signature_header.split(","))
            timestamp = int(parts["t"])
            expected_sigs = [v for k, v in (p.split("=", 1) for p in signature_header.split(",")) if k == "v1"]
        except (KeyError, ValueError):
            raise WebhookRejected("Malformed webhook signature.")

        if abs(time.time() - timestamp) > WEBHOOK_TOLERANCE_SECONDS:
            raise WebhookRejected("Webhook timestamp outside tolerance.")

        signed = f"{timestamp}.".encode() + payload
        computed = hmac.new(self.webhook_secret.encode(), signed, hashlib.sha256).hexdigest()
        if not any(hmac.compare_digest(computed, sig) for sig in expected_sigs):
            raise WebhookRejected("Invalid webhook signature.")


def sign_webhook(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Buduje naglowek podpisu, przydatne w testach i narzedziach deweloperskich."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    sig = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={sig}"
