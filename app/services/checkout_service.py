# app/services/checkout_service.py
import json
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.cart_item import CartItemModel
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.domain.errors import (
    EmptyCart,
    InsufficientStock,
    Internal,
    NotFound,
    PaymentFailed,
    ShopError,
    Unauthenticated,
    Unavailable,
    WebhookRejected,
)
from app.domain.order_number import generate_order_number
from app.domain.owner import Owner
from app.domain.pricing import Totals, compute_totals, line_total
from app.domain.states import OrderStatus, PaymentStatus, order_transition, payment_transition
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.repos.user_repo import UserRepo
from app.services.notification_service import NotificationService
from app.services.order_service import order_to_dict, restore_stock
from app.services.payment_client import PaymentClient
from app.utils.settings import CURRENCY, ORDER_NUMBER_ATTEMPTS
from app.utils.logging import get_logger

logger = get_logger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class CheckoutService:
    """
    Zamiana koszyka w niezmienne zamowienie.

    place_order dziala w jednej transakcji: pozycje, zamowienie i stany
    magazynowe zapisuja sie razem albo wcale. Platnosc jest ostatnim krokiem
    przed commitem, wiec odmowa bramki wycofuje wszystko, a koszyk zostaje.
    """

    def __init__(
        self,
        db: Session,
        payment_client: PaymentClient,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.products = ProductRepo(db)
        self.orders = OrderRepo(db)
        self.users = UserRepo(db)
        self.payment_client = payment_client
        self.notifications = notification_service or NotificationService()

    # =====================================================
    # QUERY
    # =====================================================
    def begin_checkout(self, owner: Owner) -> Dict[str, Any]:
        lines = self.carts.get_cart_items(owner.key)
        if not lines:
            raise EmptyCart()

        totals = self._totals(lines)
        return {
            "items": [
                {
                    "id": line.id,
                    "product_id": line.product_id,
                    "product_name": line.product.name,
                    "quantity": line.quantity,
                    "price": line.price,
                    "total": line_total(line.quantity, line.price),
                    "options": line.product_options,
                }
                for line in lines
            ],
            "totals": totals.as_dict(),
            "currency": CURRENCY,
        }

    def create_payment_intent(self, owner: Owner) -> Dict[str, Any]:
        lines = self.carts.get_cart_items(owner.key)
        if not lines:
            raise EmptyCart()

        totals = self._totals(lines)
        client_secret = self.payment_client.create_payment_intent(
            totals.total,
            CURRENCY,
            {"user_id": owner.ident, "cart_items_count": len(lines)},
        )
        return {"client_secret": client_secret, "amount": totals.total}

    # =====================================================
    # COMMANDS
    # =====================================================
    def place_order(
        self,
        owner: Owner,
        billing_address: dict,
        shipping_address: dict,
        payment_method: str,
        payment_token: str,
    ) -> Dict[str, Any]:
        if not owner.is_user:
            raise Unauthenticated("Please log in to complete checkout.")
        if self.users.get_user(owner.user_id) is None:
            raise Unauthenticated("Unknown user.")

        try:
            order = self._place(owner, billing_address, shipping_address, payment_method, payment_token)
            self.db.commit()
        except ShopError as e:
            self.db.rollback()
            logger.info(f"Checkout for {owner.key} aborted: {e.message}")
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Checkout for {owner.key} failed unexpectedly")
            raise Internal("Order processing failed. Please try again.")

        logger.info(f"Order {order.order_number} placed by {owner.key}, total {order.total_amount}")
        self.notifications.send_order_confirmation(owner.user_id, order.id, order.order_number)

        return order_to_dict(order)

    def _place(self, owner, billing_address, shipping_address, payment_method, payment_token) -> OrderModel:
        # 1. koszyk pobierany ponownie, mogl sie oproznic od zaladowania strony
        lines = self.carts.get_cart_items(owner.key)
        if not lines:
            raise EmptyCart()

        # blokada wierszy produktow na czas transakcji
        products = self.products.lock_products(line.product_id for line in lines)
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise NotFound("A product in your cart no longer exists.")
            # brak ilosci wychodzi nizej jako InsufficientStock przy zmniejszaniu stanu
            if product.status != "active" or not product.in_stock:
                raise Unavailable(f"{product.name} is currently unavailable.")

        # 2. kwoty zawsze liczone po stronie serwera
        totals = self._totals(lines)

        # 3-4. zamowienie + pozycje
        order = self._insert_order(owner, totals, billing_address, shipping_address, payment_method)
        for line in lines:
            product = products[line.product_id]
            self.db.add(
                OrderItemModel(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    product_sku=product.sku,
                    quantity=line.quantity,
                    unit_price=line.price,
                    total_price=line_total(line.quantity, line.price),
                    product_options=line.product_options,
                )
            )

            # 5. warunkowe zmniejszenie stanu, brak towaru przerywa cala transakcje
            if product.manage_stock and not self.products.decrement_stock(product.id, line.quantity):
                raise InsufficientStock(
                    f"Only {product.stock_quantity} of {product.name} left in stock.",
                    data={"product_id": product.id, "available": product.stock_quantity},
                )
        self.db.flush()

        # 6. platnosc jako ostatni krok przed commitem
        result = self.payment_client.capture_or_verify(payment_method, payment_token, totals.total)
        if not result.success:
            raise PaymentFailed(f"Payment failed: {result.error}")

        order.payment_status = payment_transition(order.payment_status, PaymentStatus.PAID)
        order.status = order_transition(order.status, OrderStatus.PROCESSING)
        order.payment_id = result.payment_id

        self.carts.clear(owner.key)
        self.db.flush()
        self.db.refresh(order)
        return order

    def _insert_order(self, owner, totals: Totals, billing_address, shipping_address, payment_method) -> OrderModel:
        """
        Numer zamowienia losowany optymistycznie. Sprawdzenie istnienia nie
        wystarcza przy rownoleglych checkoutach, wiec insert idzie w savepoincie
        i przy naruszeniu unikalnosci losujemy ponownie.
        """
        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            number = generate_order_number(self.orders.order_number_exists)
            try:
                with self.db.begin_nested():
                    return self.orders.add_order(
                        OrderModel(
                            order_number=number,
                            user_id=owner.user_id,
                            status=OrderStatus.PENDING.value,
                            payment_status=PaymentStatus.PENDING.value,
                            payment_method=payment_method,
                            subtotal=totals.subtotal,
                            tax_amount=totals.tax,
                            shipping_amount=totals.shipping,
                            discount_amount=totals.discount,
                            total_amount=totals.total,
                            currency=CURRENCY,
                            billing_address=dict(billing_address),
                            shipping_address=dict(shipping_address),
                        )
                    )
            except IntegrityError:
                logger.warning(f"Order number {number} collided on insert (attempt {attempt}), retrying")
        raise Internal("Could not allocate an order number.")

    # =====================================================
    # WEBHOOK
    # =====================================================
    def handle_payment_webhook(self, payload: bytes, signature: str | None) -> Dict[str, Any]:
        """
        Asynchroniczne uzgodnienie stanu platnosci.

        Idempotentne po (payment_id, payment_status): powtorzone dostarczenie
        tego samego zdarzenia nic nie zmienia. Moze przyjsc przed, po albo
        zamiast wyniku synchronicznego.
        """
        self.payment_client.verify_webhook(payload, signature)

        try:
            event = json.loads(payload)
            event_type = event["type"]
            payment_id = event["data"]["object"]["id"]
        except (ValueError, KeyError, TypeError):
            raise WebhookRejected("Malformed webhook payload.")

        if event_type not in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
            raise WebhookRejected(f"Unhandled event type: {event_type}")

        try:
            outcome = self._reconcile(event_type, payment_id)
            self.db.commit()
        except ShopError:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Webhook {event_type} for {payment_id} failed")
            raise Internal()

        logger.info(f"Webhook {event_type} for {payment_id}: {outcome['result']}")
        return outcome

    def _reconcile(self, event_type: str, payment_id: str) -> Dict[str, Any]:
        order = self.orders.get_by_payment_id(payment_id)
        if order is None:
            return {"result": "unknown_payment", "payment_id": payment_id}

        if event_type == PAYMENT_SUCCEEDED:
            if order.payment_status == PaymentStatus.PAID.value:
                return {"result": "already_applied", "order_number": order.order_number}
            order.payment_status = payment_transition(order.payment_status, PaymentStatus.PAID)
            if order.status == OrderStatus.PENDING.value:
                order.status = order_transition(order.status, OrderStatus.PROCESSING)
            return {"result": "paid", "order_number": order.order_number}

        if order.payment_status == PaymentStatus.FAILED.value:
            return {"result": "already_applied", "order_number": order.order_number}
        order.payment_status = payment_transition(order.payment_status, PaymentStatus.FAILED)
        if order.status == OrderStatus.CANCELLED.value:
            # klient anulowal wczesniej, stan magazynowy juz wrocil
            return {"result": "failed", "order_number": order.order_number, "restored_units": 0}
        order.status = order_transition(order.status, OrderStatus.CANCELLED)
        restored = restore_stock(self.products, order)
        return {"result": "failed", "order_number": order.order_number, "restored_units": restored}

    # --- helpers ---

    @staticmethod
    def _totals(lines: List[CartItemModel]) -> Totals:
        return compute_totals((line.quantity, line.price) for line in lines)
