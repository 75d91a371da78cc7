# app/services/order_service.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.data.models.order import OrderModel
from app.domain.errors import InvalidTransition, NotFound, Unauthorized
from app.domain.owner import Owner
from app.domain.pricing import money
from app.domain.states import (
    CANCELLABLE,
    OrderStatus,
    PaymentStatus,
    order_transition,
    payment_transition,
)
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)

ORDERS_PER_PAGE = 10
DELIVERY_ESTIMATE_DAYS = 3


def restore_stock(products: ProductRepo, order: OrderModel) -> int:
    """
    Zwraca na magazyn ilosci z pozycji zamowienia.
    Produkty usuniete po zlozeniu zamowienia albo bez manage_stock sa pomijane.
    """
    restored = 0
    for item in order.items:
        if item.product_id is None:
            continue
        product = products.get_product(item.product_id)
        if product is None or not product.manage_stock:
            continue
        if products.increment_stock(product.id, item.quantity):
            restored += item.quantity
    return restored


def order_timeline(order: OrderModel) -> List[Dict[str, Any]]:
    timeline = [{"status": "Order Placed", "date": order.created_at, "completed": True}]

    if order.payment_status in (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value):
        timeline.append({"status": "Payment Confirmed", "date": order.updated_at, "completed": True})

    if order.status in (OrderStatus.PROCESSING.value, OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value):
        timeline.append({"status": "Processing", "date": order.updated_at, "completed": True})

    if order.status in (OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value):
        timeline.append({"status": "Shipped", "date": order.shipped_at, "completed": True})

    if order.status == OrderStatus.DELIVERED.value:
        timeline.append({"status": "Delivered", "date": order.delivered_at, "completed": True})

    if order.status == OrderStatus.CANCELLED.value:
        timeline.append({"status": "Cancelled", "date": order.updated_at, "completed": True})

    if order.status == OrderStatus.REFUNDED.value:
        timeline.append({"status": "Refunded", "date": order.updated_at, "completed": True})

    return timeline


def order_to_dict(order: OrderModel, with_items: bool = True) -> Dict[str, Any]:
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "payment_id": order.payment_id,
        "subtotal": order.subtotal,
        "tax_amount": order.tax_amount,
        "shipping_amount": order.shipping_amount,
        "discount_amount": order.discount_amount,
        "total_amount": order.total_amount,
        "currency": order.currency,
        "billing_address": order.billing_address,
        "shipping_address": order.shipping_address,
        "tracking_number": order.tracking_number,
        "shipped_at": order.shipped_at,
        "delivered_at": order.delivered_at,
        "created_at": order.created_at,
        "total_items": sum(i.quantity for i in order.items),
    }
    if with_items:
        data["items"] = [
            {
                "id": i.id,
                "product_id": i.product_id,
                "product_name": i.product_name,
                "product_sku": i.product_sku,
                "quantity": i.quantity,
                "unit_price": i.unit_price,
                "total_price": i.total_price,
                "product_options": i.product_options,
            }
            for i in order.items
        ]
    return data


class OrderService:
    """
    Serwis odpowiedzialny za zamowienia po checkoucie:
    zapytania konta (lista, szczegoly, sledzenie, dashboard),
    anulowanie przez klienta i przejscia operatora (wysylka, dostawa, zwrot).
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)

    # =====================================================
    # QUERY
    # =====================================================
    def list_orders(
        self,
        user: Owner,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        per_page: int = ORDERS_PER_PAGE,
    ) -> Dict[str, Any]:
        page = max(page, 1)
        orders, total = self.repo.list_for_user(user.user_id, status, search, page, per_page)
        return {
            "orders": [order_to_dict(o, with_items=False) for o in orders],
            "page": page,
            "per_page": per_page,
            "total": total,
            "last_page": max((total + per_page - 1) // per_page, 1),
        }

    def get_order(self, user: Owner, order_id: int) -> Dict[str, Any]:
        order = self._visible_order(user, order_id)
        data = order_to_dict(order)
        data["timeline"] = order_timeline(order)
        return data

    def track_order(self, user: Owner, order_id: int) -> Dict[str, Any]:
        order = self._owned_order(user, order_id)
        estimated = None
        if order.shipped_at:
            estimated = order.shipped_at + timedelta(days=DELIVERY_ESTIMATE_DAYS)
        return {
            "tracking_number": order.tracking_number or "Not available",
            "status": order.status,
            "timeline": order_timeline(order),
            "estimated_delivery": f"{estimated:%b} {estimated.day}, {estimated.year}" if estimated else "Not available",
        }

    def dashboard(self, user: Owner) -> Dict[str, Any]:
        recent, _ = self.repo.list_for_user(user.user_id, page=1, per_page=5)
        return {
            "recent_orders": [order_to_dict(o, with_items=False) for o in recent],
            "stats": {
                "total_orders": self.repo.count_for_user(user.user_id),
                "pending_orders": self.repo.count_for_user(user.user_id, OrderStatus.PENDING.value),
                "completed_orders": self.repo.count_for_user(user.user_id, OrderStatus.DELIVERED.value),
                "total_spent": money(self.repo.total_paid_for_user(user.user_id)),
            },
        }

    # =====================================================
    # COMMANDS
    # =====================================================
    def cancel_order(self, user: Owner, order_id: int) -> Dict[str, Any]:
        """
        Anulowanie przez klienta: tylko pending/processing,
        stan magazynowy wraca w tej samej transakcji.
        """
        order = self._owned_order(user, order_id, for_update=True)

        if OrderStatus(order.status) not in CANCELLABLE:
            raise InvalidTransition("This order cannot be cancelled.")

        try:
            order.status = order_transition(order.status, OrderStatus.CANCELLED)
            restored = restore_stock(self.products, order)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order.order_number} cancelled by user {user.user_id}, {restored} units restored")
        return order_to_dict(order)

    def ship_order(self, order_id: int, tracking_number: str) -> Dict[str, Any]:
        order = self._order_or_404(order_id)
        order.status = order_transition(order.status, OrderStatus.SHIPPED)
        order.tracking_number = tracking_number
        order.shipped_at = datetime.now(timezone.utc)
        self.db.commit()

        logger.info(f"Order {order.order_number} shipped ({tracking_number})")
        return order_to_dict(order)

    def deliver_order(self, order_id: int) -> Dict[str, Any]:
        order = self._order_or_404(order_id)
        order.status = order_transition(order.status, OrderStatus.DELIVERED)
        order.delivered_at = datetime.now(timezone.utc)
        self.db.commit()

        logger.info(f"Order {order.order_number} delivered")
        return order_to_dict(order)

    def refund_order(self, order_id: int) -> Dict[str, Any]:
        """
        Rejestruje zwrot wykonany w bramce. Towar wraca na magazyn
        tylko jesli nie zostal wyslany.
        """
        order = self._order_or_404(order_id)
        never_shipped = order.status in (OrderStatus.PENDING.value, OrderStatus.PROCESSING.value)

        try:
            order.payment_status = payment_transition(order.payment_status, PaymentStatus.REFUNDED)
            order.status = order_transition(order.status, OrderStatus.REFUNDED)
            if never_shipped:
                restore_stock(self.products, order)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order.order_number} refunded")
        return order_to_dict(order)

    # --- helpers ---

    def _order_or_404(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id, for_update=True)
        if not order:
            raise NotFound("Order not found.")
        return order

    def _owned_order(self, user: Owner, order_id: int, for_update: bool = False) -> OrderModel:
        order = self.repo.get_order(order_id, for_update=for_update)
        if not order:
            raise NotFound("Order not found.")
        if order.user_id != user.user_id:
            raise Unauthorized()
        return order

    def _visible_order(self, user: Owner, order_id: int) -> OrderModel:
        # cudze zamowienie udaje ze nie istnieje
        order = self.repo.get_order(order_id)
        if not order or order.user_id != user.user_id:
            raise NotFound("Order not found.")
        return order
