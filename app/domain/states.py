# app/domain/states.py
"""
Dwie niezalezne maszyny stanow: status zamowienia i status platnosci.
Niedozwolone przejscie konczy sie InvalidTransition, nigdy cichym pominieciem.
"""
from enum import Enum

from app.domain.errors import InvalidTransition


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.REFUNDED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    # bramka moze cofnac platnosc juz po potwierdzeniu (webhook payment_failed)
    PaymentStatus.PAID: {PaymentStatus.REFUNDED, PaymentStatus.FAILED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}

CANCELLABLE = {OrderStatus.PENDING, OrderStatus.PROCESSING}


def order_transition(current: str, target: OrderStatus) -> str:
    current = OrderStatus(current)
    if target not in ORDER_TRANSITIONS[current]:
        raise InvalidTransition(f"Order cannot move from {current.value} to {target.value}.")
    return target.value


def payment_transition(current: str, target: PaymentStatus) -> str:
    current = PaymentStatus(current)
    if target not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransition(f"Payment cannot move from {current.value} to {target.value}.")
    return target.value
