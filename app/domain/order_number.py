# app/domain/order_number.py
import secrets
from datetime import datetime, timezone
from typing import Callable

ORDER_NUMBER_PREFIX = "ORD"


def candidate_order_number(now: datetime | None = None) -> str:
    """ORD-<rok>-<6 cyfr z zerami wiodacymi>, np. ORD-2026-004217."""
    year = (now or datetime.now(timezone.utc)).year
    return f"{ORDER_NUMBER_PREFIX}-{year}-{secrets.randbelow(999999) + 1:06d}"


def generate_order_number(is_taken: Callable[[str], bool], now: datetime | None = None) -> str:
    """
    Losuje do skutku numer, ktorego is_taken nie odrzuca.

    To tylko optymistyczne sprawdzenie - ostatecznie o unikalnosci decyduje
    constraint w bazie, a insert jest ponawiany przy konflikcie.
    """
    while True:
        number = candidate_order_number(now)
        if not is_taken(number):
            return number
