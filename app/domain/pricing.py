# app/domain/pricing.py
import json
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple

from app.utils.settings import FLAT_SHIPPING_FEE, FREE_SHIPPING_THRESHOLD, TAX_RATE

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    """Zaokraglenie do groszy, zawsze half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    return int(money(amount) * 100)


def options_fingerprint(options: dict | None) -> str:
    # kanoniczny JSON, pusty string gdy brak opcji
    if not options:
        return ""
    return json.dumps(options, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def shipping_for(subtotal: Decimal) -> Decimal:
    if subtotal >= FREE_SHIPPING_THRESHOLD:
        return ZERO
    return money(FLAT_SHIPPING_FEE)


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping": self.shipping,
            "discount": self.discount,
            "total": self.total,
        }


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return money(unit_price * quantity)


def compute_totals(lines: Iterable[Tuple[int, Decimal]], discount: Decimal = ZERO) -> Totals:
    """
    lines: pary (quantity, unit_price).

    Te same liczby licza sie przy podgladzie checkoutu i przy skladaniu
    zamowienia, wiec kazde mnozenie jest zaokraglane tak samo.
    """
    subtotal = money(sum((line_total(q, p) for q, p in lines), ZERO))
    tax = money(subtotal * TAX_RATE)
    shipping = shipping_for(subtotal)
    discount = money(discount)
    total = money(subtotal + tax + shipping - discount)
    return Totals(subtotal=subtotal, tax=tax, shipping=shipping, discount=discount, total=total)
