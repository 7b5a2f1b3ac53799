"""Line aggregation and tax arithmetic shared by every sales document.

All amounts are handled as :class:`~decimal.Decimal` and rounded half-up to
the currency's minor unit (two places unless a caller says otherwise).
Nothing here caches results: documents call :func:`summarize` on every write.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Union

from posdesk.schemas.documents import DocumentTotals, TaxConfiguration
from posdesk.services.exceptions import InvalidInput

Number = Union[int, float, str, Decimal]

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"Expected a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidInput(f"Expected a number, got {value!r}") from exc
    if not result.is_finite():
        raise InvalidInput(f"Expected a finite number, got {value!r}")
    return result


def round_currency(value: Number, places: int = 2) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def compute_line_total(quantity: Number, unit_price: Number, *, places: int = 2) -> Decimal:
    """Return ``quantity * unit_price`` rounded to the minor unit.

    Raises :class:`InvalidInput` for a quantity below one, a fractional
    quantity or a negative unit price.
    """

    qty = to_decimal(quantity)
    price = to_decimal(unit_price)
    if qty != qty.to_integral_value():
        raise InvalidInput(f"Quantity must be a whole number, got {quantity!r}")
    if qty < 1:
        raise InvalidInput(f"Quantity must be at least 1, got {quantity!r}")
    if price < 0:
        raise InvalidInput(f"Unit price cannot be negative, got {unit_price!r}")
    return round_currency(qty * price, places)


def _item_value(item: Any, field: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(field)
    return getattr(item, field, None)


def compute_subtotal(items: Iterable[Any], *, places: int = 2) -> Decimal:
    """Sum line totals recomputed from each item's quantity and unit price."""

    subtotal = ZERO
    for item in items:
        subtotal += compute_line_total(
            _item_value(item, "quantity"),
            _item_value(item, "unit_price"),
            places=places,
        )
    return round_currency(subtotal, places)


def _rate(tax: TaxConfiguration) -> Decimal:
    rate = to_decimal(tax.rate)
    if rate < 0:
        raise InvalidInput(f"Tax rate cannot be negative, got {tax.rate!r}")
    return rate if tax.enabled else ZERO


def compute_tax(subtotal: Number, tax: TaxConfiguration, *, places: int = 2) -> Decimal:
    rate = _rate(tax)
    amount = to_decimal(subtotal)
    if rate == 0:
        return round_currency(ZERO, places)
    if tax.inclusive:
        return round_currency(amount - amount / (1 + rate / HUNDRED), places)
    return round_currency(amount * rate / HUNDRED, places)


def compute_total(subtotal: Number, tax_amount: Number, inclusive: bool, *, places: int = 2) -> Decimal:
    if inclusive:
        return round_currency(subtotal, places)
    return round_currency(to_decimal(subtotal) + to_decimal(tax_amount), places)


def compute_base_amount(subtotal: Number, tax_amount: Number, inclusive: bool, *, places: int = 2) -> Decimal:
    """Amount before tax; in inclusive mode it is derived by subtraction."""

    if inclusive:
        return round_currency(to_decimal(subtotal) - to_decimal(tax_amount), places)
    return round_currency(subtotal, places)


def summarize(items: Iterable[Any], tax: TaxConfiguration | None = None, *, places: int = 2) -> DocumentTotals:
    tax = tax or TaxConfiguration()
    subtotal = compute_subtotal(items, places=places)
    tax_amount = compute_tax(subtotal, tax, places=places)
    return DocumentTotals(
        subtotal=subtotal,
        tax_rate=_rate(tax),
        tax_amount=tax_amount,
        total=compute_total(subtotal, tax_amount, tax.inclusive, places=places),
        base_amount=compute_base_amount(subtotal, tax_amount, tax.inclusive, places=places),
        inclusive=tax.inclusive,
    )


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    vat_amount: Decimal
    total_price: Decimal


def price_breakdown(price: Number, rate: Number, inclusive: bool, *, places: int = 2) -> PriceBreakdown:
    """Split a single catalogue price into base and VAT parts."""

    rate_value = to_decimal(rate)
    if rate_value < 0:
        raise InvalidInput(f"Tax rate cannot be negative, got {rate!r}")
    tax = TaxConfiguration(rate=rate_value, inclusive=inclusive)
    vat_amount = compute_tax(price, tax, places=places)
    if inclusive:
        return PriceBreakdown(
            base_price=compute_base_amount(price, vat_amount, True, places=places),
            vat_amount=vat_amount,
            total_price=round_currency(price, places),
        )
    return PriceBreakdown(
        base_price=round_currency(price, places),
        vat_amount=vat_amount,
        total_price=compute_total(price, vat_amount, False, places=places),
    )


def format_amount(value: Number, places: int = 2) -> str:
    return f"{round_currency(value, places):.{places}f}"
