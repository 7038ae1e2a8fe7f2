"""Order and key validation before anything is forwarded to the exchange."""

import html
import re
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, List, Optional

VALID_SIDES = ("BUY", "SELL")
VALID_ORDER_TYPES = (
    "MARKET",
    "LIMIT",
    "STOP_LOSS_LIMIT",
    "TAKE_PROFIT_LIMIT",
    "LIMIT_MAKER",
    "OCO",
)
TYPES_REQUIRING_PRICE = ("LIMIT", "STOP_LOSS_LIMIT", "TAKE_PROFIT_LIMIT", "LIMIT_MAKER")
TYPES_REQUIRING_STOP_PRICE = ("STOP_LOSS_LIMIT", "TAKE_PROFIT_LIMIT")

SYMBOL_PATTERN = re.compile(r"[A-Z0-9]+")
OCO_SYMBOL_PATTERN = re.compile(r"[A-Z0-9]{2,20}")
API_KEY_PATTERN = re.compile(r"[A-Za-z0-9]{64}")


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)

    @property
    def error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def is_positive_number(value: Any) -> bool:
    number = _to_decimal(value)
    return number is not None and number > 0


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def validate_order_params(
    symbol: Optional[str] = None,
    side: Optional[str] = None,
    type: Optional[str] = None,
    quantity: Any = None,
    price: Any = None,
    stop_price: Any = None,
) -> ValidationResult:
    """Collect every problem with an order instead of stopping at the first."""
    errors: List[str] = []

    if _is_blank(symbol):
        errors.append("symbol is required and cannot be empty")
    elif not SYMBOL_PATTERN.fullmatch(symbol):
        errors.append("symbol must contain only uppercase letters and numbers")

    if _is_blank(side):
        errors.append("side is required")
    elif side not in VALID_SIDES:
        errors.append("side must be BUY or SELL")

    if _is_blank(type):
        errors.append("type is required")
    elif type not in VALID_ORDER_TYPES:
        errors.append(f"type must be one of: {', '.join(VALID_ORDER_TYPES)}")

    if _is_blank(quantity):
        errors.append("quantity is required")
    elif not is_positive_number(quantity):
        errors.append("quantity must be a positive number")

    if type in TYPES_REQUIRING_PRICE:
        if _is_blank(price):
            errors.append(f"price is required for {type} orders")
        elif not is_positive_number(price):
            errors.append("price must be a positive number")

    if type in TYPES_REQUIRING_STOP_PRICE:
        if _is_blank(stop_price):
            errors.append(f"stopPrice is required for {type} orders")
        elif not is_positive_number(stop_price):
            errors.append("stopPrice must be a positive number")

    return ValidationResult(valid=not errors, errors=errors)


def validate_oco_order(
    symbol: Optional[str],
    side: Optional[str],
    quantity: Any,
    price: Any,
    stop_price: Any,
    stop_limit_price: Any,
) -> ValidationResult:
    """OCO orders fail fast on the first invalid field."""
    if not symbol or not OCO_SYMBOL_PATTERN.fullmatch(symbol):
        return ValidationResult(False, ["Invalid symbol. Must be uppercase alphanumeric"])
    if side not in VALID_SIDES:
        return ValidationResult(False, ["Invalid side. Must be BUY or SELL"])
    checks = (
        (quantity, "Invalid quantity. Must be a positive number"),
        (price, "Invalid price. Must be a positive number"),
        (stop_price, "Invalid stop price. Must be a positive number"),
        (stop_limit_price, "Invalid stop limit price. Must be a positive number"),
    )
    for value, message in checks:
        if not is_positive_number(value):
            return ValidationResult(False, [message])
    return ValidationResult(True)


def adjust_to_step(value: str, step: str) -> str:
    """Round ``value`` down to a multiple of ``step`` (LOT_SIZE / PRICE_FILTER).

    The result keeps as many decimals as ``step`` has significant ones,
    e.g. ``adjust_to_step("1.23456", "0.00100000") == "1.234"``.
    """
    number = _to_decimal(value)
    increment = _to_decimal(step)
    if number is None or increment is None:
        raise ValueError(f"Cannot adjust {value!r} to step {step!r}")
    if increment == 0:
        return value

    exponent = increment.normalize().as_tuple().exponent
    places = -exponent if isinstance(exponent, int) and exponent < 0 else 0
    adjusted = (number / increment).to_integral_value(rounding=ROUND_FLOOR) * increment
    return f"{adjusted:.{places}f}"


def validate_min_notional(price: Any, quantity: Any, min_notional: Any) -> ValidationResult:
    price_d = _to_decimal(price)
    quantity_d = _to_decimal(quantity)
    minimum = _to_decimal(min_notional)
    if price_d is None or quantity_d is None or minimum is None:
        return ValidationResult(False, ["price, quantity and minNotional must be numbers"])

    total = price_d * quantity_d
    if total < minimum:
        return ValidationResult(
            False,
            [f"Order total ({total:.2f}) is below minimum notional value ({minimum.normalize():f})"],
        )
    return ValidationResult(True)


def validate_api_key_format(key: str) -> bool:
    return bool(API_KEY_PATTERN.fullmatch(key or ""))


def sanitize_input(value: str) -> str:
    """Escape HTML special characters, including ``/``."""
    return html.escape(value, quote=True).replace("/", "&#x2F;")
