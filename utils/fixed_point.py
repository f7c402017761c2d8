"""
Fixed-point conversion between human amounts and integer base units.

- Amount: ``Decimal`` quantity meaningful to humans (``1.5`` tokens).
- Base units: arbitrary-precision ``int`` (``amount * 10**decimals``).
- Hex quantity: ``0x``-prefixed lowercase hex of the base units, as sent on the wire.

Decimal input never passes through a binary float: floats are read through
their shortest text form, and all scaling is done on integers. Results do not
depend on the active ``decimal`` context precision.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Union

from clients.evm.exceptions import InvalidAmount, MalformedHex, PrecisionOverflow


AmountLike = Union[Decimal, int, str, float]

_HEX_RE = re.compile(r"0x[0-9a-fA-F]+")

# ERC-20 decimals is a uint8.
MAX_DECIMALS = 255
# Bound on significant digits and on the decimal exponent of an amount.
MAX_AMOUNT_DIGITS = 1000


def _check_decimals(decimals: int) -> None:
    if not isinstance(decimals, int) or isinstance(decimals, bool):
        raise InvalidAmount(f"decimals must be int, got {type(decimals).__name__}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise InvalidAmount(f"decimals must be in 0..{MAX_DECIMALS}, got {decimals}")


def _check_base_units(value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidAmount(f"base units must be int, got {type(value).__name__}")


def to_decimal(amount: AmountLike) -> Decimal:
    """Read an amount as an exact ``Decimal``.

    Floats go through ``str()`` so ``0.1`` becomes ``Decimal('0.1')``
    rather than its binary expansion.
    """
    if isinstance(amount, bool):
        raise InvalidAmount("amount must be a number, got bool")
    if isinstance(amount, Decimal):
        x = amount
    elif isinstance(amount, (int, str)):
        try:
            x = Decimal(amount.strip() if isinstance(amount, str) else amount)
        except InvalidOperation:
            raise InvalidAmount(f"amount is not a decimal number: {amount!r}") from None
    elif isinstance(amount, float):
        x = Decimal(str(amount))
    else:
        raise InvalidAmount(f"unsupported amount type: {type(amount).__name__}")

    if x.is_nan() or x.is_infinite():
        raise InvalidAmount(f"amount must be finite, got {x}")
    if x.is_zero():
        return Decimal(0)
    if len(x.as_tuple().digits) > MAX_AMOUNT_DIGITS or abs(x.adjusted()) > MAX_AMOUNT_DIGITS:
        raise InvalidAmount(f"amount exceeds {MAX_AMOUNT_DIGITS} digits of magnitude or precision")
    return x


def _split(x: Decimal) -> tuple[int, str, str]:
    """Split a finite Decimal into (sign, whole digits, significant fraction digits)."""
    sign, digits, exponent = x.as_tuple()
    text = "".join(str(d) for d in digits) or "0"

    if exponent >= 0:
        return sign, text + "0" * exponent, ""

    places = -exponent
    if len(text) <= places:
        whole, fraction = "0", text.rjust(places, "0")
    else:
        whole, fraction = text[:-places], text[-places:]
    return sign, whole, fraction.rstrip("0")


def to_base_units(amount: AmountLike, decimals: int) -> int:
    """Scale a human amount to integer base units.

    Raises ``PrecisionOverflow`` when the amount carries more significant
    fractional digits than ``decimals``; extra precision is never truncated.

    >>> to_base_units(Decimal("1.5"), 18)
    1500000000000000000
    """
    _check_decimals(decimals)
    x = to_decimal(amount)
    sign, whole, fraction = _split(x)

    if len(fraction) > decimals:
        raise PrecisionOverflow(x, len(fraction), decimals)

    scaled_whole = int(whole) * 10 ** decimals
    scaled_fraction = int(fraction) * 10 ** (decimals - len(fraction)) if fraction else 0
    magnitude = scaled_whole + scaled_fraction

    return -magnitude if sign else magnitude


def from_base_units(value: int, decimals: int) -> Decimal:
    """Exact quotient ``value / 10**decimals`` as a Decimal.

    The fraction is rendered with ``decimals`` digits and right-trimmed, then
    parsed back from text, so nothing is rounded by the decimal context.

    >>> from_base_units(1500000000000000000, 18)
    Decimal('1.5')
    """
    _check_base_units(value)
    _check_decimals(decimals)

    whole, remainder = divmod(abs(value), 10 ** decimals)
    text = str(whole)
    if decimals and remainder:
        text += "." + str(remainder).rjust(decimals, "0").rstrip("0")
    if value < 0:
        text = "-" + text
    return Decimal(text)


def to_hex(value: int) -> str:
    """Encode non-negative base units as a minimal ``0x`` hex quantity.

    >>> to_hex(0)
    '0x0'
    """
    _check_base_units(value)
    if value < 0:
        raise InvalidAmount(f"hex quantities must be >= 0, got {value}")
    return hex(value)


def from_hex(value: str) -> int:
    """Decode a ``0x`` hex quantity back to base units."""
    if not isinstance(value, str) or not _HEX_RE.fullmatch(value):
        raise MalformedHex(value)
    return int(value[2:], 16)


def amount_to_hex(amount: AmountLike, decimals: int) -> str:
    """Human amount straight to the wire hex quantity."""
    return to_hex(to_base_units(amount, decimals))


def format_base_units(value: int, decimals: int) -> str:
    """Render base units with thousands grouping and exactly ``decimals`` fractional digits.

    >>> format_base_units(123456789 * 10**15, 18)
    '123,456.789000000000000000'
    """
    _check_base_units(value)
    _check_decimals(decimals)

    whole, remainder = divmod(abs(value), 10 ** decimals)
    text = f"{whole:,}"
    if decimals:
        text += "." + str(remainder).rjust(decimals, "0")
    return "-" + text if value < 0 else text


def to_plain_string(amount: AmountLike) -> str:
    """Render an amount without exponent notation and without trailing fractional zeros.

    >>> to_plain_string(Decimal("1E-7"))
    '0.0000001'
    """
    x = to_decimal(amount)
    sign, whole, fraction = _split(x)
    whole = whole.lstrip("0") or "0"
    text = f"{whole}.{fraction}" if fraction else whole
    if sign and text != "0":
        text = "-" + text
    return text


__all__ = [
    "AmountLike",
    "to_decimal",
    "to_base_units",
    "from_base_units",
    "to_hex",
    "from_hex",
    "amount_to_hex",
    "format_base_units",
    "to_plain_string",
    "MAX_DECIMALS",
    "MAX_AMOUNT_DIGITS",
]
