"""
Fixed-point helpers for monetary amounts.

Amounts are always Decimal. Floats are refused: 0.1 + 0.2 != 0.3 is
exactly the kind of drift a ledger cannot afford.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .choices import NormalBalance, normal_balance_side
from .exceptions import ValidationError

ZERO = Decimal("0")

# Digits allowed before the point by the storage columns:
# money is DecimalField(max_digits=20, decimal_places=4), the exchange
# rate DecimalField(max_digits=18, decimal_places=6).
AMOUNT_INTEGER_DIGITS = 16
RATE_INTEGER_DIGITS = 12
RATE_PLACES = 6


def to_decimal(value, field="amount"):
    if value is None or value == "":
        return ZERO
    if isinstance(value, float):
        raise ValidationError(
            f"{field} must be a Decimal, int or numeric string, not float",
            code="float_amount",
        )
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric", code="invalid_amount")
    try:
        amount = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} is not a number: {value!r}", code="invalid_amount")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite", code="invalid_amount")
    return amount


def minor_unit(places):
    # 2 → Decimal("0.01"), 0 → Decimal("1")
    return Decimal(1).scaleb(-places)


def check_magnitude(amount, field="amount", integer_digits=AMOUNT_INTEGER_DIGITS):
    """Reject amounts with more digits before the point than the column holds."""
    # adjusted() is the exponent of the leading digit: 1234.5 → 3
    if amount != ZERO and amount.adjusted() >= integer_digits:
        raise ValidationError(
            f"{field} {amount} exceeds {integer_digits} digits before the decimal point",
            code="amount_too_large",
        )
    return amount


def quantize(amount, places):
    amount = to_decimal(amount)
    try:
        return amount.quantize(minor_unit(places), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # result needs more digits than the decimal context carries
        raise ValidationError(f"{amount} is too large", code="amount_too_large")


def to_minor_units(amount, places):
    """Integer count of minor units (cents for USD), rounded half-up."""
    return int(quantize(amount, places).scaleb(places))


def has_excess_precision(amount, places):
    # True if `amount` carries digits below the currency's minor unit
    return amount != quantize(amount, places)


def signed_delta(account_type, debit, credit):
    """
    Balance change a line causes on an account of `account_type`.

    Positive when the line lands on the account's normal side
    (a debit on an asset, a credit on revenue), negative otherwise.
    """
    debit = to_decimal(debit, "debit")
    credit = to_decimal(credit, "credit")
    if normal_balance_side(account_type) == NormalBalance.DEBIT:
        return debit - credit
    return credit - debit
