from decimal import Decimal

from ..exceptions import ValidationError
from ..money import (RATE_INTEGER_DIGITS, RATE_PLACES, ZERO, check_magnitude,
                     has_excess_precision, to_decimal, to_minor_units)


# ------------------------------------
# Double-entry balance check
# ------------------------------------
def _line_amounts(line):
    # (debit, credit) pair or a JournalEntryLine (entry currency amounts)
    if isinstance(line, (tuple, list)):
        debit, credit = line
        return to_decimal(debit, "debit"), to_decimal(credit, "credit")
    return line.debit_base, line.credit_base


def validate_balance(entry_or_lines, places=None):
    """
    True iff debits == credits in integer minor units.

    Accepts a JournalEntry (its lines and currency are used) or a list of
    lines / (debit, credit) pairs together with the minor-unit `places`.
    Fewer than two lines is never balanced, even when both sums are zero.
    """
    if hasattr(entry_or_lines, "lines"):
        entry = entry_or_lines
        lines = list(entry.lines.all())
        if places is None:
            places = entry.currency.decimal_places
    else:
        lines = list(entry_or_lines)
    if places is None:
        places = 2

    if len(lines) < 2:
        return False

    total_debit = total_credit = 0
    for line in lines:
        debit, credit = _line_amounts(line)
        total_debit += to_minor_units(debit, places)
        total_credit += to_minor_units(credit, places)
    return total_debit == total_credit


# ------------------------------------
# Line rules (checked at add/update time)
# ------------------------------------
def clean_line_amounts(debit, credit, places):
    """
    Normalize debit/credit to Decimal and enforce the line rules:
    non-negative, exactly one of the pair non-zero, no digits below the
    currency's minor unit. Returns (debit, credit).
    """
    debit = to_decimal(debit, "debit_amount")
    credit = to_decimal(credit, "credit_amount")
    check_magnitude(debit, "debit_amount")
    check_magnitude(credit, "credit_amount")

    if debit < ZERO or credit < ZERO:
        raise ValidationError(
            "Debit and credit amounts must be non-negative",
            code="negative_amount",
        )
    if debit > ZERO and credit > ZERO:
        raise ValidationError(
            "A line cannot carry both a debit and a credit amount",
            code="both_sides",
        )
    if debit == ZERO and credit == ZERO:
        raise ValidationError(
            "A line must carry either a debit or a credit amount",
            code="zero_line",
        )
    for field, amount in (("debit_amount", debit), ("credit_amount", credit)):
        if has_excess_precision(amount, places):
            raise ValidationError(
                f"{field} {amount} has more than {places} decimal places",
                code="excess_precision",
            )
    return debit, credit


def clean_exchange_rate(rate, line_currency, entry_currency):
    """Rate converting line currency → entry currency. Must be > 0 and
    exactly 1 when both currencies are the same."""
    rate = to_decimal(rate if rate not in (None, "") else Decimal("1"),
                      "exchange_rate")
    if rate <= ZERO:
        raise ValidationError("exchange_rate must be positive",
                              code="invalid_exchange_rate")
    check_magnitude(rate, "exchange_rate", RATE_INTEGER_DIGITS)
    if has_excess_precision(rate, RATE_PLACES):
        raise ValidationError(
            f"exchange_rate {rate} has more than {RATE_PLACES} decimal places",
            code="excess_precision",
        )
    if line_currency.pk == entry_currency.pk and rate != Decimal("1"):
        raise ValidationError(
            "exchange_rate must be 1 when the line currency equals the entry currency",
            code="invalid_exchange_rate",
        )
    return rate
