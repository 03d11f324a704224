from django.db import models

from .exceptions import ValidationError


# Classify accounts into the 5 basic accounting types
class AccountType(models.TextChoices):
    ASSET = "asset", "Asset"
    LIABILITY = "liability", "Liability"
    EQUITY = "equity", "Equity"
    REVENUE = "revenue", "Revenue"
    EXPENSE = "expense", "Expense"

    # Balance sheet vs income statement split, used by reports
    @property
    def is_balance_sheet(self):
        return self in (AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY)

    @property
    def is_income_statement(self):
        return self in (AccountType.REVENUE, AccountType.EXPENSE)

    @property
    def financial_statement(self):
        return "Balance Sheet" if self.is_balance_sheet else "Income Statement"


# Whether the account normally increases on the debit side or credit side
class NormalBalance(models.TextChoices):
    DEBIT = "debit", "Debit"
    CREDIT = "credit", "Credit"


""" JournalEntry workflow:
        draft    → still editable
        posted   → finalized, balances applied
        reversed → cancelled by a mirror entry
"""
class EntryStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    POSTED = "posted", "Posted"
    REVERSED = "reversed", "Reversed"


class PeriodStatus(models.TextChoices):
    OPEN = "open", "Open"
    CLOSED = "closed", "Closed"


class PeriodType(models.TextChoices):
    MONTH = "month", "Month"
    QUARTER = "quarter", "Quarter"
    YEAR = "year", "Year"


# Fixed mapping, never configurable per company or account:
# Assets/Expenses → Debit, Liabilities/Equity/Revenue → Credit
_NORMAL_SIDES = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}


def parse_account_type(value):
    """Return the AccountType for `value` or raise ValidationError."""
    try:
        return AccountType(value)
    except ValueError:
        allowed = ", ".join(AccountType.values)
        raise ValidationError(
            f"Invalid account type {value!r}; expected one of: {allowed}",
            code="invalid_account_type",
        )


def normal_balance_side(account_type):
    return _NORMAL_SIDES[parse_account_type(account_type)]
