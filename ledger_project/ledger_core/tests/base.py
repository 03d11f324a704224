import datetime
from decimal import Decimal

from django.utils import timezone

from ledger_core.models import Company, Currency
from ledger_core.services import create_account, create_journal_entry, open_period

# Fixed "now" so entry dates, posting stamps and aging are deterministic
FIXED_NOW = timezone.make_aware(datetime.datetime(2025, 7, 15, 12, 0))


def fixed_clock():
    return FIXED_NOW


def make_currencies():
    usd, _ = Currency.objects.get_or_create(
        code="USD", defaults={"name": "US Dollar", "symbol": "$", "decimal_places": 2})
    eur, _ = Currency.objects.get_or_create(
        code="EUR", defaults={"name": "Euro", "symbol": "€", "decimal_places": 2})
    jpy, _ = Currency.objects.get_or_create(
        code="JPY", defaults={"name": "Japanese Yen", "symbol": "¥", "decimal_places": 0})
    return usd, eur, jpy


class LedgerTestMixin:
    """
    One company with a July 2025 period and a minimal chart:
    cash (asset), payable (liability), revenue, rent (expense).
    """

    def setUp(self):
        super().setUp()
        self.usd, self.eur, self.jpy = make_currencies()
        self.company = Company.objects.create(name="Test Co", default_currency=self.usd)
        self.july = open_period(self.company, {
            "start_date": "2025-07-01", "end_date": "2025-07-31",
        })
        self.cash = create_account(self.company, {
            "account_number": "1110", "name": "Cash", "type": "asset"})
        self.payable = create_account(self.company, {
            "account_number": "2110", "name": "Accounts Payable", "type": "liability"})
        self.revenue = create_account(self.company, {
            "account_number": "4100", "name": "Sales Revenue", "type": "revenue"})
        self.rent = create_account(self.company, {
            "account_number": "5220", "name": "Rent Expense", "type": "expense"})

    def make_entry(self, lines=(), **data):
        data.setdefault("entry_date", "2025-07-10")
        data["lines"] = list(lines)
        return create_journal_entry(self.company, data, clock=fixed_clock)

    def make_sale(self, amount="100.00", **data):
        """Draft: debit cash / credit revenue for `amount`."""
        return self.make_entry([
            {"account": self.cash.pk, "debit_amount": Decimal(amount)},
            {"account": self.revenue.pk, "credit_amount": Decimal(amount)},
        ], **data)

    def refresh(self, *objs):
        for obj in objs:
            obj.refresh_from_db()
