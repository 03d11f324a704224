"""
Read-side queries over the ledger.

Nothing here takes locks: reads see committed postings only, and a
posting is committed all at once.
"""
from dataclasses import dataclass, field
from decimal import Decimal

from django.db.models import Count, Sum

from .. import conf
from ..choices import EntryStatus
from ..exceptions import ValidationError
from ..models import Account, JournalEntry, JournalEntryLine
from ..money import ZERO, signed_delta, to_minor_units
from .journal import get_entry
from .periods import get_period, to_date

__all__ = [
    "get_entry", "find_by_entry_number", "list_by_status", "list_by_date_range",
    "list_by_fiscal_period", "unbalanced_entries", "trial_balance",
    "draft_aging", "AGING_BUCKETS",
]


def _entries(company):
    return JournalEntry.objects.for_company(company).select_related(
        "currency", "fiscal_period"
    )


def find_by_entry_number(company, entry_number):
    return _entries(company).filter(entry_number=entry_number).first()


def list_by_status(company, status):
    if status not in EntryStatus.values:
        raise ValidationError(
            f"Invalid entry status {status!r}; expected one of: "
            f"{', '.join(EntryStatus.values)}",
            code="invalid_status",
        )
    return _entries(company).filter(status=status).order_by("entry_date", "entry_number")


def list_by_date_range(company, start_date, end_date):
    start_date = to_date(start_date, "start_date")
    end_date = to_date(end_date, "end_date")
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date",
                              code="invalid_range")
    return (
        _entries(company)
        .filter(entry_date__gte=start_date, entry_date__lte=end_date)
        .order_by("entry_date", "entry_number")
    )


def list_by_fiscal_period(company, period_id):
    period = get_period(company, period_id)
    return _entries(company).filter(fiscal_period=period).order_by(
        "entry_date", "entry_number")


def unbalanced_entries(company):
    """
    Entries whose debits and credits disagree (in minor units of the entry
    currency), by cached totals or by their lines, and entries with fewer
    than two lines.
    """
    qs = _entries(company).annotate(
        line_count=Count("lines"),
        line_debit=Sum("lines__debit_base"),
        line_credit=Sum("lines__credit_base"),
    ).order_by("entry_date", "entry_number")

    found = []
    for entry in qs:
        places = entry.currency.decimal_places
        cached_off = (to_minor_units(entry.total_debit, places)
                      != to_minor_units(entry.total_credit, places))
        lines_off = (to_minor_units(entry.line_debit or ZERO, places)
                     != to_minor_units(entry.line_credit or ZERO, places))
        if entry.line_count < 2 or cached_off or lines_off:
            found.append(entry)
    return found


# ---------- Trial balance ----------
@dataclass
class TrialBalanceRow:
    account: Account
    debit: Decimal
    credit: Decimal
    # net on the account's normal side (positive = normal position)
    balance: Decimal


@dataclass
class TrialBalance:
    rows: list = field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO

    @property
    def is_balanced(self):
        return self.total_debit == self.total_credit


def trial_balance(company, period=None):
    """
    Posted activity per account (whole history, or one fiscal period).

    Lines of reversed entries count too: their mirror entries cancel them.
    """
    lines = JournalEntryLine.objects.for_company(company).filter(
        journal_entry__status__in=[EntryStatus.POSTED, EntryStatus.REVERSED]
    )
    if period is not None:
        lines = lines.filter(journal_entry__fiscal_period=get_period(
            company, getattr(period, "pk", period)))

    sums = {
        row["account"]: row
        for row in lines.values("account").annotate(
            debit=Sum("debit_base"), credit=Sum("credit_base"))
    }
    accounts = Account.objects.for_company(company).filter(
        pk__in=sums).order_by("account_number")

    report = TrialBalance()
    for account in accounts:
        debit = sums[account.pk]["debit"] or ZERO
        credit = sums[account.pk]["credit"] or ZERO
        report.rows.append(TrialBalanceRow(
            account=account,
            debit=debit,
            credit=credit,
            balance=signed_delta(account.type, debit, credit),
        ))
        report.total_debit += debit
        report.total_credit += credit
    return report


# ---------- Draft aging ----------
# (label, max age in days); the last bucket is open ended
AGING_BUCKETS = (("0-30", 30), ("31-60", 60), ("61-90", 90), ("90+", None))


def draft_aging(company, as_of=None, clock=None):
    """Draft entries grouped by age (days since entry_date) as of a date."""
    as_of = to_date(as_of, "as_of") if as_of else conf.today(clock)
    buckets = {label: [] for label, _ in AGING_BUCKETS}
    drafts = _entries(company).filter(status=EntryStatus.DRAFT).order_by(
        "entry_date", "entry_number")
    for entry in drafts:
        age = max((as_of - entry.entry_date).days, 0)
        for label, limit in AGING_BUCKETS:
            if limit is None or age <= limit:
                buckets[label].append(entry)
                break
    return buckets
