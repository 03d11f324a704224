from decimal import Decimal

from django.conf import settings
from django.db import models

from ..choices import EntryStatus
from ..exceptions import ConflictError
from ..managers import TenantManager
from .account import Account
from .company import Company
from .currency import Currency
from .period import FiscalPeriod

MONEY = dict(max_digits=20, decimal_places=4, default=Decimal("0"))


# ---------- JournalEntry (Header) & JournalEntryLine ----------
class JournalEntry(models.Model):  # Represents one accounting transaction
    # Multi-tenant: every entry belongs to a company
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="journal_entries"
    )
    # Sequential, human readable → "JE-000123" (unique per company)
    entry_number = models.CharField(max_length=32)
    entry_date = models.DateField()
    reference = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")

    # Accounting period the entry posts into (for reporting, closing)
    fiscal_period = models.ForeignKey(
        FiscalPeriod,
        on_delete=models.PROTECT,  # Prevent breaking historical ledger
        related_name="journal_entries",
    )
    status = models.CharField(
        max_length=10,
        choices=EntryStatus.choices,
        default=EntryStatus.DRAFT,
    )

    # Cached sums of the lines (entry currency)
    # Locked to the computed sums at posting time
    total_debit = models.DecimalField(**MONEY)
    total_credit = models.DecimalField(**MONEY)
    currency = models.ForeignKey(
        Currency, on_delete=models.PROTECT, related_name="+"
    )
    tags = models.JSONField(default=list, blank=True)

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    # Set on the original when it is reversed: points at the mirror entry.
    # From the mirror, `entry.reversal_of` leads back to the original
    reversal_entry = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversal_of",
    )

    # Track user who created it
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        verbose_name_plural = "journal entries"
        # Speed up listing & filtering
        # (e.g. show all posted entries this month)
        indexes = [
            models.Index(fields=["company", "entry_date"], name="je_company_date_idx"),
            models.Index(fields=["company", "status"], name="je_company_status_idx"),
            models.Index(fields=["company", "fiscal_period"], name="je_company_period_idx"),
        ]

        constraints = [
            # Within one company, each entry number must be unique
            # Across companies, duplicates are allowed
            models.UniqueConstraint(
                fields=["company", "entry_number"], name="uq_je_company_number"
            )
        ]

    def __str__(self):
        return f"{self.entry_number} {self.entry_date} [{self.status}]"

    @property
    def is_draft(self):
        return self.status == EntryStatus.DRAFT

    @property
    def is_posted(self):
        return self.status == EntryStatus.POSTED

    @property
    def is_reversed(self):
        return self.status == EntryStatus.REVERSED

    # Aggregate all debit and credit amounts across entry’s lines
    def compute_totals(self):
        """Return debits, credits sums for lines (entry currency)"""
        # Summed in Python: an out-of-range SQL sum can't be read back
        rows = list(self.lines.values_list("debit_base", "credit_base"))
        return (
            sum((debit for debit, _ in rows), Decimal("0")),
            sum((credit for _, credit in rows), Decimal("0")),
        )

    # True if double-entry rule holds: total debits = total credits
    # (in minor units, and with at least two lines)
    def is_balanced(self):
        # lazy import to avoid circular import at module load time
        from ..services.validation import validate_balance

        return validate_balance(self)

    def save(self, *args, **kwargs):
        if self.pk:  # Does this row already exist in DB?
            orig_status = (
                JournalEntry.objects.filter(pk=self.pk)
                .values_list("status", flat=True)
                .first()
            )
            # Posted/reversed entries never go back to draft
            if orig_status in (EntryStatus.POSTED, EntryStatus.REVERSED) \
                    and self.status == EntryStatus.DRAFT:
                raise ConflictError("Cannot unpost a posted journal entry")
        super().save(*args, **kwargs)


class JournalEntryLine(models.Model):  # Stores Lines ( credits / debits )
    """
    Each line belongs to a journal entry and to a GL account.
    Exactly one of debit_amount / credit_amount is non-zero.
    """

    # Belongs to company & a journal entry
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="+"
    )
    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    # Must point to one Account (can’t delete account if lines exist → PROTECT)
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="journal_lines"
    )

    description = models.CharField(max_length=400, blank=True, default="")
    reference = models.CharField(max_length=200, blank=True, default="")

    # Original currency amounts & the debit/credit split
    currency = models.ForeignKey(
        Currency, on_delete=models.PROTECT, related_name="+"
    )
    debit_amount = models.DecimalField(**MONEY)
    credit_amount = models.DecimalField(**MONEY)

    # Conversion rate from line currency to entry currency
    exchange_rate = models.DecimalField(
        max_digits=18, decimal_places=6, default=Decimal("1")
    )

    # Entry currency amounts (quantized to its minor units)
    # These are what balance checks and account deltas use
    debit_base = models.DecimalField(**MONEY)
    credit_base = models.DecimalField(**MONEY)

    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # For fast queries like “all lines for this account” /
        # “all lines in this JE.”
        indexes = [
            models.Index(fields=["company", "account"], name="jel_company_account_idx"),
            models.Index(fields=["company", "journal_entry"], name="jel_company_entry_idx"),
        ]

        # Enforce debits and credits must be non-negative
        # and at least one of them non-zero
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(debit_amount__gte=0) &
                    models.Q(credit_amount__gte=0)
                ),
                name="jel_non_negative_amounts",
            ),
            models.CheckConstraint(
                condition=~(models.Q(debit_amount=0) &
                            models.Q(credit_amount=0)),
                name="jel_debit_or_credit_nonzero",
            ),
            models.CheckConstraint(
                condition=~(models.Q(debit_amount__gt=0) &
                            models.Q(credit_amount__gt=0)),
                name="jel_not_both_debit_and_credit",
            ),
            models.CheckConstraint(
                condition=models.Q(exchange_rate__gt=0),
                name="jel_exchange_rate_positive",
            ),
        ]

    # Show entry, account, and amounts in admin dropdowns and debug logs
    def __str__(self):
        return (
            f"{self.journal_entry_id} | {self.account.account_number} "
            f"{self.account.name} | D:{self.debit_amount} C:{self.credit_amount}"
        )

    @property
    def is_debit(self):
        return self.debit_amount > 0

    @property
    def is_credit(self):
        return self.credit_amount > 0

    @property
    def amount(self):
        return self.debit_amount if self.is_debit else self.credit_amount

    def _parent_is_draft(self):
        status = (
            JournalEntry.objects.filter(pk=self.journal_entry_id)
            .values_list("status", flat=True)
            .first()
        )
        return status in (None, EntryStatus.DRAFT)

    # Lines freeze with their entry: no edits once it leaves draft
    def save(self, *args, **kwargs):
        if self.journal_entry_id and not self._parent_is_draft():
            raise ConflictError(
                "Cannot modify JournalEntryLine: parent JournalEntry is not draft."
            )
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        # Prevent deletion if parent journal is posted/reversed
        if self.journal_entry_id and not self._parent_is_draft():
            raise ConflictError(
                "Cannot delete JournalEntryLine: parent JournalEntry is not draft."
            )
        return super().delete(*args, **kwargs)
