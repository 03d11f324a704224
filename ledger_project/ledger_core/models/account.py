from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ..choices import AccountType, normal_balance_side
from ..managers import SoftDeleteTenantManager
from .company import Company
from .currency import Currency


class Account(models.Model):
    """
    Actual ledger account entry in Chart of Accounts.
    - account_number should be unique per company
    - type: determines reporting (BS vs P&L) and the normal balance side
    - balance: running balance on the normal side, mutated only by posting
    """

    company = models.ForeignKey(  # Each account belongs to one company
        Company,  # All reports must filter by company_id to prevent data leaks
        on_delete=models.CASCADE,
        related_name="accounts",
    )
    # Every account has a number
    # which lets you sort/group accounts consistently in reports.
    account_number = models.CharField(
        max_length=32
    )
    name = models.CharField(
        max_length=200
    )  # Human-readable name → "Cash on Hand", "Accounts Payable".
    description = models.TextField(blank=True, default="")

    # Classify account into one of the 5 basic accounting types
    # Immutable once anything has been posted against the account
    type = models.CharField(
        max_length=10,
        choices=AccountType.choices,
    )
    # Free-form refinement → "cash", "bank", "accounts_receivable", "header"
    sub_type = models.CharField(max_length=50, blank=True, default="")

    currency = models.ForeignKey(
        Currency, on_delete=models.PROTECT, related_name="+"
    )

    # “soft deactivate” accounts (hide in UI, stop new postings)
    # without deleting history
    is_active = models.BooleanField(
        default=True
    )
    # built-in accounts from the default chart, can't be deleted
    is_system = models.BooleanField(default=False)
    # False → only system generated lines may hit this account
    allow_manual_entries = models.BooleanField(default=True)

    # Signed running balance. Positive means the account sits on its normal
    # side (debit for assets/expenses, credit for the others)
    balance = models.DecimalField(
        max_digits=20, decimal_places=4, default=Decimal("0")
    )

    # Optional hierarchy:
    # you can make sub-accounts
    # (e.g. 1100 Current Assets → 1110 Cash, 1120 Bank Account)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        # you can’t delete a parent if children exist
        related_name="children",
    )

    tags = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(
        auto_now_add=True
    )  # Track when the account was created.
    updated_at = models.DateTimeField(auto_now=True)
    # Soft delete marker. Account rows are never hard-deleted once used
    deleted_at = models.DateTimeField(null=True, blank=True)

    # Enforce tenant scoping
    objects = SoftDeleteTenantManager()

    class Meta:
        indexes = [  # Optimize queries
            # For reports grouped by type
            # (Trial Balance, P&L, Balance Sheet)
            models.Index(
                fields=["company", "type"], name="acct_company_type_idx"
            ),
            models.Index(
                fields=["company", "parent"], name="acct_company_parent_idx"
            ),  # Sub-accounts by parent account
        ]

        """ Each company defines its own chart of accounts.
               Numbers repeat across companies but must be unique within one.
               The constraint is also what makes auto-numbering safe
               under concurrent creation. """
        constraints = [
            models.UniqueConstraint(
                fields=["company", "account_number"],
                name="uq_company_account_number",
            )
        ]

    def __str__(self):
        # Example: "acme:1110 – Cash".
        return f"{self.company.slug}:{self.account_number} – {self.name}"

    @property
    def normal_balance(self):
        return normal_balance_side(self.type)

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def clean(self):
        """Enforce company consistency (multi-tenancy)"""
        # Check if parent account belongs to same company
        if self.parent and self.parent.company_id != self.company_id:
            raise ValidationError(
                "Parent & child accounts must belong to the same company"
            )
