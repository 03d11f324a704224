from django.conf import settings
from django.core.exceptions import ValidationError  # Built-in way to raise validation errors
from django.db import models        # ORM base classes to define database tables as Python classes

from ..choices import PeriodStatus, PeriodType
from ..managers import TenantManager
from .company import Company


# ---------- FiscalPeriod (accounting period) ----------
class FiscalPeriod(models.Model): # Each period is a time bucket during which financial transactions are grouped

    # Every company has its own independent calendar of periods
    company = models.ForeignKey(Company,
                                # Prevent accidental deletion of periods tied to journal entries
                                on_delete=models.PROTECT,
                                related_name="fiscal_periods",
                                )
    """
        Tenant isolation:
        "Company A" can close July while "Company B" is still open.
    """

    # Human-readable label for the period
    name = models.CharField(max_length=50)  # Example: "2025-Q3" or "FY2025-01"
    period_type = models.CharField(
        max_length=10, choices=PeriodType.choices, default=PeriodType.MONTH
    )
    fiscal_year = models.PositiveIntegerField()

    # Define the exact date range of the accounting period (inclusive)
    # Sibling periods of one company never overlap
    start_date = models.DateField()
    end_date = models.DateField()

    # Indicate whether the books for this period are closed
    status = models.CharField(
        max_length=10, choices=PeriodStatus.choices, default=PeriodStatus.OPEN
    )
    """
        When status=closed:
            No new postings allowed.
            Prevents backdating transactions that could corrupt finalized reports.
    """
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:

        # for filtering open periods and resolving a date to its period
        indexes = [
                    models.Index(fields=["company", "start_date"], name="fp_company_start_idx"),
                    models.Index(fields=["company", "status"], name="fp_company_status_idx"),
                ]

        # Prevent duplicate period names inside the same company
        constraints = [
          models.UniqueConstraint(fields=["company", "name"],
                                  name="uq_company_period_name"),
          models.CheckConstraint(
              condition=models.Q(start_date__lte=models.F("end_date")),
              name="fp_start_before_end",
          ),
      ]

        # Default query ordering: periods are returned sorted by company, then chronologically
        ordering = ("company", "start_date") # no need to sort manually

    def __str__(self):
        return f"{self.company.slug} {self.name}" # Example: "acme 2025-07".

    @property
    def is_open(self):
        return self.status == PeriodStatus.OPEN

    @property
    def is_closed(self):
        return self.status == PeriodStatus.CLOSED

    def contains(self, date):
        return self.start_date <= date <= self.end_date

    def clean(self):
        if self.start_date > self.end_date:
            raise ValidationError("start_date must not be after end_date")
