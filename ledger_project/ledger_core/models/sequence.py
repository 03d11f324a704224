from django.db import models

from .company import Company


# ---------- CompanySequence (per-company counters) ----------
class CompanySequence(models.Model):
    """
    Per-company counters for sequential identifiers
    (journal entry numbers: JE-000001, JE-000002 ...).

    Rows are locked with select_for_update while a value is handed out,
    so two concurrent entries never get the same number.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="sequences",
    )
    name = models.CharField(max_length=100)  # "journal_entry_number"
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                name="uq_company_sequence_name",
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.name}={self.next_value}"
