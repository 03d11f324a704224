import logging

from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .choices import EntryStatus
from .events import fiscal_period_closed, journal_entry_posted, journal_entry_reversed
from .exceptions import ConflictError, DomainError
from .models import Account, FiscalPeriod, JournalEntry, JournalEntryLine

logger = logging.getLogger(__name__)

"""Block deletion of built-in accounts and of accounts used in journal lines."""


# pre_delete signal auto-fires just before Django deletes a model instance
# (admin bulk delete, queryset.delete(), cascades), so the guards hold
# even when services.accounts.delete_account is bypassed
@receiver(pre_delete, sender=Account)
def prevent_delete_used_account(sender, instance, **kwargs):
    if instance.is_system:
        raise DomainError("Cannot delete system account")
    if JournalEntryLine.objects.filter(account=instance).exists():
        raise DomainError("Cannot delete account used in journal lines.")


"""Block deletion if period is closed or has posted journals."""


@receiver(pre_delete, sender=FiscalPeriod)
def prevent_delete_period_with_posted_journals(sender, instance, **kwargs):
    if instance.is_closed:
        raise DomainError("Cannot delete a closed fiscal period.")
    if JournalEntry.objects.filter(
        fiscal_period=instance,
        status__in=[EntryStatus.POSTED, EntryStatus.REVERSED],
    ).exists():
        raise DomainError("Cannot delete a period with posted journal entries.")


"""Posted and reversed entries are history: only drafts can be deleted."""


@receiver(pre_delete, sender=JournalEntry)
def prevent_delete_posted_journal(sender, instance, **kwargs):
    if instance.status != EntryStatus.DRAFT:
        raise ConflictError.state(
            f"Journal entry {instance.entry_number}", instance.status, EntryStatus.DRAFT
        )


"""Ledger effects (sent after commit), logged for the audit trail."""


@receiver(journal_entry_posted)
def log_journal_entry_posted(sender, effect, **kwargs):
    logger.info(
        "JournalEntryPosted company=%s entry=%s debit=%s credit=%s accounts=%d",
        effect.company_id, effect.entry_number, effect.total_debit,
        effect.total_credit, len(effect.deltas),
    )


@receiver(journal_entry_reversed)
def log_journal_entry_reversed(sender, effect, **kwargs):
    logger.info(
        "JournalEntryReversed company=%s entry=%s reversal=%s date=%s",
        effect.company_id, effect.entry_number, effect.reversal_entry_number,
        effect.reversal_date,
    )


@receiver(fiscal_period_closed)
def log_fiscal_period_closed(sender, effect, **kwargs):
    logger.info(
        "FiscalPeriodClosed company=%s period=%s outstanding_drafts=%d",
        effect.company_id, effect.name, len(effect.outstanding_draft_ids),
    )
