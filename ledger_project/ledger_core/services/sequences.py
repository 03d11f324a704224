import logging

from django.db import IntegrityError, transaction

from .. import conf
from ..models import CompanySequence, JournalEntry

logger = logging.getLogger(__name__)

JOURNAL_ENTRY_SEQUENCE = "journal_entry_number"


def next_company_sequence(company, name):
    """
    Allocate the next value of a company/name counter.
    Uses select_for_update so concurrent callers never share a value.
    """
    with transaction.atomic():
        try:
            seq = CompanySequence.objects.select_for_update().get(
                company=company, name=name
            )
        except CompanySequence.DoesNotExist:
            try:
                # savepoint: losing the creation race must not break the caller
                with transaction.atomic():
                    seq = CompanySequence.objects.create(
                        company=company, name=name, next_value=1
                    )
            except IntegrityError:
                seq = CompanySequence.objects.select_for_update().get(
                    company=company, name=name
                )

        value = seq.next_value
        seq.next_value = value + 1
        seq.save(update_fields=["next_value", "updated_at"])
        return value


def format_entry_number(value):
    prefix = conf.get("LEDGER_ENTRY_NUMBER_PREFIX")
    width = conf.get("LEDGER_ENTRY_NUMBER_WIDTH")
    return f"{prefix}-{value:0{width}d}"  # JE-000123


def next_entry_number(company):
    """Next JE-number not already taken (explicit numbers may have used it)."""
    while True:
        number = format_entry_number(
            next_company_sequence(company, JOURNAL_ENTRY_SEQUENCE)
        )
        if not JournalEntry.objects.for_company(company).filter(
            entry_number=number
        ).exists():
            return number
        logger.debug("entry number %s already used in company %s, skipping",
                     number, company.pk)
