"""
Outbound notifications produced by the ledger.

Posting, reversing and closing return the effects they caused alongside
their result. The effects are only sent (as Django signals) once the
surrounding transaction has committed: a rolled back posting announces
nothing.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Receivers get `effect=<dataclass instance>` as keyword argument
journal_entry_posted = Signal()
journal_entry_reversed = Signal()
fiscal_period_closed = Signal()


@dataclass(frozen=True)
class JournalEntryPosted:
    company_id: int
    entry_id: int
    entry_number: str
    entry_date: date
    fiscal_period_id: int
    total_debit: Decimal
    total_credit: Decimal
    # account id → signed balance change applied by this posting
    deltas: dict
    posted_by_id: Optional[int] = None


@dataclass(frozen=True)
class JournalEntryReversed:
    company_id: int
    entry_id: int
    entry_number: str
    reversal_entry_id: int
    reversal_entry_number: str
    reversal_date: date


@dataclass(frozen=True)
class FiscalPeriodClosed:
    company_id: int
    period_id: int
    name: str
    closed_at: datetime
    # ids of draft entries left behind in the period
    outstanding_draft_ids: tuple = ()
    closed_by_id: Optional[int] = None


_SIGNALS = {
    JournalEntryPosted: journal_entry_posted,
    JournalEntryReversed: journal_entry_reversed,
    FiscalPeriodClosed: fiscal_period_closed,
}


def signal_for(effect):
    return _SIGNALS[type(effect)]


def send(effects):
    for effect in effects:
        signal_for(effect).send(sender=type(effect), effect=effect)


def emit_after_commit(effects):
    """Queue `effects` to be sent once the current transaction commits."""
    effects = list(effects)
    if not effects:
        return
    transaction.on_commit(lambda: send(effects))
    logger.debug("queued %d ledger effect(s) for commit", len(effects))
