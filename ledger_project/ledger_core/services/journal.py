import logging
from collections import defaultdict
from dataclasses import dataclass, field

from django.db import IntegrityError, transaction

from .. import conf
from ..choices import EntryStatus
from ..events import JournalEntryPosted, JournalEntryReversed, emit_after_commit
from ..exceptions import (ConflictError, DomainError, NotFoundError,
                          UnbalancedJournalError, ValidationError)
from ..models import Account, FiscalPeriod, JournalEntry, JournalEntryLine
from ..money import ZERO, check_magnitude, quantize, signed_delta
from .accounts import apply_delta, get_account, get_currency
from .periods import acting_user, get_period, get_period_for_date, to_date
from .sequences import next_entry_number
from .validation import clean_exchange_rate, clean_line_amounts, validate_balance

logger = logging.getLogger(__name__)

__all__ = [
    "PostingResult", "get_entry", "create_journal_entry", "update_journal_entry",
    "delete_journal_entry", "add_line", "update_line", "remove_line",
    "validate_balance", "post_journal_entry", "reverse_journal_entry",
]

ENTRY_FIELDS = {"entry_date", "reference", "description", "tags",
                "fiscal_period", "fiscal_period_id"}
LINE_FIELDS = {"account", "account_id", "description", "reference", "currency",
               "debit_amount", "credit_amount", "debit", "credit",
               "exchange_rate", "tags"}


@dataclass
class PostingResult:
    entry: JournalEntry
    # events to announce once the transaction commits (already queued)
    effects: list = field(default_factory=list)


# ----------------------------
# Lookups
# ----------------------------
def get_entry(company, entry_id, lock=False):
    qs = JournalEntry.objects.for_company(company)
    if lock:
        qs = qs.select_for_update()  # Lock the row to avoid race conditions
    try:
        return qs.get(pk=entry_id)
    except JournalEntry.DoesNotExist:
        raise NotFoundError(f"Journal entry {entry_id} not found")


def _locked_draft(company, entry_id):
    entry = get_entry(company, entry_id, lock=True)
    # Posted / reversed entries are frozen
    if not entry.is_draft:
        raise ConflictError.state(
            f"Journal entry {entry.entry_number}", entry.status, EntryStatus.DRAFT
        )
    return entry


def _get_line(company, line_id):
    try:
        return JournalEntryLine.objects.for_company(company).get(pk=line_id)
    except JournalEntryLine.DoesNotExist:
        raise NotFoundError(f"Journal entry line {line_id} not found")


def _reject_unknown(data, allowed, what):
    unknown = set(data) - allowed
    if unknown:
        raise ValidationError(
            f"Unknown {what} fields: {', '.join(sorted(unknown))}",
            code="unknown_field",
        )


def resolve_period(company, period_ref, entry_date):
    """Period given explicitly or the one covering entry_date; must be open
    and contain the date."""
    if period_ref not in (None, ""):
        period = get_period(company, getattr(period_ref, "pk", period_ref))
    else:
        period = get_period_for_date(company, entry_date)
        if period is None:
            raise NotFoundError(f"No fiscal period covers {entry_date}")
    if not period.is_open:
        raise DomainError(f"Fiscal period {period.name} is closed")
    if not period.contains(entry_date):
        raise ValidationError(
            f"Entry date {entry_date} is outside fiscal period {period.name} "
            f"({period.start_date}..{period.end_date})",
            code="date_outside_period",
        )
    return period


def _refresh_totals(entry):
    # Cached sums follow every line edit while in draft
    entry.total_debit, entry.total_credit = entry.compute_totals()
    check_magnitude(entry.total_debit, "total_debit")
    check_magnitude(entry.total_credit, "total_credit")
    entry.save(update_fields=["total_debit", "total_credit", "updated_at"])


# ----------------------------
# Journal entry (header) workflows
# ----------------------------
def create_journal_entry(company, data, user=None, clock=None):
    """
    Create a draft entry, optionally with its lines.

    entry_number is allocated from the company sequence unless given,
    entry_date defaults to today, the period defaults to the one
    covering entry_date.
    """
    _reject_unknown(data, ENTRY_FIELDS | {"entry_number", "currency", "lines"}, "entry")
    entry_date = (
        to_date(data["entry_date"], "entry_date")
        if data.get("entry_date") else conf.today(clock)
    )
    currency = get_currency(data.get("currency") or company.default_currency_id)

    with transaction.atomic():
        period = resolve_period(
            company, data.get("fiscal_period", data.get("fiscal_period_id")), entry_date
        )
        number = str(data.get("entry_number") or "").strip() or next_entry_number(company)
        try:
            with transaction.atomic():
                entry = JournalEntry.objects.create(
                    company=company,
                    entry_number=number,
                    entry_date=entry_date,
                    reference=data.get("reference") or "",
                    description=data.get("description") or "",
                    fiscal_period=period,
                    status=EntryStatus.DRAFT,
                    currency=currency,
                    tags=list(data.get("tags") or []),
                    created_by=acting_user(user),
                )
        except IntegrityError:
            raise ConflictError.duplicate("Journal entry", "entry_number", number)

        for line_data in data.get("lines") or []:
            _build_line(entry, line_data).save()
        _refresh_totals(entry)

    logger.info(
        "journal entry %s created in company %s (%d line(s))",
        entry.entry_number, company.pk, len(data.get("lines") or []),
    )
    return entry


def update_journal_entry(company, entry_id, data):
    """Edit a draft header. Moving it to another open period is how drafts
    stranded by a period close are rescued."""
    _reject_unknown(data, ENTRY_FIELDS, "entry")
    with transaction.atomic():
        entry = _locked_draft(company, entry_id)

        if "entry_date" in data:
            entry.entry_date = to_date(data["entry_date"], "entry_date")
        period_ref = data.get("fiscal_period", data.get("fiscal_period_id"))
        if "entry_date" in data or period_ref not in (None, ""):
            if period_ref in (None, "") and entry.fiscal_period.contains(entry.entry_date):
                period_ref = entry.fiscal_period_id
            # no period given and the date left the old one: follow the date
            entry.fiscal_period = resolve_period(company, period_ref, entry.entry_date)

        for attr in ("reference", "description"):
            if attr in data:
                setattr(entry, attr, data[attr] or "")
        if "tags" in data:
            entry.tags = list(data["tags"] or [])
        entry.save()

    logger.info("journal entry %s updated in company %s", entry.entry_number, company.pk)
    return entry


def delete_journal_entry(company, entry_id):
    with transaction.atomic():
        entry = _locked_draft(company, entry_id)
        number = entry.entry_number
        entry.delete()
    logger.info("draft journal entry %s deleted in company %s", number, company.pk)


# ----------------------------
# Line workflows (draft only)
# ----------------------------
def _build_line(entry, data, line=None):
    """
    Validate `data` and return an unsaved JournalEntryLine (or `line`
    updated in place).
    """
    _reject_unknown(data, LINE_FIELDS, "line")
    company = entry.company

    account_ref = data.get("account", data.get("account_id"))
    if account_ref in (None, ""):
        raise ValidationError("Line account is required", code="required")
    account = get_account(company, getattr(account_ref, "pk", account_ref))
    if not account.allow_manual_entries:
        raise DomainError(
            f"Account {account.account_number} does not allow manual entries"
        )

    line_currency = get_currency(data.get("currency") or entry.currency_id)
    debit, credit = clean_line_amounts(
        data.get("debit_amount", data.get("debit")),
        data.get("credit_amount", data.get("credit")),
        line_currency.decimal_places,
    )
    rate = clean_exchange_rate(data.get("exchange_rate"), line_currency, entry.currency)

    # Convert into entry currency and round to its minor unit
    places = entry.currency.decimal_places
    debit_base = check_magnitude(quantize(debit * rate, places), "debit_base")
    credit_base = check_magnitude(quantize(credit * rate, places), "credit_base")
    if debit_base == ZERO and credit_base == ZERO:
        raise ValidationError(
            f"Line amount rounds to zero in {entry.currency_id}", code="zero_line"
        )

    line = line or JournalEntryLine(company=company, journal_entry=entry)
    line.account = account
    line.currency = line_currency
    line.debit_amount = debit
    line.credit_amount = credit
    line.exchange_rate = rate
    line.debit_base = debit_base
    line.credit_base = credit_base
    line.description = data.get("description") or ""
    line.reference = data.get("reference") or ""
    line.tags = list(data.get("tags") or [])
    return line


def add_line(company, entry_id, data):
    with transaction.atomic():
        entry = _locked_draft(company, entry_id)
        line = _build_line(entry, data)
        line.save()
        _refresh_totals(entry)
    logger.debug("line %s added to journal entry %s", line.pk, entry.entry_number)
    return line


def update_line(company, line_id, data):
    """Replace a line's values. Fields not given keep their current value;
    giving one side of the debit/credit pair clears the other."""
    _reject_unknown(data, LINE_FIELDS, "line")
    with transaction.atomic():
        line = _get_line(company, line_id)
        entry = _locked_draft(company, line.journal_entry_id)
        merged = {
            "account": line.account_id,
            "currency": line.currency_id,
            "debit_amount": line.debit_amount,
            "credit_amount": line.credit_amount,
            "exchange_rate": line.exchange_rate,
            "description": line.description,
            "reference": line.reference,
            "tags": line.tags,
        }
        if {"debit_amount", "debit", "credit_amount", "credit"} & set(data):
            merged["debit_amount"] = merged["credit_amount"] = ZERO
        for key, value in data.items():
            key = {"account_id": "account", "debit": "debit_amount",
                   "credit": "credit_amount"}.get(key, key)
            merged[key] = value

        line = _build_line(entry, merged, line=line)
        line.save()
        _refresh_totals(entry)
    logger.debug("line %s of journal entry %s updated", line.pk, entry.entry_number)
    return line


def remove_line(company, line_id):
    with transaction.atomic():
        line = _get_line(company, line_id)
        entry = _locked_draft(company, line.journal_entry_id)
        line.delete()
        _refresh_totals(entry)
    logger.debug("line %s removed from journal entry %s", line_id, entry.entry_number)


# ----------------------------
# Posting
# ----------------------------
def _post(company, entry_id, user=None, clock=None):
    """
    Draft → Posted. Must run inside transaction.atomic(): every balance
    delta and the status flip commit together or not at all.
    Returns (entry, effects).
    """
    # Re-read status under lock: a concurrent post of the same entry
    # waits here and then fails the draft check
    entry = _locked_draft(company, entry_id)
    lines = list(entry.lines.select_for_update().order_by("pk"))

    if len(lines) < 2:
        raise UnbalancedJournalError(
            f"Journal entry {entry.entry_number} needs at least two lines",
            code="too_few_lines",
        )
    if not validate_balance(lines, entry.currency.decimal_places):
        total_debit = sum((l.debit_base for l in lines), ZERO)
        total_credit = sum((l.credit_base for l in lines), ZERO)
        logger.warning(
            "rejected posting of unbalanced entry %s: debit %s != credit %s",
            entry.entry_number, total_debit, total_credit,
        )
        raise UnbalancedJournalError(
            f"Journal entry {entry.entry_number} is unbalanced: "
            f"debits {total_debit} != credits {total_credit}",
            code="unbalanced",
        )

    # Lock the period so a concurrent close can't interleave
    period = FiscalPeriod.objects.select_for_update().get(pk=entry.fiscal_period_id)
    if not period.is_open:
        logger.warning(
            "rejected posting of %s into closed period %s",
            entry.entry_number, period.name,
        )
        raise DomainError(
            f"Cannot post {entry.entry_number}: fiscal period {period.name} is closed"
        )

    # Lock accounts in id order so two postings never deadlock
    account_ids = sorted({line.account_id for line in lines})
    accounts = {
        account.pk: account
        for account in Account.objects.for_company(company).alive()
        .select_for_update().filter(pk__in=account_ids).order_by("pk")
    }
    for account_id in account_ids:
        account = accounts.get(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")
        if not account.is_active:
            raise DomainError(
                f"Cannot post {entry.entry_number}: account "
                f"{account.account_number} is inactive"
            )

    deltas = defaultdict(lambda: ZERO)
    for line in lines:
        deltas[line.account_id] += signed_delta(
            accounts[line.account_id].type, line.debit_base, line.credit_base
        )
    for account_id in account_ids:
        apply_delta(company, account_id, deltas[account_id])

    entry.total_debit = sum((l.debit_base for l in lines), ZERO)
    entry.total_credit = sum((l.credit_base for l in lines), ZERO)
    entry.status = EntryStatus.POSTED
    entry.posted_at = conf.get_clock(clock)()
    entry.posted_by = acting_user(user)
    entry.save(update_fields=[
        "total_debit", "total_credit", "status", "posted_at", "posted_by", "updated_at",
    ])

    effect = JournalEntryPosted(
        company_id=company.pk,
        entry_id=entry.pk,
        entry_number=entry.entry_number,
        entry_date=entry.entry_date,
        fiscal_period_id=entry.fiscal_period_id,
        total_debit=entry.total_debit,
        total_credit=entry.total_credit,
        deltas={account_id: deltas[account_id] for account_id in account_ids},
        posted_by_id=entry.posted_by_id,
    )
    logger.info(
        "journal entry %s posted in company %s (%s / %s)",
        entry.entry_number, company.pk, entry.total_debit, entry.total_credit,
    )
    return entry, [effect]


def post_journal_entry(company, entry_id, user=None, clock=None):
    """
    Post a draft entry: balanced, open period, active accounts.

    All deltas plus the status flip happen in one transaction; on any
    error nothing is persisted. Effects are sent after commit.
    """
    with transaction.atomic():
        entry, effects = _post(company, entry_id, user=user, clock=clock)
        emit_after_commit(effects)
    return PostingResult(entry=entry, effects=effects)


def reverse_journal_entry(company, entry_id, reversal_date=None, user=None,
                          clock=None):
    """
    Cancel a posted entry with a mirror entry (debits and credits swapped),
    posted through the same path. The original becomes Reversed and
    points at the mirror through `reversal_entry`.
    """
    with transaction.atomic():
        original = get_entry(company, entry_id, lock=True)
        if not original.is_posted:
            raise ConflictError.state(
                f"Journal entry {original.entry_number}", original.status,
                EntryStatus.POSTED,
            )
        reversal_date = (
            to_date(reversal_date, "reversal_date") if reversal_date
            else conf.today(clock)
        )
        period = get_period_for_date(company, reversal_date)
        if period is None:
            # No period covers the date: the mirror is booked in the
            # original's period, on its nearest day
            period = original.fiscal_period
            reversal_date = min(max(reversal_date, period.start_date), period.end_date)

        reversal = JournalEntry.objects.create(
            company=company,
            entry_number=next_entry_number(company),
            entry_date=reversal_date,
            reference=original.entry_number,
            description=f"Reversal of {original.entry_number}",
            fiscal_period=period,
            status=EntryStatus.DRAFT,
            currency=original.currency,
            tags=list(original.tags),
            created_by=acting_user(user),
        )
        JournalEntryLine.objects.bulk_create([
            JournalEntryLine(
                company=company,
                journal_entry=reversal,
                account_id=line.account_id,
                description=line.description,
                reference=line.reference,
                currency_id=line.currency_id,
                # swap sides, same amounts
                debit_amount=line.credit_amount,
                credit_amount=line.debit_amount,
                exchange_rate=line.exchange_rate,
                debit_base=line.credit_base,
                credit_base=line.debit_base,
                tags=list(line.tags),
            )
            for line in original.lines.order_by("pk")
        ])

        reversal, effects = _post(company, reversal.pk, user=user, clock=clock)

        original.status = EntryStatus.REVERSED
        original.reversal_entry = reversal
        original.save(update_fields=["status", "reversal_entry", "updated_at"])

        effects.append(JournalEntryReversed(
            company_id=company.pk,
            entry_id=original.pk,
            entry_number=original.entry_number,
            reversal_entry_id=reversal.pk,
            reversal_entry_number=reversal.entry_number,
            reversal_date=reversal_date,
        ))
        emit_after_commit(effects)

    logger.info(
        "journal entry %s reversed by %s in company %s",
        original.entry_number, reversal.entry_number, company.pk,
    )
    return PostingResult(entry=reversal, effects=effects)
