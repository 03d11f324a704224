import datetime
import logging
from dataclasses import dataclass, field

from django.db import IntegrityError, transaction
from django.utils.dateparse import parse_date

from .. import conf
from ..choices import EntryStatus, PeriodStatus, PeriodType
from ..events import FiscalPeriodClosed, emit_after_commit
from ..exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from ..models import Company, FiscalPeriod, JournalEntry

logger = logging.getLogger(__name__)


def to_date(value, field_name="date"):
    """date / datetime / ISO string → date"""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value)) if value else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(
            f"{field_name} must be an ISO date (YYYY-MM-DD), got {value!r}",
            code="invalid_date",
        )
    return parsed


def acting_user(user):
    # AnonymousUser and None are not recorded
    return user if getattr(user, "is_authenticated", False) else None


@dataclass
class PeriodCloseResult:
    period: FiscalPeriod
    # Drafts still targeting the period. They can no longer be posted
    # until moved to another open period
    outstanding_drafts: list = field(default_factory=list)
    effects: list = field(default_factory=list)


# ----------------------------
# Lookups
# ----------------------------
def get_period(company, period_id, lock=False):
    qs = FiscalPeriod.objects.for_company(company)
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=period_id)
    except FiscalPeriod.DoesNotExist:
        raise NotFoundError(f"Fiscal period {period_id} not found")


def is_open(company, period_id):
    return get_period(company, period_id).is_open


"""
    Entry date determines the period.
    Sibling periods never overlap, so at most one period matches.
"""
def get_period_for_date(company, date):
    date = to_date(date)
    return (
        FiscalPeriod.objects.for_company(company)
        .filter(start_date__lte=date, end_date__gte=date)
        .first()
    )


def current_period(company, clock=None):
    return get_period_for_date(company, conf.today(clock))


def list_periods(company, fiscal_year=None, status=None):
    qs = FiscalPeriod.objects.for_company(company)
    if fiscal_year is not None:
        qs = qs.filter(fiscal_year=int(fiscal_year))
    if status is not None:
        if status not in PeriodStatus.values:
            raise ValidationError(f"Invalid period status {status!r}",
                                  code="invalid_status")
        qs = qs.filter(status=status)
    return qs.order_by("start_date")


def _default_name(period_type, start_date, end_date):
    if period_type == PeriodType.MONTH:
        return start_date.strftime("%Y-%m")  # "2025-07"
    if period_type == PeriodType.QUARTER:
        return f"{start_date.year}-Q{(start_date.month - 1) // 3 + 1}"  # "2025-Q3"
    return f"FY {end_date.year}"


# ----------------------------
# Period workflows
# ----------------------------
def open_period(company, data):
    """Create an Open period. Its date range may not overlap a sibling's."""
    start_date = to_date(data.get("start_date"), "start_date")
    end_date = to_date(data.get("end_date"), "end_date")
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date",
                              code="invalid_range")
    try:
        period_type = PeriodType(data.get("period_type") or PeriodType.MONTH)
    except ValueError:
        raise ValidationError(
            f"Invalid period type {data.get('period_type')!r}; expected one of: "
            f"{', '.join(PeriodType.values)}",
            code="invalid_period_type",
        )
    name = (data.get("name") or "").strip() or _default_name(
        period_type, start_date, end_date)
    fiscal_year = int(data.get("fiscal_year") or end_date.year)

    with transaction.atomic():
        # Serialize period creation per company so two overlapping
        # periods can't slip in side by side
        Company.objects.select_for_update().get(pk=company.pk)

        overlapping = (
            FiscalPeriod.objects.for_company(company)
            .filter(start_date__lte=end_date, end_date__gte=start_date)
            .first()
        )
        if overlapping is not None:
            raise ConflictError(
                f"Period {start_date}..{end_date} overlaps '{overlapping.name}' "
                f"({overlapping.start_date}..{overlapping.end_date})"
            )
        try:
            with transaction.atomic():
                period = FiscalPeriod.objects.create(
                    company=company,
                    name=name,
                    period_type=period_type,
                    fiscal_year=fiscal_year,
                    start_date=start_date,
                    end_date=end_date,
                    status=PeriodStatus.OPEN,
                )
        except IntegrityError:
            raise ConflictError.duplicate("FiscalPeriod", "name", name)

    logger.info(
        "fiscal period %s (%s..%s) opened for company %s",
        period.name, start_date, end_date, company.pk,
    )
    return period


def close_period(company, period_id, user=None, clock=None):
    """
    Open → Closed.

    Draft entries still in the period are returned (and logged) rather
    than silently dropped. With LEDGER_BLOCK_CLOSE_WITH_DRAFTS the close
    is refused instead.
    """
    with transaction.atomic():
        period = get_period(company, period_id, lock=True)
        if not period.is_open:
            raise ConflictError.state("FiscalPeriod", period.status, PeriodStatus.OPEN)

        drafts = list(
            JournalEntry.objects.for_company(company)
            .filter(fiscal_period=period, status=EntryStatus.DRAFT)
            .order_by("entry_date", "entry_number")
        )
        if drafts and conf.get("LEDGER_BLOCK_CLOSE_WITH_DRAFTS"):
            logger.warning(
                "refused to close period %s of company %s: %d draft entr(y/ies)",
                period.name, company.pk, len(drafts),
            )
            raise DomainError(
                f"Cannot close period {period.name}: {len(drafts)} draft "
                "entries still target it"
            )

        period.status = PeriodStatus.CLOSED
        period.closed_at = conf.get_clock(clock)()
        period.closed_by = acting_user(user)
        period.save(update_fields=["status", "closed_at", "closed_by"])

        effects = [
            FiscalPeriodClosed(
                company_id=company.pk,
                period_id=period.pk,
                name=period.name,
                closed_at=period.closed_at,
                outstanding_draft_ids=tuple(d.pk for d in drafts),
                closed_by_id=period.closed_by_id,
            )
        ]
        emit_after_commit(effects)

    if drafts:
        logger.warning(
            "period %s of company %s closed with %d outstanding draft(s): %s",
            period.name, company.pk, len(drafts),
            ", ".join(d.entry_number for d in drafts),
        )
    logger.info("fiscal period %s closed for company %s", period.name, company.pk)
    return PeriodCloseResult(period=period, outstanding_drafts=drafts, effects=effects)


def reopen_period(company, period_id, user=None, privileged=False):
    """Closed → Open. Not part of normal operation: the caller must
    explicitly pass privileged=True."""
    if not privileged:
        raise DomainError("Re-opening a closed period is a privileged action")

    with transaction.atomic():
        period = get_period(company, period_id, lock=True)
        if not period.is_closed:
            raise ConflictError.state("FiscalPeriod", period.status, PeriodStatus.CLOSED)
        period.status = PeriodStatus.OPEN
        period.closed_at = None
        period.closed_by = None
        period.save(update_fields=["status", "closed_at", "closed_by"])

    acting = acting_user(user)
    logger.warning(
        "fiscal period %s of company %s re-opened by %s",
        period.name, company.pk, acting.pk if acting else "system",
    )
    return period
