import functools
import json
import logging
from decimal import Decimal

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import services
from .exceptions import (ConflictError, DomainError, LedgerError, NotFoundError,
                         ValidationError)
from .models import Company

logger = logging.getLogger(__name__)

# Error kind → HTTP status
STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (DomainError, 422),
)


def _error_response(exc):
    for kind, status in STATUS_BY_ERROR:
        if isinstance(exc, kind):
            break
    else:
        status = 400
    messages = getattr(exc, "messages", None) or [str(exc)]
    return JsonResponse(
        {"ok": False, "error": type(exc).__name__, "messages": messages},
        status=status,
    )


def ledger_view(view):
    """Resolve the company, parse the JSON body and map ledger errors."""

    @csrf_exempt
    @functools.wraps(view)
    def wrapper(request, company_id, *args, **kwargs):
        try:
            try:
                company = Company.objects.get(pk=company_id)
            except Company.DoesNotExist:
                raise NotFoundError(f"Company {company_id} not found")
            try:
                # floats never enter the ledger: numbers parse as Decimal
                request.json = json.loads(request.body or b"{}", parse_float=Decimal)
            except ValueError:
                raise ValidationError("Request body is not valid JSON", code="invalid_json")
            if not isinstance(request.json, dict):
                raise ValidationError("Request body must be a JSON object", code="invalid_json")
            return view(request, company, *args, **kwargs)
        except LedgerError as exc:
            logger.info("%s %s rejected: %s", request.method, request.path, exc)
            return _error_response(exc)

    return wrapper


def _user(request):
    return getattr(request, "user", None)


# ---------- serializers ----------
def _money(value):
    return None if value is None else str(value)


def account_json(account):
    return {
        "id": account.pk,
        "account_number": account.account_number,
        "name": account.name,
        "description": account.description,
        "type": account.type,
        "sub_type": account.sub_type,
        "normal_balance": account.normal_balance,
        "currency": account.currency_id,
        "balance": _money(account.balance),
        "is_active": account.is_active,
        "is_system": account.is_system,
        "allow_manual_entries": account.allow_manual_entries,
        "parent_id": account.parent_id,
        "tags": account.tags,
    }


def line_json(line):
    return {
        "id": line.pk,
        "account_id": line.account_id,
        "description": line.description,
        "currency": line.currency_id,
        "debit_amount": _money(line.debit_amount),
        "credit_amount": _money(line.credit_amount),
        "exchange_rate": _money(line.exchange_rate),
        "debit_base": _money(line.debit_base),
        "credit_base": _money(line.credit_base),
    }


def entry_json(entry, with_lines=False):
    data = {
        "id": entry.pk,
        "entry_number": entry.entry_number,
        "entry_date": entry.entry_date.isoformat(),
        "reference": entry.reference,
        "description": entry.description,
        "fiscal_period_id": entry.fiscal_period_id,
        "status": entry.status,
        "currency": entry.currency_id,
        "total_debit": _money(entry.total_debit),
        "total_credit": _money(entry.total_credit),
        "posted_at": entry.posted_at.isoformat() if entry.posted_at else None,
        "reversal_entry_id": entry.reversal_entry_id,
        "tags": entry.tags,
    }
    if with_lines:
        data["lines"] = [line_json(line) for line in entry.lines.order_by("pk")]
    return data


def period_json(period):
    return {
        "id": period.pk,
        "name": period.name,
        "period_type": period.period_type,
        "fiscal_year": period.fiscal_year,
        "start_date": period.start_date.isoformat(),
        "end_date": period.end_date.isoformat(),
        "status": period.status,
        "closed_at": period.closed_at.isoformat() if period.closed_at else None,
    }


def _chart_json(nodes):
    return [
        {**account_json(node.account), "children": _chart_json(node.children)}
        for node in nodes
    ]


# ---------- accounts ----------
@require_http_methods(["GET", "POST"])
@ledger_view
def accounts_view(request, company):
    if request.method == "POST":
        account = services.create_account(company, request.json)
        return JsonResponse({"ok": True, "account": account_json(account)}, status=201)
    query = request.GET.get("q")
    if query:
        accounts = services.search_accounts(company, query)
    elif request.GET.get("type"):
        accounts = services.list_by_type(company, request.GET["type"])
    else:
        accounts = services.list_active(company)
    return JsonResponse({"ok": True, "accounts": [account_json(a) for a in accounts]})


@require_http_methods(["GET", "PATCH", "POST"])
@ledger_view
def account_detail_view(request, company, account_id):
    if request.method == "GET":
        account = services.get_account(company, account_id)
    else:
        account = services.adjust_account(company, account_id, request.json)
    return JsonResponse({"ok": True, "account": account_json(account)})


@require_GET
@ledger_view
def chart_of_accounts_view(request, company):
    chart = services.chart_of_accounts(company)
    return JsonResponse({"ok": True, "chart": _chart_json(chart)})


# ---------- journal entries ----------
@require_http_methods(["GET", "POST"])
@ledger_view
def entries_view(request, company):
    if request.method == "POST":
        entry = services.create_journal_entry(company, request.json, user=_user(request))
        return JsonResponse(
            {"ok": True, "entry": entry_json(entry, with_lines=True)}, status=201)
    if request.GET.get("start_date") or request.GET.get("end_date"):
        entries = services.list_by_date_range(
            company, request.GET.get("start_date"), request.GET.get("end_date"))
    elif request.GET.get("fiscal_period"):
        entries = services.list_by_fiscal_period(company, request.GET["fiscal_period"])
    else:
        entries = services.list_by_status(company, request.GET.get("status", "draft"))
    return JsonResponse({"ok": True, "entries": [entry_json(e) for e in entries]})


@require_GET
@ledger_view
def entry_detail_view(request, company, entry_id):
    entry = services.get_entry(company, entry_id)
    return JsonResponse({"ok": True, "entry": entry_json(entry, with_lines=True)})


@require_POST
@ledger_view
def add_line_view(request, company, entry_id):
    line = services.add_line(company, entry_id, request.json)
    return JsonResponse({"ok": True, "line": line_json(line)}, status=201)


@require_POST
@ledger_view
def post_entry_view(request, company, entry_id):
    result = services.post_journal_entry(company, entry_id, user=_user(request))
    return JsonResponse({"ok": True, "entry": entry_json(result.entry)})


@require_POST
@ledger_view
def reverse_entry_view(request, company, entry_id):
    result = services.reverse_journal_entry(
        company, entry_id,
        reversal_date=request.json.get("reversal_date"),
        user=_user(request),
    )
    return JsonResponse(
        {"ok": True, "reversal": entry_json(result.entry, with_lines=True)}, status=201)


@require_GET
@ledger_view
def unbalanced_entries_view(request, company):
    entries = services.unbalanced_entries(company)
    return JsonResponse({"ok": True, "entries": [entry_json(e) for e in entries]})


# ---------- fiscal periods ----------
@require_http_methods(["GET", "POST"])
@ledger_view
def periods_view(request, company):
    if request.method == "POST":
        period = services.open_period(company, request.json)
        return JsonResponse({"ok": True, "period": period_json(period)}, status=201)
    periods = services.list_periods(
        company,
        fiscal_year=request.GET.get("fiscal_year"),
        status=request.GET.get("status"),
    )
    return JsonResponse({"ok": True, "periods": [period_json(p) for p in periods]})


@require_POST
@ledger_view
def close_period_view(request, company, period_id):
    result = services.close_period(company, period_id, user=_user(request))
    return JsonResponse({
        "ok": True,
        "period": period_json(result.period),
        # warning, not an error: these drafts can't be posted into the period
        "outstanding_drafts": [entry_json(e) for e in result.outstanding_drafts],
    })


# ---------- reports ----------
@require_GET
@ledger_view
def trial_balance_view(request, company):
    report = services.trial_balance(company, period=request.GET.get("period") or None)
    return JsonResponse({
        "ok": True,
        "rows": [
            {
                "account_id": row.account.pk,
                "account_number": row.account.account_number,
                "name": row.account.name,
                "type": row.account.type,
                "debit": _money(row.debit),
                "credit": _money(row.credit),
                "balance": _money(row.balance),
            }
            for row in report.rows
        ],
        "total_debit": _money(report.total_debit),
        "total_credit": _money(report.total_credit),
        "is_balanced": report.is_balanced,
    })


@require_GET
@ledger_view
def draft_aging_view(request, company):
    buckets = services.draft_aging(company, as_of=request.GET.get("as_of") or None)
    return JsonResponse({
        "ok": True,
        "buckets": {
            label: [entry_json(e) for e in entries]
            for label, entries in buckets.items()
        },
    })
