import logging
from dataclasses import dataclass, field

from django.db import IntegrityError, transaction
from django.db.models import F, Q

from .. import conf
from ..choices import AccountType, EntryStatus, normal_balance_side, parse_account_type
from ..exceptions import (ConflictError, DomainError, NotFoundError,
                          ValidationError)
from ..models import Account, Currency, JournalEntryLine
from ..money import check_magnitude, to_decimal

logger = logging.getLogger(__name__)

# Each type owns a block of 4-digit numbers in the chart of accounts
ACCOUNT_NUMBER_BLOCKS = {
    AccountType.ASSET: (1000, 1999),
    AccountType.LIABILITY: (2000, 2999),
    AccountType.EQUITY: (3000, 3999),
    AccountType.REVENUE: (4000, 4999),
    AccountType.EXPENSE: (5000, 5999),
}

# Fields adjust_account() may change. balance belongs to posting,
# account_number and is_system are fixed at creation
ADJUSTABLE_FIELDS = {
    "name", "description", "sub_type", "tags", "is_active",
    "allow_manual_entries", "parent", "parent_id", "type",
}


# ----------------------------
# Lookups
# ----------------------------
def _account_qs(company):
    return Account.objects.for_company(company).alive()


def get_account(company, account_id, lock=False):
    qs = _account_qs(company)
    if lock:
        qs = qs.select_for_update()  # Lock the row to avoid race conditions
    try:
        return qs.get(pk=account_id)
    except Account.DoesNotExist:
        raise NotFoundError(f"Account {account_id} not found")


def find_by_account_number(company, account_number):
    return _account_qs(company).filter(account_number=str(account_number)).first()


def list_by_type(company, account_type):
    account_type = parse_account_type(account_type)
    return _account_qs(company).filter(type=account_type).order_by("account_number")


def list_active(company):
    return Account.objects.active(company).order_by("account_number")


def search_accounts(company, query):
    """Match name, number or description (case-insensitive)."""
    query = (query or "").strip()
    qs = _account_qs(company)
    if query:
        qs = qs.filter(
            Q(name__icontains=query)
            | Q(account_number__icontains=query)
            | Q(description__icontains=query)
        )
    return qs.order_by("account_number")


def get_children(company, account_id):
    account = get_account(company, account_id)
    return account.children.alive().order_by("account_number")


def get_descendants(company, account_id):
    """All live sub-accounts below `account_id`, breadth first."""
    account = get_account(company, account_id)
    descendants = []
    frontier = [account.pk]
    while frontier:
        level = list(
            _account_qs(company)
            .filter(parent_id__in=frontier)
            .order_by("account_number")
        )
        descendants.extend(level)
        frontier = [child.pk for child in level]
    return descendants


@dataclass
class ChartNode:
    account: Account
    children: list = field(default_factory=list)


def chart_of_accounts(company):
    """Root accounts ordered by number, each with its nested children."""
    accounts = list(_account_qs(company).order_by("account_number"))
    nodes = {account.pk: ChartNode(account) for account in accounts}
    roots = []
    for account in accounts:
        parent = nodes.get(account.parent_id)
        # children of a soft-deleted parent surface as roots
        (parent.children if parent else roots).append(nodes[account.pk])
    return roots


def get_normal_balance_side(account_type):
    return normal_balance_side(account_type)


# ----------------------------
# Helpers
# ----------------------------
def get_currency(code):
    if isinstance(code, Currency):
        return code
    code = (code or "").strip().upper()
    currency = Currency.objects.filter(pk=code).first() if code else None
    if currency is None:
        raise ValidationError(
            f"Unsupported currency {code!r}", code="unsupported_currency"
        )
    return currency


def _resolve_parent(company, parent):
    if parent in (None, ""):
        return None
    if not isinstance(parent, Account):
        parent = Account.objects.alive().filter(pk=parent).first()
        if parent is None:
            raise NotFoundError("Parent account not found")
    if parent.company_id != company.pk:
        raise ValidationError(
            "Parent & child accounts must belong to the same company",
            code="cross_company_parent",
        )
    if parent.is_deleted:
        raise NotFoundError("Parent account not found")
    return parent


def _would_create_cycle(account, new_parent):
    # Walk up from the new parent: meeting `account` means it is a descendant
    current, seen = new_parent, set()
    while current is not None:
        if current.pk == account.pk or current.pk in seen:
            return True
        seen.add(current.pk)
        current = current.parent
    return False


def has_posted_activity(account):
    return JournalEntryLine.objects.filter(
        account=account,
        journal_entry__status__in=[EntryStatus.POSTED, EntryStatus.REVERSED],
    ).exists()


def next_account_number(company, account_type):
    """Highest number used in the type's block + 1, or the block start.

    Soft-deleted accounts still hold their numbers.
    """
    account_type = parse_account_type(account_type)
    low, high = ACCOUNT_NUMBER_BLOCKS[account_type]
    used = [
        int(number)
        for number in Account.objects.for_company(company)
        .values_list("account_number", flat=True)
        if number.isdigit() and low <= int(number) <= high
    ]
    if not used:
        return str(low)
    candidate = max(used) + 1
    if candidate > high:
        raise DomainError(
            f"No account numbers left in the {account_type.label} block "
            f"({low}-{high})"
        )
    return str(candidate)


# ----------------------------
# Account workflows
# ----------------------------
def create_account(company, data):
    """
    Create an account in the company's chart.

    `type` is required. Without `account_number` the next free number of
    the type's block is used; a collision with a concurrent creation is
    retried inside a savepoint.
    """
    account_type = parse_account_type(data.get("type"))
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Account name is required", code="required")

    fields = dict(
        company=company,
        name=name,
        description=data.get("description") or "",
        type=account_type,
        sub_type=data.get("sub_type") or "",
        currency=get_currency(data.get("currency") or company.default_currency_id),
        is_active=data.get("is_active", True),
        is_system=data.get("is_system", False),
        allow_manual_entries=data.get("allow_manual_entries", True),
        parent=_resolve_parent(company, data.get("parent", data.get("parent_id"))),
        tags=list(data.get("tags") or []),
    )

    number = str(data.get("account_number") or "").strip()
    if number:
        try:
            with transaction.atomic():
                account = Account.objects.create(account_number=number, **fields)
        except IntegrityError:
            raise ConflictError.duplicate("Account", "account_number", number)
    else:
        attempts = conf.get("LEDGER_ACCOUNT_NUMBER_ATTEMPTS")
        for attempt in range(1, attempts + 1):
            number = next_account_number(company, account_type)
            try:
                # savepoint: a collision only rolls back this attempt
                with transaction.atomic():
                    account = Account.objects.create(account_number=number, **fields)
                break
            except IntegrityError:
                logger.warning(
                    "account number %s taken in company %s (attempt %d/%d)",
                    number, company.pk, attempt, attempts,
                )
        else:
            raise ConflictError.duplicate("Account", "account_number", number)

    logger.info(
        "account %s (%s) created in company %s",
        account.account_number, account.type, company.pk,
    )
    return account


def adjust_account(company, account_id, data):
    protected = {"balance", "account_number", "is_system"} & set(data)
    if protected:
        raise ValidationError(
            f"Not adjustable: {', '.join(sorted(protected))}", code="read_only"
        )
    unknown = set(data) - ADJUSTABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Unknown account fields: {', '.join(sorted(unknown))}",
            code="unknown_field",
        )

    with transaction.atomic():
        account = get_account(company, account_id, lock=True)
        changed = []

        if "type" in data:
            new_type = parse_account_type(data["type"])
            if new_type != account.type:
                # Historical balances were accumulated on the old normal side
                if has_posted_activity(account):
                    raise DomainError(
                        "Cannot change the type of an account with posted activity"
                    )
                account.type = new_type
                changed.append("type")

        if "parent" in data or "parent_id" in data:
            parent = _resolve_parent(company, data.get("parent", data.get("parent_id")))
            if parent is not None and _would_create_cycle(account, parent):
                raise DomainError(
                    f"Account {parent.account_number} is {account.account_number} "
                    "or one of its descendants"
                )
            account.parent = parent
            changed.append("parent")

        if "name" in data:
            name = (data["name"] or "").strip()
            if not name:
                raise ValidationError("Account name is required", code="required")
            account.name = name
            changed.append("name")

        for attr in ("description", "sub_type"):
            if attr in data:
                setattr(account, attr, data[attr] or "")
                changed.append(attr)

        for attr in ("is_active", "allow_manual_entries"):
            if attr in data:
                setattr(account, attr, bool(data[attr]))
                changed.append(attr)

        if "tags" in data:
            account.tags = list(data["tags"] or [])
            changed.append("tags")

        if changed:
            account.save(update_fields=changed + ["updated_at"])

    logger.info(
        "account %s adjusted in company %s: %s",
        account.account_number, company.pk, ", ".join(changed) or "no changes",
    )
    return account


def delete_account(company, account_id, clock=None):
    """Soft delete: the row stays (and keeps its number) with deleted_at set."""
    with transaction.atomic():
        account = get_account(company, account_id, lock=True)
        if account.is_system:
            raise DomainError("Cannot delete system account")
        if account.journal_lines.exists():
            raise DomainError("Cannot delete account with journal entries")
        if account.children.alive().exists():
            raise DomainError("Cannot delete account with child accounts")

        account.deleted_at = conf.get_clock(clock)()
        account.is_active = False
        account.save(update_fields=["deleted_at", "is_active", "updated_at"])

    logger.info("account %s deleted in company %s", account.account_number, company.pk)
    return account


def apply_delta(company, account_id, signed_amount):
    """
    Add `signed_amount` to the account balance.

    Serialized per account: the row is locked and the increment is done
    in SQL (balance = balance + delta), so concurrent postings never lose
    an update.
    """
    delta = to_decimal(signed_amount, "signed_amount")
    with transaction.atomic():
        account = get_account(company, account_id, lock=True)
        if not account.is_active:
            raise DomainError(f"Account {account.account_number} is inactive")
        check_magnitude(account.balance + delta, f"Account {account.account_number} balance")
        Account.objects.filter(pk=account.pk).update(balance=F("balance") + delta)
        account.refresh_from_db(fields=["balance"])

    logger.debug(
        "account %s delta %s, balance now %s", account.account_number, delta, account.balance
    )
    return account


# ----------------------------
# Default chart of accounts
# ----------------------------
# (number, name, type, sub_type, parent number, is_system)
# Headers only group accounts: no manual entries against them
DEFAULT_CHART = [
    ("1000", "Assets", AccountType.ASSET, "header", None, True),
    ("1100", "Current Assets", AccountType.ASSET, "current_asset", "1000", False),
    ("1110", "Cash", AccountType.ASSET, "cash", "1100", True),
    ("1120", "Bank Account", AccountType.ASSET, "bank", "1100", False),
    ("1130", "Accounts Receivable", AccountType.ASSET, "accounts_receivable", "1100", True),
    ("1140", "Inventory", AccountType.ASSET, "inventory", "1100", False),
    ("1200", "Fixed Assets", AccountType.ASSET, "fixed_asset", "1000", False),
    ("1210", "Property, Plant & Equipment", AccountType.ASSET, "ppe", "1200", False),
    ("1220", "Accumulated Depreciation", AccountType.ASSET, "accumulated_depreciation", "1200", False),
    ("2000", "Liabilities", AccountType.LIABILITY, "header", None, True),
    ("2100", "Current Liabilities", AccountType.LIABILITY, "current_liability", "2000", False),
    ("2110", "Accounts Payable", AccountType.LIABILITY, "accounts_payable", "2100", True),
    ("2120", "Tax Payable", AccountType.LIABILITY, "tax_payable", "2100", False),
    ("2200", "Long-term Liabilities", AccountType.LIABILITY, "long_term_liability", "2000", False),
    ("3000", "Equity", AccountType.EQUITY, "header", None, True),
    ("3100", "Owner's Equity", AccountType.EQUITY, "owners_equity", "3000", False),
    ("3200", "Retained Earnings", AccountType.EQUITY, "retained_earnings", "3000", True),
    ("4000", "Revenue", AccountType.REVENUE, "header", None, True),
    ("4100", "Sales Revenue", AccountType.REVENUE, "sales", "4000", False),
    ("4200", "Service Revenue", AccountType.REVENUE, "service", "4000", False),
    ("4300", "Other Revenue", AccountType.REVENUE, "other", "4000", False),
    ("5000", "Expenses", AccountType.EXPENSE, "header", None, True),
    ("5100", "Cost of Goods Sold", AccountType.EXPENSE, "cogs", "5000", False),
    ("5200", "Operating Expenses", AccountType.EXPENSE, "operating", "5000", False),
    ("5210", "Salaries & Wages", AccountType.EXPENSE, "salaries", "5200", False),
    ("5220", "Rent Expense", AccountType.EXPENSE, "rent", "5200", False),
    ("5230", "Utilities Expense", AccountType.EXPENSE, "utilities", "5200", False),
    ("5240", "Marketing & Advertising", AccountType.EXPENSE, "marketing", "5200", False),
    ("5250", "Office Supplies", AccountType.EXPENSE, "supplies", "5200", False),
]


def seed_default_chart(company):
    """Create the standard chart for `company`. Existing numbers are kept."""
    created = []
    by_number = {}
    with transaction.atomic():
        for number, name, account_type, sub_type, parent_number, is_system in DEFAULT_CHART:
            account = find_by_account_number(company, number)
            if account is None:
                account = create_account(company, {
                    "account_number": number,
                    "name": name,
                    "type": account_type,
                    "sub_type": sub_type,
                    "parent": by_number.get(parent_number),
                    "is_system": is_system,
                    "allow_manual_entries": sub_type != "header",
                })
                created.append(account)
            by_number[number] = account

    logger.info(
        "default chart seeded for company %s: %d account(s) created",
        company.pk, len(created),
    )
    return created
