import logging

from celery import shared_task
from django.db import models, transaction

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def recompute_account_balances(company_id):
    """
    Rebuild every account balance of a company from its posted history
    and repair the ones that drifted from the running balance.

    Returns {"checked": n, "drifted": [{"account": "1110", "stored": ..,
    "expected": ..}, ...]} (amounts as strings, JSON friendly).
    """
    # import lazily to avoid circular imports at module import time
    from .choices import EntryStatus
    from .models import Account, JournalEntryLine
    from .money import ZERO, signed_delta

    drifted = []
    with transaction.atomic():
        # Lock the accounts: no posting may move a balance mid-audit
        accounts = list(
            Account.objects.filter(company_id=company_id)
            .select_for_update().order_by("pk")
        )
        # Sum all posted debit and credit lines per account
        # (lines of reversed entries stay in: their mirrors offset them)
        sums = {
            row["account"]: row
            for row in JournalEntryLine.objects.filter(
                company_id=company_id,
                journal_entry__status__in=[EntryStatus.POSTED, EntryStatus.REVERSED],
            ).values("account").annotate(
                debit=models.Sum("debit_base"),
                credit=models.Sum("credit_base"),
            )
        }
        for account in accounts:
            row = sums.get(account.pk, {})
            # If nothing was posted, Django returns None → so fallback to 0
            expected = signed_delta(
                account.type, row.get("debit") or ZERO, row.get("credit") or ZERO
            )
            if expected != account.balance:
                logger.warning(
                    "account %s of company %s drifted: stored %s, expected %s",
                    account.account_number, company_id, account.balance, expected,
                )
                drifted.append({
                    "account": account.account_number,
                    "stored": str(account.balance),
                    "expected": str(expected),
                })
                Account.objects.filter(pk=account.pk).update(balance=expected)

    logger.info(
        "recomputed %d account balance(s) for company %s, %d drifted",
        len(accounts), company_id, len(drifted),
    )
    return {"checked": len(accounts), "drifted": drifted}
