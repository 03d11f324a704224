from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from ledger_core.choices import EntryStatus, PeriodStatus
from ledger_core.exceptions import LedgerError
from ledger_core.services import (close_period, delete_account,
                                  post_journal_entry, reverse_journal_entry)

# ---------- Admin actions ----------
# Every action goes through the service layer, so admins get the same
# checks (balance, open period, active accounts) as any other caller


def _report(modeladmin, request, verb, total, success, failures):
    # Final summary message
    modeladmin.message_user(
        request,
        _("%(verb)s %(success)d of %(total)d. %(failures)d failed.") % {
            "verb": verb,
            "success": success,
            "total": total,
            "failures": failures,
        },
        level=messages.SUCCESS if failures == 0 else messages.WARNING,
    )


@admin.action(description=_("Post selected journal entries (make immutable)"))
# Bulk-post multiple journal entries from Django admin list view
def post_journal_entries(
    modeladmin,  # `ModelAdmin` class for JournalEntry
    request,  # HTTP request object
    queryset,  # record what admin selected from list view
):
    """
    Post each selected draft in its own transaction; one failure
    doesn't stop the batch.
    """
    # Only attempt to post entries which are not already posted.
    candidates = queryset.filter(status=EntryStatus.DRAFT).select_related("company")
    total = candidates.count()
    success = failures = 0
    for je in candidates:
        try:
            post_journal_entry(je.company, je.pk, user=request.user)
            success += 1
        except LedgerError as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not post %(number)s: %(err)s") % {
                    "number": je.entry_number, "err": exc},
                level=messages.ERROR,
            )
    _report(modeladmin, request, _("Posted"), total, success, failures)


@admin.action(description=_("Reverse selected posted journal entries"))
def reverse_journal_entries(modeladmin, request, queryset):
    candidates = queryset.filter(status=EntryStatus.POSTED).select_related("company")
    total = candidates.count()
    success = failures = 0
    for je in candidates:
        try:
            reverse_journal_entry(je.company, je.pk, user=request.user)
            success += 1
        except LedgerError as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not reverse %(number)s: %(err)s") % {
                    "number": je.entry_number, "err": exc},
                level=messages.ERROR,
            )
    _report(modeladmin, request, _("Reversed"), total, success, failures)


@admin.action(description=_("Close selected fiscal periods"))
def close_fiscal_periods(modeladmin, request, queryset):
    candidates = queryset.filter(status=PeriodStatus.OPEN).select_related("company")
    total = candidates.count()
    success = failures = 0
    for period in candidates:
        try:
            result = close_period(period.company, period.pk, user=request.user)
            success += 1
        except LedgerError as exc:
            failures += 1
            modeladmin.message_user(
                request, f"{period}: {exc}", level=messages.ERROR)
            continue
        # closing proceeds, but the leftover drafts must be visible
        if result.outstanding_drafts:
            modeladmin.message_user(
                request,
                _("%(period)s closed with draft entries still in it: %(numbers)s") % {
                    "period": period.name,
                    "numbers": ", ".join(d.entry_number for d in result.outstanding_drafts),
                },
                level=messages.WARNING,
            )
    _report(modeladmin, request, _("Closed"), total, success, failures)


@admin.action(description=_("Delete selected accounts (soft delete)"))
def soft_delete_accounts(modeladmin, request, queryset):
    total = queryset.count()
    success = failures = 0
    for account in queryset.select_related("company"):
        try:
            delete_account(account.company, account.pk)
            success += 1
        except LedgerError as exc:
            failures += 1
            modeladmin.message_user(
                request, f"{account}: {exc}", level=messages.ERROR)
    _report(modeladmin, request, _("Deleted"), total, success, failures)
