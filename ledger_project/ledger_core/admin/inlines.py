from django.contrib import admin

from ledger_core.models import JournalEntryLine

from .forms import JournalEntryLineInlineForm
from .mixins import TenantAdminMixin

# ---------- Helpful inline admin classes ----------


class JournalEntryLineInline(
    TenantAdminMixin,
    admin.TabularInline
    # shows related objects in table format (rows under parent form)
):
    """Show JournalEntryLine rows on JournalEntry page"""

    model = JournalEntryLine
    fk_name = "journal_entry"
    form = JournalEntryLineInlineForm  # Inline form for JournalEntryLine (admin)
    extra = 0  # don’t show “empty” rows by default (prevents clutter)
    fields = (
        "account",
        "description",
        "currency",
        "debit_amount",
        "credit_amount",
        "exchange_rate",
        "debit_base",
        "credit_base",
    )
    # entry currency amounts are computed by the service layer
    readonly_fields = ("debit_base", "credit_base")
    ordering = ("id",)  # lines appear in creation order

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("account", "currency")

    def get_readonly_fields(self, request, obj=None):
        # Once journal leaves draft, all its lines become completely locked
        if obj and not obj.is_draft:
            return list(self.fields)
        return self.readonly_fields

    # Hide add new line option
    def has_add_permission(self, request, obj=None):
        if obj and not obj.is_draft:
            return False
        return super().has_add_permission(request, obj)

    # Hide delete options
    def has_delete_permission(self, request, obj=None):
        if obj and not obj.is_draft:
            return False
        return super().has_delete_permission(request, obj)
