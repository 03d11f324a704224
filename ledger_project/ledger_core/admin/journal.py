from django.contrib import admin
from django.utils.html import format_html

from ledger_core.models import JournalEntry, JournalEntryLine
from ledger_core.services import add_line, remove_line, update_line
from ledger_core.services.periods import acting_user
from ledger_core.services.sequences import next_entry_number

from .actions import post_journal_entries, reverse_journal_entries
from .forms import JournalEntryAdminForm
from .inlines import JournalEntryLineInline
from .mixins import TenantAdminMixin


def _line_data(line):
    return {
        "account": line.account_id,
        "description": line.description,
        "currency": line.currency_id,
        "debit_amount": line.debit_amount,
        "credit_amount": line.credit_amount,
        "exchange_rate": line.exchange_rate,
    }


# Register `JournalEntry` model
@admin.register(JournalEntry)
class JournalEntryAdmin(TenantAdminMixin, admin.ModelAdmin):
    """Basic admin display setup"""

    form = JournalEntryAdminForm
    list_display = (
        "entry_number",
        "company",
        "entry_date",
        "fiscal_period",
        "reference",
        "status",
        "posted_at",
        "totals",
    )
    list_filter = ("company", "status", "fiscal_period")
    search_fields = ("entry_number", "reference", "description")
    date_hierarchy = "entry_date"
    # users can see but not edit these
    readonly_fields = (
        "entry_number",
        "status",
        "total_debit",
        "total_credit",
        "posted_at",
        "posted_by",
        "reversal_entry",
        "created_by",
    )
    inlines = [
        JournalEntryLineInline
    ]  # allows editing lines directly on JournalEntry page
    actions = [
        post_journal_entries,
        reverse_journal_entries,
    ]

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "fiscal_period", "currency")

    """ Computed column for balance check """
    # Show total debits / total credits for each journal (entry currency)
    @admin.display(description="Debits / Credits")
    def totals(self, obj):
        return format_html(
            "<b>{}</b> / <small>{}</small>", obj.total_debit, obj.total_credit
        )

    """ Make entries immutable once posted """
    def get_readonly_fields(self, request, obj=None):
        r = list(self.readonly_fields)
        if obj and not obj.is_draft:
            r += [
                "company", "entry_date", "fiscal_period", "currency",
                "reference", "description", "tags",
            ]
        return r

    """ Prevent deletion after posting """
    def has_delete_permission(self, request, obj=None):
        if obj and not obj.is_draft:
            return False  # history stays; reverse instead
        return super().has_delete_permission(request, obj)

    def save_model(self, request, obj, form, change):
        if not change:
            obj.entry_number = next_entry_number(obj.company)
            obj.created_by = acting_user(request.user)
        super().save_model(request, obj, form, change)

    # Lines go through the journal services (base amounts, draft check, totals)
    def save_formset(self, request, form, formset, change):
        if formset.model is not JournalEntryLine:
            return super().save_formset(request, form, formset, change)

        entry = form.instance
        formset.save(commit=False)
        for line in formset.deleted_objects:
            remove_line(entry.company, line.pk)
        for line, _changed in formset.changed_objects:
            update_line(entry.company, line.pk, _line_data(line))
        for line in formset.new_objects:
            add_line(entry.company, entry.pk, _line_data(line))
