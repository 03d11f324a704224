from django.contrib import admin

from ledger_core.models import Account
from ledger_core.services import create_account

from .actions import soft_delete_accounts
from .forms import AccountAdminForm
from .mixins import TenantAdminMixin


# Register `Account` model
@admin.register(Account)
class AccountAdmin(TenantAdminMixin, admin.ModelAdmin):
    form = AccountAdminForm
    # show key accounting fields
    list_display = (
        "account_number",
        "name",
        "company",
        "type",
        "normal_balance",
        "balance",
        "parent",
        "is_system",
        "is_active",
    )
    list_filter = ("company", "type", "is_active", "is_system")
    search_fields = ("account_number", "name", "description")
    # accounts grouped by company, then sorted by number
    ordering = ("company", "account_number")
    # balance only moves through posting
    readonly_fields = ("balance", "created_at", "updated_at")
    fieldsets = (
        (
            None,
            {
                "fields": (
                    "company",
                    "account_number",
                    "name",
                    "description",
                    "type",
                    "sub_type",
                    "currency",
                    "parent",
                    "tags",
                )
            },
        ),
        (
            "Status",
            {
                "fields": (
                    "is_active",
                    "is_system",
                    "allow_manual_entries",
                    "balance",
                    "created_at",
                    "updated_at",
                )
            },
        ),
    )
    actions = [soft_delete_accounts]

    # Tenant Filtering; soft deleted accounts are hidden
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.alive().select_related("company", "parent")

    def get_readonly_fields(self, request, obj=None):
        r = list(self.readonly_fields)
        if obj:
            # fixed at creation
            r += ["company", "account_number", "is_system"]
        return r

    def get_actions(self, request):
        # hard deletes are replaced by soft_delete_accounts
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions

    def has_delete_permission(self, request, obj=None):
        if obj and obj.is_system:
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        soft_delete_accounts(self, request, Account.objects.filter(pk=obj.pk))

    def save_model(self, request, obj, form, change):
        if change:
            return super().save_model(request, obj, form, change)
        # New accounts get their number (if left blank) from the registry
        if not request.user.is_superuser:
            obj.company = self._get_request_company(request) or obj.company
        created = create_account(obj.company, {
            "account_number": obj.account_number,
            "name": obj.name,
            "description": obj.description,
            "type": obj.type,
            "sub_type": obj.sub_type,
            "currency": obj.currency_id,
            "parent": obj.parent,
            "tags": obj.tags,
            "is_active": obj.is_active,
            "is_system": obj.is_system,
            "allow_manual_entries": obj.allow_manual_entries,
        })
        obj.pk = created.pk
        obj.account_number = created.account_number
        obj._state = created._state
