from django.contrib import admin

from ledger_core.models import FiscalPeriod
from ledger_core.services import open_period

from .actions import close_fiscal_periods
from .forms import FiscalPeriodAdminForm
from .mixins import TenantAdminMixin


# Register `FiscalPeriod` model
@admin.register(FiscalPeriod)
class FiscalPeriodAdmin(TenantAdminMixin, admin.ModelAdmin):
    form = FiscalPeriodAdminForm
    list_display = (
        "name", "company", "period_type", "fiscal_year",
        "start_date", "end_date", "status", "closed_at")
    list_filter = ("company", "status", "period_type", "fiscal_year")
    search_fields = ("name",)
    # status changes only through the close action
    readonly_fields = ("status", "closed_at", "closed_by")
    actions = [close_fiscal_periods]

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company")

    def save_model(self, request, obj, form, change):
        if change:
            return super().save_model(request, obj, form, change)
        if not request.user.is_superuser:
            obj.company = self._get_request_company(request) or obj.company
        created = open_period(obj.company, {
            "name": obj.name,
            "period_type": obj.period_type,
            "fiscal_year": obj.fiscal_year,
            "start_date": obj.start_date,
            "end_date": obj.end_date,
        })
        obj.pk = created.pk
        obj._state = created._state
