from django.contrib import admin

from ledger_core.models import Company, Currency


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    """a clean admin table for browsing companies"""

    # columns shown in company list view
    list_display = ("id", "name", "slug", "default_currency", "created_at")
    search_fields = ("name", "slug")  # enable search by name and slug
    ordering = ("name",)  # sort companies alphabetically by default


@admin.register(Currency)
class CurrencyAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "symbol", "decimal_places")
    search_fields = ("code", "name")
    ordering = ("code",)
    list_per_page = 50  # ISO currency tables can have ~180 entries
