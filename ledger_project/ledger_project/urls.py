from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    # JSON endpoints for the ledger engine (accounts, journals, periods)
    path("ledger/", include("ledger_core.urls")),
]
