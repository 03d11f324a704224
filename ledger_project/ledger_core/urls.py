from django.urls import path

from . import views

app_name = "ledger_core"

urlpatterns = [
    # accounts
    path("<int:company_id>/accounts/", views.accounts_view, name="accounts"),
    path("<int:company_id>/accounts/chart/", views.chart_of_accounts_view,
         name="chart-of-accounts"),
    path("<int:company_id>/accounts/<int:account_id>/", views.account_detail_view,
         name="account-detail"),
    # journal entries
    path("<int:company_id>/entries/", views.entries_view, name="entries"),
    path("<int:company_id>/entries/unbalanced/", views.unbalanced_entries_view,
         name="unbalanced-entries"),
    path("<int:company_id>/entries/<int:entry_id>/", views.entry_detail_view,
         name="entry-detail"),
    path("<int:company_id>/entries/<int:entry_id>/lines/", views.add_line_view,
         name="entry-add-line"),
    path("<int:company_id>/entries/<int:entry_id>/post/", views.post_entry_view,
         name="entry-post"),
    path("<int:company_id>/entries/<int:entry_id>/reverse/", views.reverse_entry_view,
         name="entry-reverse"),
    # fiscal periods
    path("<int:company_id>/periods/", views.periods_view, name="periods"),
    path("<int:company_id>/periods/<int:period_id>/close/", views.close_period_view,
         name="period-close"),
    # reports
    path("<int:company_id>/reports/trial-balance/", views.trial_balance_view,
         name="trial-balance"),
    path("<int:company_id>/reports/draft-aging/", views.draft_aging_view,
         name="draft-aging"),
]
