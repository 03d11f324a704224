import datetime
import json
from decimal import Decimal

import pytest
from django.test import TestCase
from django.urls import reverse

from ledger_core.exceptions import NotFoundError
from ledger_core.models import Account, Company, Currency, JournalEntry
from ledger_core.services import (create_account, create_journal_entry,
                                  get_entry, open_period, post_journal_entry,
                                  trial_balance)


class TenantIsolationManagerTests(TestCase):
    def setUp(self):
        self.usd = Currency.objects.create(code="USD", name="US Dollar")
        self.company_a = Company.objects.create(name="Company A", default_currency=self.usd)
        self.company_b = Company.objects.create(name="Company B", default_currency=self.usd)

        # same account number in both companies
        self.cash_a = create_account(self.company_a, {
            "account_number": "1110", "name": "Cash", "type": "asset"})
        self.cash_b = create_account(self.company_b, {
            "account_number": "1110", "name": "Cash", "type": "asset"})

    def test_slugs_are_derived_and_unique(self):
        twin = Company.objects.create(name="Company A", default_currency=self.usd)
        self.assertEqual(self.company_a.slug, "company-a")
        self.assertEqual(twin.slug, "company-a-1")

    def test_for_company_returns_only_that_company_objects(self):
        """Compare account primary keys"""
        self.assertListEqual(
            list(Account.objects.for_company(self.company_a).values_list("pk", flat=True)),
            [self.cash_a.pk],
        )
        self.assertListEqual(
            list(Account.objects.for_company(self.company_b).values_list("pk", flat=True)),
            [self.cash_b.pk],
        )

    def test_get_other_company_object_raises_does_not_exist(self):
        # `for_company` shouldn't return the other company's record
        with self.assertRaises(Account.DoesNotExist):
            Account.objects.for_company(self.company_a).get(pk=self.cash_b.pk)

    def test_entry_lookup_is_scoped(self):
        open_period(self.company_a, {"start_date": "2025-07-01", "end_date": "2025-07-31"})
        entry = create_journal_entry(self.company_a, {"entry_date": "2025-07-10"})
        # NotFoundError is also an ObjectDoesNotExist
        with self.assertRaises(NotFoundError):
            get_entry(self.company_b, entry.pk)

    def test_entry_numbers_are_per_company(self):
        for company in (self.company_a, self.company_b):
            open_period(company, {"start_date": "2025-07-01", "end_date": "2025-07-31"})
        a = create_journal_entry(self.company_a, {"entry_date": "2025-07-10"})
        b = create_journal_entry(self.company_b, {"entry_date": "2025-07-10"})
        self.assertEqual(a.entry_number, b.entry_number)


@pytest.mark.django_db
def test_api_returns_only_tenant_data(client):
    usd = Currency.objects.create(code="USD", name="US Dollar")
    c1 = Company.objects.create(name="Company A", default_currency=usd)
    c2 = Company.objects.create(name="Company B", default_currency=usd)
    for company in (c1, c2):
        open_period(company, {"start_date": "2025-07-01", "end_date": "2025-07-31"})
    cash = create_account(c1, {"name": "Cash", "type": "asset"})
    revenue = create_account(c1, {"name": "Sales", "type": "revenue"})
    create_account(c2, {"name": "Other cash", "type": "asset"})

    entry = create_journal_entry(c1, {
        "entry_date": datetime.date(2025, 7, 10),
        "lines": [
            {"account": cash.pk, "debit": Decimal("75.00")},
            {"account": revenue.pk, "credit": Decimal("75.00")},
        ],
    })
    post_journal_entry(c1, entry.pk)

    resp = client.get(reverse("ledger_core:accounts", kwargs={"company_id": c2.pk}))
    assert [a["name"] for a in resp.json()["accounts"]] == ["Other cash"]

    # company B can't see or post company A's entry
    url = reverse("ledger_core:entry-detail", kwargs={"company_id": c2.pk, "entry_id": entry.pk})
    assert client.get(url).status_code == 404
    url = reverse("ledger_core:entry-post", kwargs={"company_id": c2.pk, "entry_id": entry.pk})
    assert client.post(url, data=json.dumps({}), content_type="application/json").status_code == 404

    # nor use its accounts in its own entries
    resp = client.post(
        reverse("ledger_core:entries", kwargs={"company_id": c2.pk}),
        data=json.dumps({
            "entry_date": "2025-07-10",
            "lines": [{"account_id": cash.pk, "debit": "1.00"}],
        }),
        content_type="application/json",
    )
    assert resp.status_code == 404
    assert JournalEntry.objects.for_company(c2).count() == 0

    assert trial_balance(c2).rows == []
    assert trial_balance(c1).total_debit == Decimal("75.00")
