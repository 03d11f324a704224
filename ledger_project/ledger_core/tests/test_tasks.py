from decimal import Decimal

from django.test import TestCase

from ledger_core.models import Account
from ledger_core.services import post_journal_entry, reverse_journal_entry
from ledger_core.tasks import recompute_account_balances

from .base import LedgerTestMixin, fixed_clock


class RecomputeBalancesTaskTests(LedgerTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        post_journal_entry(self.company, self.make_sale("100.00").pk, clock=fixed_clock)

    def test_consistent_ledger_reports_no_drift(self):
        result = recompute_account_balances(self.company.pk)
        self.assertEqual(result, {"checked": 4, "drifted": []})

    def test_drifted_balance_is_repaired(self):
        # simulate a balance written outside the posting path
        Account.objects.filter(pk=self.cash.pk).update(balance=Decimal("42"))

        with self.assertLogs("ledger_core.tasks", "WARNING"):
            result = recompute_account_balances.delay(self.company.pk).get()

        self.assertEqual(result["checked"], 4)
        self.assertEqual(len(result["drifted"]), 1)
        self.assertEqual(result["drifted"][0]["account"], "1110")
        self.refresh(self.cash)
        self.assertEqual(self.cash.balance, Decimal("100.00"))

    def test_reversed_history_nets_to_zero(self):
        entry = self.make_sale("50.00")
        post_journal_entry(self.company, entry.pk, clock=fixed_clock)
        reverse_journal_entry(self.company, entry.pk, clock=fixed_clock)

        result = recompute_account_balances(self.company.pk)
        self.assertEqual(result["drifted"], [])
        self.refresh(self.revenue)
        self.assertEqual(self.revenue.balance, Decimal("100.00"))
