from decimal import Decimal

from django.test import TestCase

from ledger_core.choices import EntryStatus
from ledger_core.exceptions import ValidationError
from ledger_core.models import JournalEntry
from ledger_core.services import (draft_aging, find_by_entry_number,
                                  list_by_date_range, list_by_fiscal_period,
                                  list_by_status, open_period, post_journal_entry,
                                  reverse_journal_entry, trial_balance,
                                  unbalanced_entries)

from .base import LedgerTestMixin, fixed_clock


class EntryQueryTests(LedgerTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.posted = self.make_sale(entry_date="2025-07-02")
        post_journal_entry(self.company, self.posted.pk, clock=fixed_clock)
        self.draft = self.make_sale(entry_date="2025-07-20")

    def test_find_and_list(self):
        self.assertEqual(find_by_entry_number(self.company, self.posted.entry_number), self.posted)
        self.assertIsNone(find_by_entry_number(self.company, "JE-999999"))
        self.assertEqual(list(list_by_status(self.company, "draft")), [self.draft])
        self.assertEqual(list(list_by_status(self.company, EntryStatus.POSTED)), [self.posted])
        self.assertEqual(
            list(list_by_date_range(self.company, "2025-07-01", "2025-07-10")), [self.posted])
        self.assertEqual(
            list(list_by_fiscal_period(self.company, self.july.pk)), [self.posted, self.draft])

    def test_invalid_filters(self):
        with self.assertRaises(ValidationError) as cm:
            list_by_status(self.company, "void")
        self.assertEqual(cm.exception.code, "invalid_status")
        with self.assertRaises(ValidationError):
            list_by_date_range(self.company, "2025-07-31", "2025-07-01")


class UnbalancedEntriesTests(LedgerTestMixin, TestCase):

    def test_flags_unbalanced_and_single_line_entries(self):
        balanced = self.make_sale()
        lopsided = self.make_entry([
            {"account": self.cash.pk, "debit": "100.00"},
            {"account": self.revenue.pk, "credit": "99.99"},
        ])
        lonely = self.make_entry([{"account": self.cash.pk, "debit": "5.00"}])
        empty = self.make_entry()

        found = unbalanced_entries(self.company)
        self.assertNotIn(balanced, found)
        self.assertEqual(found, [lopsided, lonely, empty])

    def test_flags_tampered_totals(self):
        entry = self.make_sale()
        post_journal_entry(self.company, entry.pk, clock=fixed_clock)
        # bypass the model: cached totals no longer match the lines
        JournalEntry.objects.filter(pk=entry.pk).update(total_credit=Decimal("90"))
        self.assertEqual(unbalanced_entries(self.company), [entry])


class TrialBalanceTests(LedgerTestMixin, TestCase):

    def test_rows_and_totals(self):
        post_journal_entry(self.company, self.make_sale("100.00").pk, clock=fixed_clock)
        rent = self.make_entry([
            {"account": self.rent.pk, "debit": "30.00"},
            {"account": self.cash.pk, "credit": "30.00"},
        ])
        post_journal_entry(self.company, rent.pk, clock=fixed_clock)
        self.make_sale("999.00")  # drafts don't count

        report = trial_balance(self.company)
        self.assertTrue(report.is_balanced)
        self.assertEqual(report.total_debit, Decimal("130.00"))
        self.assertEqual(report.total_credit, Decimal("130.00"))

        rows = {row.account.account_number: row for row in report.rows}
        self.assertEqual(list(rows), ["1110", "4100", "5220"])
        self.assertEqual(rows["1110"].balance, Decimal("70.00"))
        self.assertEqual(rows["4100"].balance, Decimal("100.00"))
        self.assertEqual(rows["5220"].debit, Decimal("30.00"))

    def test_reversed_entries_cancel_out(self):
        entry = self.make_sale()
        post_journal_entry(self.company, entry.pk, clock=fixed_clock)
        reverse_journal_entry(self.company, entry.pk, clock=fixed_clock)

        report = trial_balance(self.company)
        self.assertTrue(report.is_balanced)
        for row in report.rows:
            self.assertEqual(row.balance, Decimal("0"))

    def test_per_period(self):
        august = open_period(self.company, {
            "start_date": "2025-08-01", "end_date": "2025-08-31"})
        post_journal_entry(self.company, self.make_sale("10.00").pk, clock=fixed_clock)
        post_journal_entry(
            self.company, self.make_sale("25.00", entry_date="2025-08-03").pk, clock=fixed_clock)

        self.assertEqual(trial_balance(self.company, period=august).total_debit, Decimal("25.00"))
        self.assertEqual(trial_balance(self.company, period=self.july.pk).total_debit,
                         Decimal("10.00"))


class DraftAgingTests(LedgerTestMixin, TestCase):

    def test_buckets(self):
        open_period(self.company, {
            "period_type": "quarter", "start_date": "2025-04-01", "end_date": "2025-06-30"})
        open_period(self.company, {
            "period_type": "quarter", "start_date": "2025-01-01", "end_date": "2025-03-31"})
        fresh = self.make_entry(entry_date="2025-07-10")    # 5 days
        month = self.make_entry(entry_date="2025-06-01")    # 44 days
        quarter = self.make_entry(entry_date="2025-04-20")  # 86 days
        stale = self.make_entry(entry_date="2025-01-15")    # 181 days
        post_journal_entry(self.company, self.make_sale().pk, clock=fixed_clock)

        buckets = draft_aging(self.company, clock=fixed_clock)
        self.assertEqual(buckets, {
            "0-30": [fresh],
            "31-60": [month],
            "61-90": [quarter],
            "90+": [stale],
        })

    def test_future_dated_drafts_are_current(self):
        future = self.make_entry(entry_date="2025-07-30")
        buckets = draft_aging(self.company, as_of="2025-07-15")
        self.assertEqual(buckets["0-30"], [future])
