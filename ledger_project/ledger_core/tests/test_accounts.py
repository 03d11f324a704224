from decimal import Decimal
from unittest import mock

from django.test import TestCase

from ledger_core.exceptions import (ConflictError, DomainError, NotFoundError,
                                    ValidationError)
from ledger_core.models import Account
from ledger_core.services import (adjust_account, apply_delta, chart_of_accounts,
                                  create_account, delete_account,
                                  find_by_account_number, get_account,
                                  get_descendants, list_by_type,
                                  post_journal_entry, search_accounts,
                                  seed_default_chart)
from ledger_core.services.accounts import DEFAULT_CHART, next_account_number

from .base import LedgerTestMixin, fixed_clock


class AccountCreationTests(LedgerTestMixin, TestCase):

    def test_auto_number_continues_the_type_block(self):
        account = create_account(self.company, {"name": "Petty Cash", "type": "asset"})
        self.assertEqual(account.account_number, "1111")
        self.assertEqual(account.balance, Decimal("0"))
        self.assertEqual(account.currency_id, "USD")

    def test_auto_number_starts_an_empty_block(self):
        account = create_account(self.company, {"name": "Capital", "type": "equity"})
        self.assertEqual(account.account_number, "3000")

    def test_block_exhausted(self):
        create_account(self.company, {
            "account_number": "3999", "name": "Last", "type": "equity"})
        with self.assertRaises(DomainError):
            next_account_number(self.company, "equity")

    def test_duplicate_number_is_a_conflict(self):
        with self.assertRaises(ConflictError):
            create_account(self.company, {
                "account_number": "1110", "name": "Other cash", "type": "asset"})
        # numbers are per company only
        self.assertEqual(Account.objects.filter(account_number="1110").count(), 1)

    def test_auto_number_retries_after_collision(self):
        # First candidate collides (as if a concurrent creation won it)
        with mock.patch(
            "ledger_core.services.accounts.next_account_number",
            side_effect=["1110", "1111"],
        ):
            with self.assertLogs("ledger_core.services.accounts", "WARNING") as logs:
                account = create_account(
                    self.company, {"name": "Petty Cash", "type": "asset"})
        self.assertEqual(account.account_number, "1111")
        self.assertIn("account number 1110 taken", logs.output[0])

    def test_auto_number_gives_up_after_attempts(self):
        with self.settings(LEDGER_ACCOUNT_NUMBER_ATTEMPTS=2):
            with mock.patch(
                "ledger_core.services.accounts.next_account_number",
                return_value="1110",
            ):
                with self.assertRaises(ConflictError):
                    create_account(self.company, {"name": "Petty Cash", "type": "asset"})

    def test_invalid_input(self):
        with self.assertRaises(ValidationError) as cm:
            create_account(self.company, {"name": "X", "type": "income"})
        self.assertEqual(cm.exception.code, "invalid_account_type")

        with self.assertRaises(ValidationError) as cm:
            create_account(self.company, {"name": "X", "type": "asset", "currency": "XXX"})
        self.assertEqual(cm.exception.code, "unsupported_currency")

        with self.assertRaises(ValidationError):
            create_account(self.company, {"name": "  ", "type": "asset"})

    def test_parent_must_belong_to_same_company(self):
        from ledger_core.models import Company

        other = Company.objects.create(name="Other Co", default_currency=self.usd)
        foreign = create_account(other, {"name": "Cash", "type": "asset"})
        with self.assertRaises(ValidationError) as cm:
            create_account(self.company, {
                "name": "Sub", "type": "asset", "parent": foreign.pk})
        self.assertEqual(cm.exception.code, "cross_company_parent")

    def test_missing_parent(self):
        with self.assertRaises(NotFoundError):
            create_account(self.company, {"name": "Sub", "type": "asset", "parent": 999999})


class AccountQueryTests(LedgerTestMixin, TestCase):

    def test_lookups(self):
        self.assertEqual(find_by_account_number(self.company, "4100"), self.revenue)
        self.assertIsNone(find_by_account_number(self.company, "9999"))
        self.assertEqual(list(list_by_type(self.company, "expense")), [self.rent])
        self.assertEqual(list(search_accounts(self.company, "payable")), [self.payable])

    def test_get_account_is_tenant_scoped(self):
        from ledger_core.models import Company

        other = Company.objects.create(name="Other Co", default_currency=self.usd)
        with self.assertRaises(NotFoundError):
            get_account(other, self.cash.pk)

    def test_hierarchy(self):
        bank = create_account(self.company, {
            "name": "Bank", "type": "asset", "parent": self.cash.pk})
        savings = create_account(self.company, {
            "name": "Savings", "type": "asset", "parent": bank.pk})
        self.assertEqual(get_descendants(self.company, self.cash.pk), [bank, savings])

        roots = chart_of_accounts(self.company)
        self.assertEqual([node.account for node in roots],
                         [self.cash, self.payable, self.revenue, self.rent])
        self.assertEqual(roots[0].children[0].account, bank)
        self.assertEqual(roots[0].children[0].children[0].account, savings)


class AccountAdjustmentTests(LedgerTestMixin, TestCase):

    def test_adjust_descriptive_fields(self):
        account = adjust_account(self.company, self.cash.pk, {
            "name": "Cash on Hand", "tags": ["treasury"], "allow_manual_entries": False})
        self.assertEqual(account.name, "Cash on Hand")
        self.assertEqual(account.tags, ["treasury"])
        self.assertFalse(account.allow_manual_entries)

    def test_balance_and_number_are_read_only(self):
        for field in ("balance", "account_number", "is_system"):
            with self.assertRaises(ValidationError) as cm:
                adjust_account(self.company, self.cash.pk, {field: "1"})
            self.assertEqual(cm.exception.code, "read_only")

    def test_unknown_field(self):
        with self.assertRaises(ValidationError) as cm:
            adjust_account(self.company, self.cash.pk, {"colour": "red"})
        self.assertEqual(cm.exception.code, "unknown_field")

    def test_type_change_allowed_before_posting(self):
        account = adjust_account(self.company, self.rent.pk, {"type": "asset"})
        self.assertEqual(account.type, "asset")

    def test_type_immutable_after_posting(self):
        entry = self.make_sale()
        post_journal_entry(self.company, entry.pk, clock=fixed_clock)
        with self.assertRaises(DomainError):
            adjust_account(self.company, self.cash.pk, {"type": "expense"})
        self.refresh(self.cash)
        self.assertEqual(self.cash.type, "asset")

    def test_parent_cycles_are_rejected(self):
        child = create_account(self.company, {
            "name": "Bank", "type": "asset", "parent": self.cash.pk})
        with self.assertRaises(DomainError):
            adjust_account(self.company, self.cash.pk, {"parent": child.pk})
        with self.assertRaises(DomainError):
            adjust_account(self.company, self.cash.pk, {"parent": self.cash.pk})

    def test_reparent_and_detach(self):
        account = adjust_account(self.company, self.payable.pk, {"parent": None})
        self.assertIsNone(account.parent)


class AccountDeletionTests(LedgerTestMixin, TestCase):

    def test_soft_delete(self):
        spare = create_account(self.company, {"name": "Spare", "type": "asset"})
        delete_account(self.company, spare.pk, clock=fixed_clock)

        row = Account.objects.get(pk=spare.pk)  # still in the table
        self.assertIsNotNone(row.deleted_at)
        self.assertFalse(row.is_active)
        with self.assertRaises(NotFoundError):
            get_account(self.company, spare.pk)
        # a deleted account keeps its number
        self.assertEqual(next_account_number(self.company, "asset"), "1112")

    def test_system_account_cannot_be_deleted(self):
        system = create_account(self.company, {
            "name": "Retained", "type": "equity", "is_system": True})
        with self.assertRaises(DomainError):
            delete_account(self.company, system.pk)

    def test_account_with_lines_cannot_be_deleted(self):
        self.make_sale()  # draft lines are enough
        with self.assertRaises(DomainError):
            delete_account(self.company, self.cash.pk)

    def test_account_with_children_cannot_be_deleted(self):
        create_account(self.company, {"name": "Bank", "type": "asset", "parent": self.cash.pk})
        with self.assertRaises(DomainError):
            delete_account(self.company, self.cash.pk)

    def test_hard_delete_of_system_account_is_blocked(self):
        system = create_account(self.company, {
            "name": "Retained", "type": "equity", "is_system": True})
        with self.assertRaises(DomainError):
            system.delete()


class ApplyDeltaTests(LedgerTestMixin, TestCase):

    def test_apply_delta_accumulates(self):
        apply_delta(self.company, self.cash.pk, Decimal("100.00"))
        account = apply_delta(self.company, self.cash.pk, Decimal("-30.50"))
        self.assertEqual(account.balance, Decimal("69.50"))

    def test_inactive_account(self):
        adjust_account(self.company, self.cash.pk, {"is_active": False})
        with self.assertRaises(DomainError):
            apply_delta(self.company, self.cash.pk, Decimal("1"))

    def test_missing_account(self):
        with self.assertRaises(NotFoundError):
            apply_delta(self.company, 999999, Decimal("1"))

    def test_balance_must_fit_its_column(self):
        Account.objects.filter(pk=self.cash.pk).update(balance=Decimal("9000000000000000"))
        with self.assertRaises(ValidationError) as cm:
            apply_delta(self.company, self.cash.pk, Decimal("1000000000000000"))
        self.assertEqual(cm.exception.code, "amount_too_large")
        self.refresh(self.cash)
        self.assertEqual(self.cash.balance, Decimal("9000000000000000"))


class DefaultChartTests(LedgerTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        from ledger_core.models import Company

        self.fresh = Company.objects.create(name="Fresh Co", default_currency=self.usd)

    def test_seed_creates_the_standard_chart_once(self):
        created = seed_default_chart(self.fresh)
        self.assertEqual(len(created), len(DEFAULT_CHART))
        self.assertEqual(seed_default_chart(self.fresh), [])

        header = find_by_account_number(self.fresh, "1000")
        self.assertTrue(header.is_system)
        self.assertFalse(header.allow_manual_entries)
        cash = find_by_account_number(self.fresh, "1110")
        self.assertEqual(cash.parent.account_number, "1100")
        self.assertEqual(cash.parent.parent, header)

        roots = chart_of_accounts(self.fresh)
        self.assertEqual([n.account.account_number for n in roots],
                         ["1000", "2000", "3000", "4000", "5000"])

    def test_seed_keeps_existing_numbers(self):
        create_account(self.fresh, {
            "account_number": "1110", "name": "My Cash", "type": "asset"})
        created = seed_default_chart(self.fresh)
        self.assertEqual(len(created), len(DEFAULT_CHART) - 1)
        self.assertEqual(find_by_account_number(self.fresh, "1110").name, "My Cash")
