from django import forms
from django.core.exceptions import ValidationError

from ledger_core.choices import PeriodStatus
from ledger_core.exceptions import LedgerError
from ledger_core.models import Account, FiscalPeriod, JournalEntry, JournalEntryLine
from ledger_core.services.accounts import has_posted_activity
from ledger_core.services.journal import resolve_period
from ledger_core.services.validation import clean_exchange_rate, clean_line_amounts

# -----------------------------
# Register custom admin forms
# ----------------------------


def _as_form_error(exc):
    # ledger errors → form error shown on top of the admin form
    return ValidationError(getattr(exc, "messages", None) or str(exc))


class AccountAdminForm(forms.ModelForm):
    class Meta:
        model = Account
        exclude = ("balance", "deleted_at")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # blank → next free number of the type block
        if "account_number" in self.fields:
            self.fields["account_number"].required = False

    def clean(self):
        cleaned = super().clean()
        instance = self.instance

        # type is frozen once anything posted against the account
        if instance.pk and "type" in self.changed_data and has_posted_activity(instance):
            raise ValidationError(
                {"type": "Cannot change the type of an account with posted activity"}
            )

        # Parent must be same company and not a descendant (no cycles)
        parent = cleaned.get("parent")
        company = cleaned.get("company") or getattr(instance, "company", None)
        if parent and company and parent.company_id != company.pk:
            raise ValidationError(
                {"parent": "Parent & child accounts must belong to the same company"}
            )
        current = parent
        while instance.pk and current is not None:
            if current.pk == instance.pk:
                raise ValidationError(
                    {"parent": "An account cannot be placed under itself or its descendants"}
                )
            current = current.parent
        return cleaned


class JournalEntryAdminForm(forms.ModelForm):
    class Meta:
        model = JournalEntry
        fields = ("company", "entry_date", "fiscal_period", "currency",
                  "reference", "description", "tags")

    def clean(self):
        cleaned = super().clean()
        company = cleaned.get("company") or getattr(self.instance, "company", None)
        entry_date = cleaned.get("entry_date")
        if company and entry_date:
            # open period that contains the date
            try:
                cleaned["fiscal_period"] = resolve_period(
                    company, cleaned.get("fiscal_period"), entry_date
                )
            except LedgerError as exc:
                raise _as_form_error(exc)
        return cleaned


# Inline form for JournalEntryLine (admin)
class JournalEntryLineInlineForm(forms.ModelForm):
    class Meta:
        model = JournalEntryLine
        fields = ("account", "description", "currency", "debit_amount",
                  "credit_amount", "exchange_rate")

    def clean(self):
        cleaned = super().clean()
        if self.cleaned_data.get("DELETE"):
            return cleaned

        account = cleaned.get("account")
        currency = cleaned.get("currency")
        entry = getattr(self.instance, "journal_entry", None) \
            if self.instance.journal_entry_id else None

        try:
            if currency is not None:
                clean_line_amounts(
                    cleaned.get("debit_amount"), cleaned.get("credit_amount"),
                    currency.decimal_places,
                )
                if entry is not None:
                    clean_exchange_rate(cleaned.get("exchange_rate"), currency, entry.currency)
        except LedgerError as exc:
            raise _as_form_error(exc)

        if account is not None and not account.allow_manual_entries:
            raise ValidationError(
                {"account": f"Account {account.account_number} does not allow manual entries"}
            )
        return cleaned


class FiscalPeriodAdminForm(forms.ModelForm):
    class Meta:
        model = FiscalPeriod
        fields = ("company", "name", "period_type", "fiscal_year",
                  "start_date", "end_date")

    def clean(self):
        cleaned = super().clean()
        company = cleaned.get("company") or getattr(self.instance, "company", None)
        start, end = cleaned.get("start_date"), cleaned.get("end_date")
        if start and end and start > end:
            raise ValidationError("start_date must not be after end_date")
        if self.instance.pk and self.instance.status == PeriodStatus.CLOSED:
            raise ValidationError("A closed period cannot be edited")
        if company and start and end:
            # Sibling periods never overlap
            overlapping = FiscalPeriod.objects.for_company(company).filter(
                start_date__lte=end, end_date__gte=start
            ).exclude(pk=self.instance.pk)
            if overlapping.exists():
                raise ValidationError(
                    f"Period overlaps '{overlapping.first().name}'"
                )
        return cleaned
