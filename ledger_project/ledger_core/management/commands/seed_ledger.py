import datetime

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from ledger_core.choices import PeriodType
from ledger_core.exceptions import LedgerError
from ledger_core.models import Company, Currency
from ledger_core.services import (get_period_for_date, open_period,
                                  seed_default_chart)

# code, name, symbol, minor-unit digits
STANDARD_CURRENCIES = [
    ("USD", "US Dollar", "$", 2),
    ("EUR", "Euro", "€", 2),
    ("GBP", "Pound Sterling", "£", 2),
    ("JPY", "Japanese Yen", "¥", 0),
    ("KWD", "Kuwaiti Dinar", "KD", 3),
]


class Command(BaseCommand):
    help = (
        "Create a company with the standard currencies, the default chart "
        "of accounts and an open fiscal year."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",  # Define flag
            default="Demo Company",
            help="Name of the company to create (or reuse).",
        )
        parser.add_argument(
            "--currency", default="USD", help="Default (functional) currency."
        )
        parser.add_argument(
            "--year", type=int, default=None,
            help="Fiscal year to open (default: current year).",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        # Read arguments from add_arguments()
        company_name = options["company_name"]
        currency_code = options["currency"].upper()
        year = options["year"] or datetime.date.today().year

        for code, name, symbol, places in STANDARD_CURRENCIES:
            Currency.objects.get_or_create(
                code=code,
                defaults={"name": name, "symbol": symbol, "decimal_places": places},
            )
        try:
            currency = Currency.objects.get(pk=currency_code)
        except Currency.DoesNotExist:
            raise CommandError(f"Unknown currency {currency_code}")

        company, created = Company.objects.get_or_create(
            name=company_name, defaults={"default_currency": currency}
        )
        self.stdout.write(self.style.NOTICE(
            f"{'Created' if created else 'Using'} company {company.name} ({company.slug})"))

        try:
            accounts = seed_default_chart(company)
            start = datetime.date(year, 1, 1)
            if get_period_for_date(company, start) is None:
                open_period(company, {
                    "name": f"FY {year}",
                    "period_type": PeriodType.YEAR,
                    "fiscal_year": year,
                    "start_date": start,
                    "end_date": datetime.date(year, 12, 31),
                })
        except LedgerError as exc:
            raise CommandError(str(exc))

        self.stdout.write(self.style.SUCCESS(
            f"Ledger seeded: {len(accounts)} account(s) created, FY {year} open."))
