from .account import AccountAdmin
from .actions import (close_fiscal_periods, post_journal_entries,
                      reverse_journal_entries, soft_delete_accounts)
from .company import CompanyAdmin, CurrencyAdmin
from .forms import (AccountAdminForm, FiscalPeriodAdminForm,
                    JournalEntryAdminForm, JournalEntryLineInlineForm)
from .inlines import JournalEntryLineInline
from .journal import JournalEntryAdmin
from .mixins import TenantAdminMixin
from .period import FiscalPeriodAdmin
