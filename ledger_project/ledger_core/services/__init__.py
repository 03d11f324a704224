from .accounts import (adjust_account, apply_delta, chart_of_accounts,
                       create_account, delete_account, find_by_account_number,
                       get_account, get_children, get_descendants,
                       get_normal_balance_side, list_active, list_by_type,
                       search_accounts, seed_default_chart)
from .journal import (PostingResult, add_line, create_journal_entry,
                      delete_journal_entry, get_entry, post_journal_entry,
                      remove_line, reverse_journal_entry, update_journal_entry,
                      update_line, validate_balance)
from .periods import (PeriodCloseResult, close_period, current_period,
                      get_period, get_period_for_date, is_open, list_periods,
                      open_period, reopen_period)
from .reports import (draft_aging, find_by_entry_number, list_by_date_range,
                      list_by_fiscal_period, list_by_status, trial_balance,
                      unbalanced_entries)
