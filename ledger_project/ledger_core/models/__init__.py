from .account import Account
from .company import Company
from .currency import Currency
from .journal import JournalEntry, JournalEntryLine
from .period import FiscalPeriod
from .sequence import CompanySequence
