"""
Ledger settings with their defaults.

Read at call time (not import time) so override_settings works in tests.
"""
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

DEFAULTS = {
    "LEDGER_ENTRY_NUMBER_PREFIX": "JE",
    "LEDGER_ENTRY_NUMBER_WIDTH": 6,
    "LEDGER_BLOCK_CLOSE_WITH_DRAFTS": False,
    "LEDGER_CLOCK": "django.utils.timezone.now",
    "LEDGER_ACCOUNT_NUMBER_ATTEMPTS": 5,
}


def get(name):
    return getattr(settings, name, DEFAULTS[name])


def get_clock(clock=None):
    """Return a zero-arg callable giving "now" (an aware datetime).

    An explicit `clock` wins, then settings.LEDGER_CLOCK.
    """
    if clock is not None:
        return clock
    path = get("LEDGER_CLOCK")
    if callable(path):
        return path
    return import_string(path)


def today(clock=None):
    # local calendar date according to the configured clock
    now = get_clock(clock)()
    if timezone.is_aware(now):
        now = timezone.localtime(now)
    return now.date()
