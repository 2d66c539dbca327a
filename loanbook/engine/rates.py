"""Interest-rate normalization and calendar helpers shared by the loan calculators.

Pure functions. No I/O.
"""

from datetime import date, datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from loanbook.models.loan import InterestPeriod

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
TWELFTH = ONE / Decimal("12")
THIRTIETH = ONE / Decimal("30")


def is_valid_amount(value) -> bool:
    """True for a finite Decimal (NaN and Infinity are rejected)."""
    return isinstance(value, Decimal) and value.is_finite()


def monthly_rate(rate: Decimal, period: InterestPeriod) -> Decimal:
    """Convert a nominal % rate to an effective monthly rate.

    Yearly rates use the compound equivalent (1 + i)^(1/12) - 1,
    so 12% a year is ~0.9489% a month, not 1%.
    """
    if rate == 0:
        return ZERO
    if period == InterestPeriod.YEARLY:
        return (ONE + rate / HUNDRED) ** TWELFTH - ONE
    return rate / HUNDRED


def daily_rate(rate_per_month: Decimal) -> Decimal:
    """Daily rate compounding to the monthly rate over a 30-day month."""
    if rate_per_month == 0:
        return ZERO
    return (ONE + rate_per_month) ** THIRTIETH - ONE


def annuity_payment(balance: Decimal, rate: Decimal, months: int) -> Decimal:
    """Constant installment that clears `balance` in `months` periods."""
    if months <= 0 or balance <= 0:
        return ZERO
    if rate == 0:
        return balance / months
    # PMT = P * [r(1+r)^n] / [(1+r)^n - 1]
    factor = (ONE + rate) ** months
    return balance * (rate * factor) / (factor - ONE)


def add_months(start: date, months: int) -> date:
    """Calendar month addition; Jan 31 + 1 month lands on the last day of February."""
    return start + relativedelta(months=months)


def usable_date(value) -> date | None:
    """`value` as a date, or None when it is missing or not a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return None


def days_between(start: date, end: date) -> int:
    return (end - start).days
