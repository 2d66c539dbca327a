"""Running balance of a loan with no fixed term.

Interest compounds daily between payment events; payments reduce the balance
on the day they are made. Pure functions. No I/O.
"""

import logging
from datetime import date
from decimal import Decimal

from loanbook.engine.rates import ONE, ZERO, daily_rate, days_between, is_valid_amount, monthly_rate, usable_date
from loanbook.models.loan import OVERRIDE_TAG, LoanDefinition, Payment
from loanbook.models.results import AccrualResult

logger = logging.getLogger(__name__)


def _interest_for_gap(balance: Decimal, rate_per_day: Decimal, days: int) -> Decimal:
    if balance <= 0 or days <= 0 or rate_per_day == 0:
        return ZERO
    return balance * ((ONE + rate_per_day) ** days - ONE)


def accrue(
    loan: LoanDefinition,
    payments: list[Payment],
    as_of: date,
    override_tag: str = OVERRIDE_TAG,
) -> AccrualResult:
    """Debt position of `loan` on `as_of`.

    Payments dated after `as_of`, without a date, with a non-finite or negative
    amount, or tagged as overrides are ignored. The balance never goes below zero.
    """
    principal = loan.principal
    if not is_valid_amount(principal) or principal <= 0 or not is_valid_amount(loan.interest_rate):
        logger.warning("Rejecting accrual input principal=%s rate=%s", principal, loan.interest_rate)
        return AccrualResult()

    rate_per_day = daily_rate(monthly_rate(loan.interest_rate, loan.interest_period))

    start_date = usable_date(loan.start_date)
    if start_date is None:
        logger.warning("Loan start date %r unusable, accruing from %s", loan.start_date, as_of)
        start_date = as_of

    applied = []
    for p in payments:
        when = usable_date(p.date)
        if when is None or when > as_of or p.is_override(override_tag):
            continue
        if is_valid_amount(p.amount) and p.amount >= 0:
            applied.append((when, p))
    applied.sort(key=lambda pair: pair[0])

    balance = principal
    accumulated = ZERO
    total_paid = ZERO
    last_event = start_date

    for when, payment in applied:
        interest = _interest_for_gap(balance, rate_per_day, days_between(last_event, when))
        balance += interest
        accumulated += interest
        balance = max(ZERO, balance - payment.amount)
        total_paid += payment.amount
        last_event = max(last_event, when)

    interest = _interest_for_gap(balance, rate_per_day, days_between(last_event, as_of))
    balance += interest
    accumulated += interest

    return AccrualResult(
        current_balance=max(ZERO, balance),
        total_paid=total_paid,
        accumulated_interest=accumulated,
    )
