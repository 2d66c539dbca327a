"""Fixed-term loan projection (the schedule shown before any payment exists).

Pure functions: Decimal in, dataclass out. No I/O.
"""

import logging
from datetime import date
from decimal import Decimal

from loanbook.engine.rates import ONE, ZERO, add_months, annuity_payment, is_valid_amount, monthly_rate, usable_date
from loanbook.models.loan import InterestType, LoanDefinition
from loanbook.models.results import Installment, LoanProjection

logger = logging.getLogger(__name__)

ROUNDING_CLEANUP = Decimal("1")  # Final balance under this is rounding noise


def project(
    principal: Decimal,
    rate: Decimal,
    term_months: int | None,
    interest_type: InterestType,
    start_date: date,
) -> LoanProjection:
    """Project the full schedule of a fixed-term loan.

    Args:
        principal: Amount borrowed
        rate: Effective monthly rate (e.g. Decimal("0.02") for 2%)
        term_months: Number of installments; None or <= 0 means indefinite term
        interest_type: Price amortization or equal-split compound
        start_date: Installment i falls due start_date + i months; today when unusable

    An indefinite term returns the principal as total and the first month's
    interest as a suggested minimum payment, with no installments.
    """
    if not is_valid_amount(principal) or principal <= 0 or not is_valid_amount(rate) or rate < 0:
        logger.warning("Rejecting projection input principal=%s rate=%s", principal, rate)
        return LoanProjection()

    if not term_months or term_months <= 0:
        return LoanProjection(total_amount=principal, monthly_payment=principal * rate)

    first_date = usable_date(start_date)
    if first_date is None:
        logger.warning("Start date %r unusable, projecting from today", start_date)
        first_date = date.today()

    if interest_type == InterestType.COMPOUND:
        return equal_split_compound(principal, rate, term_months, first_date)
    return price_schedule(principal, rate, term_months, first_date)


def project_loan(loan: LoanDefinition) -> LoanProjection:
    rate = monthly_rate(loan.interest_rate, loan.interest_period)
    return project(loan.principal, rate, loan.term_months, loan.interest_type, loan.start_date)


def price_schedule(principal: Decimal, rate: Decimal, term_months: int, start_date: date) -> LoanProjection:
    """Constant-payment (Price / French) amortization."""
    pmt = annuity_payment(principal, rate, term_months)
    balance = principal
    installments: list[Installment] = []

    for number in range(1, term_months + 1):
        interest = balance * rate
        amortization = pmt - interest
        balance_before = balance
        balance -= amortization

        # Final payment adjustment
        if number == term_months and abs(balance) < ROUNDING_CLEANUP:
            balance = ZERO

        installments.append(Installment(
            number=number,
            due_date=add_months(start_date, number),
            amount=pmt,
            interest_amount=interest,
            principal_amount=amortization,
            balance_before_payment=balance_before,
            balance=max(ZERO, balance),
        ))

    return LoanProjection(
        total_amount=sum((i.amount for i in installments), ZERO),
        monthly_payment=pmt,
        installments=installments,
    )


def equal_split_compound(principal: Decimal, rate: Decimal, term_months: int, start_date: date) -> LoanProjection:
    """Compound the principal over the whole term, then split it evenly.

    Every installment carries the same interest and principal share. This is a
    deliberate approximation, not an amortizing schedule.
    """
    final_amount = principal * (ONE + rate) ** term_months
    pmt = final_amount / term_months
    interest_share = (final_amount - principal) / term_months
    principal_share = principal / term_months

    installments = [
        Installment(
            number=number,
            due_date=add_months(start_date, number),
            amount=pmt,
            interest_amount=interest_share,
            principal_amount=principal_share,
            balance_before_payment=final_amount - pmt * (number - 1),
            balance=max(ZERO, final_amount - pmt * number),
        )
        for number in range(1, term_months + 1)
    ]
    return LoanProjection(total_amount=final_amount, monthly_payment=pmt, installments=installments)
