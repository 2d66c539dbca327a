"""Dynamic schedule: the fixed-term projection reconciled against actual payments.

The schedule is never stored. Every call rebuilds it from the loan definition and
the payment list, so identical inputs always give identical output.

Allocation is FIFO over a pool holding the sum of all payments: installment 1 is
funded first, then 2, and so on, regardless of when each payment was made. When an
installment cannot be fully funded it turns pending (due date not reached) or late,
and under the term-fixed policy the installment value is recomputed over the
remaining months from the current balance. An early lump sum therefore lowers later
installments while the end date stays put.

Balance rollforward:
    paid     -> balance drops by the installment's amortization
    pending  -> balance drops as if paid on schedule (drives later interest)
    late     -> balance unchanged, except for principal covered by a partial payment

Pure functions. No I/O.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loanbook.engine.accrual import accrue
from loanbook.engine.rates import (
    ONE,
    ZERO,
    add_months,
    annuity_payment,
    days_between,
    is_valid_amount,
    monthly_rate,
    usable_date,
)
from loanbook.models.loan import (
    OVERRIDE_TAG,
    InterestType,
    LoanDefinition,
    Payment,
    ReconcileOptions,
    RestructuringPolicy,
)
from loanbook.models.results import Installment, InstallmentStatus, ReconciliationResult

logger = logging.getLogger(__name__)

MAX_EXTENSION_MONTHS = 600  # Payment-fixed schedules may run past the term
DUST = Decimal("1e-9")


def allocatable_payments(payments: list[Payment], override_tag: str = OVERRIDE_TAG) -> list[Payment]:
    """Payments that fund the pool, in the order the pool consumes them.

    Overrides, zero or negative amounts and non-finite amounts are left out.
    Payments without a date go last; ties keep their input order.
    """
    funding = []
    for p in payments:
        if p.is_override(override_tag):
            continue
        if not is_valid_amount(p.amount) or p.amount <= 0:
            logger.debug("Skipping payment with unusable amount %r", p.amount)
            continue
        funding.append(p)
    return sorted(funding, key=lambda p: (usable_date(p.date) is None, usable_date(p.date) or date.min))


class _PaymentPool:
    """FIFO cursor over the payment list.

    Leftovers below DUST are Decimal rounding noise and are dropped rather than
    spilling into the next payment.
    """

    def __init__(self, payments: list[Payment]):
        self._queue = [[p, p.amount] for p in payments]
        self._index = 0

    @property
    def remaining(self) -> Decimal:
        return sum((entry[1] for entry in self._queue[self._index:]), ZERO)

    def draw(self, amount: Decimal) -> tuple[Decimal, list[Payment]]:
        """Consume up to `amount`; return what was taken and the payments it came from."""
        consumed = ZERO
        touched: list[Payment] = []
        while amount - consumed > DUST and self._index < len(self._queue):
            entry = self._queue[self._index]
            take = min(entry[1], amount - consumed)
            entry[1] -= take
            consumed += take
            touched.append(entry[0])
            if entry[1] <= DUST:
                entry[1] = ZERO
                self._index += 1
        return consumed, touched


@dataclass(frozen=True)
class _PeriodModel:
    """Per-period interest/amortization split shared by both interest types.

    `balance` is always the outstanding principal. For the compound type each unit
    of principal carries the same compounded interest `markup`, which reproduces
    the equal-split projection when nothing deviates.
    """
    interest_type: InterestType
    rate: Decimal
    markup: Decimal = ZERO  # Compound only: (1 + r)^n - 1

    def split(self, balance: Decimal, payment: Decimal) -> tuple[Decimal, Decimal]:
        if self.interest_type == InterestType.COMPOUND:
            amortization = min(payment / (ONE + self.markup), balance)
            return amortization * self.markup, max(ZERO, amortization)
        interest = balance * self.rate
        amortization = min(payment - interest, balance)
        return interest, max(ZERO, amortization)

    def recompute(self, balance: Decimal, months: int) -> Decimal:
        if self.interest_type == InterestType.COMPOUND:
            return balance * (ONE + self.markup) / months if months > 0 and balance > 0 else ZERO
        return annuity_payment(balance, self.rate, months)

    def owed(self, balance: Decimal) -> Decimal:
        """Outstanding balance as shown to the user."""
        if self.interest_type == InterestType.COMPOUND:
            return balance * (ONE + self.markup)
        return balance


def _is_valid_loan(loan: LoanDefinition) -> bool:
    if not is_valid_amount(loan.principal) or loan.principal <= 0:
        return False
    if not is_valid_amount(loan.interest_rate) or loan.interest_rate < 0:
        return False
    return loan.term_months is None or loan.term_months >= 0


def _paid_at(touched: list[Payment], due: date) -> date:
    """Latest funding payment on or before the due date, else the completing payment, else the due date."""
    dated = [d for d in map(usable_date, (p.date for p in touched)) if d is not None]
    on_time = [d for d in dated if d <= due]
    if on_time:
        return max(on_time)
    if dated:
        return dated[-1]
    return due


def reconcile(
    loan: LoanDefinition,
    payments: list[Payment],
    today: date,
    options: ReconcileOptions | None = None,
) -> ReconciliationResult:
    """Rebuild the schedule of `loan` from its payment history.

    Args:
        loan: Loan definition
        payments: Every recorded payment, in any order
        today: Reference date for late/pending classification (injected clock)
        options: Restructuring policy, tolerances and override tag

    Indefinite-term loans have no schedule; their balance comes from daily accrual.
    Invalid loan input yields an empty, zeroed result instead of an exception.
    """
    options = options or ReconcileOptions()

    if not _is_valid_loan(loan):
        logger.warning(
            "Rejecting loan input principal=%s rate=%s term=%s",
            loan.principal, loan.interest_rate, loan.term_months,
        )
        return ReconciliationResult()

    rate = monthly_rate(loan.interest_rate, loan.interest_period)

    if loan.is_indefinite:
        accrual = accrue(loan, payments, today, options.override_tag)
        return ReconciliationResult(
            current_balance=accrual.current_balance,
            total_paid=accrual.total_paid,
            accumulated_interest=accrual.accumulated_interest,
            monthly_payment=accrual.current_balance * rate,
        )

    start_date = usable_date(loan.start_date)
    if start_date is None:
        logger.warning("Loan start date %r unusable, scheduling from %s", loan.start_date, today)
        start_date = today

    term = loan.term_months
    model = _PeriodModel(
        interest_type=loan.interest_type,
        rate=rate,
        markup=(ONE + rate) ** term - ONE if loan.interest_type == InterestType.COMPOUND else ZERO,
    )
    pool = _PaymentPool(allocatable_payments(payments, options.override_tag))
    total_paid = pool.remaining

    payment = model.recompute(loan.principal, term)
    initial_payment = payment
    balance = loan.principal
    current_balance = loan.principal
    last_event = start_date

    term_fixed = options.restructuring == RestructuringPolicy.TERM_FIXED
    limit = term if term_fixed else term + MAX_EXTENSION_MONTHS

    installments: list[Installment] = []
    for number in range(1, limit + 1):
        if number > term and balance <= options.payoff_tolerance:
            break

        due = add_months(start_date, number)
        balance_before = balance
        interest, amortization = model.split(balance, payment)
        value = interest + amortization
        paid_amount = ZERO
        paid_at = None
        days_elapsed = None
        source = None

        if pool.remaining >= value - options.paid_tolerance:
            status = InstallmentStatus.PAID
            paid_amount, touched = pool.draw(value)
            balance -= amortization
            source = touched[-1] if touched else None
            paid_at = _paid_at(touched, due)
            days_elapsed = max(0, days_between(last_event, paid_at))
            last_event = max(last_event, paid_at)
        else:
            if pool.remaining > 0:
                # Partial payment: interest first, remainder to principal
                paid_amount, touched = pool.draw(pool.remaining)
                principal_paid = paid_amount - min(paid_amount, interest)
                balance -= min(principal_paid, balance)
                source = touched[-1] if touched else None
            status = InstallmentStatus.LATE if due < today else InstallmentStatus.PENDING

            if term_fixed:
                payment = model.recompute(balance, max(1, term - number + 1))
                interest, amortization = model.split(balance, payment)
                value = interest + amortization

            if status == InstallmentStatus.PENDING:
                balance -= amortization

        installments.append(Installment(
            number=number,
            due_date=due,
            amount=value,
            interest_amount=interest,
            principal_amount=amortization,
            balance_before_payment=model.owed(balance_before),
            balance=model.owed(balance),
            status=status,
            paid_at=paid_at,
            days_elapsed=days_elapsed,
            paid_amount=paid_amount,
            source_payment=source,
        ))

        if due <= today:
            current_balance = model.owed(balance)

        # The schedule ends once the debt is cleared; surplus money is reported, not scheduled
        if balance <= options.payoff_tolerance:
            break

    return ReconciliationResult(
        installments=installments,
        current_balance=current_balance,
        total_paid=total_paid,
        monthly_payment=initial_payment,
        overpaid=pool.remaining,
    )
