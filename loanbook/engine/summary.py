"""Card-level summary of a reconciled loan."""

from decimal import Decimal, ROUND_HALF_UP

from loanbook.engine.rates import HUNDRED, ZERO, is_valid_amount
from loanbook.models.loan import LoanDefinition
from loanbook.models.results import InstallmentStatus, LoanSummary, ReconciliationResult

TWO_PLACES = Decimal("0.01")


def summarize(loan: LoanDefinition, result: ReconciliationResult) -> LoanSummary:
    """Progress and next due installment.

    Fixed-term progress is the share of installments paid. Indefinite loans have no
    installments, so progress is the share of the principal repaid.
    """
    installments = result.installments
    paid = [i for i in installments if i.status == InstallmentStatus.PAID]
    next_installment = next((i for i in installments if i.status != InstallmentStatus.PAID), None)

    if installments:
        progress = Decimal(len(paid)) / Decimal(len(installments)) * HUNDRED
        is_paid_off = len(paid) == len(installments)
    elif loan.is_indefinite and is_valid_amount(loan.principal) and loan.principal > 0:
        repaid = max(ZERO, loan.principal - result.current_balance)
        progress = min(HUNDRED, repaid / loan.principal * HUNDRED)
        is_paid_off = result.total_paid > 0 and result.current_balance == 0
    else:
        progress = ZERO
        is_paid_off = False

    return LoanSummary(
        paid_count=len(paid),
        total_installments=len(installments),
        progress_pct=progress.quantize(TWO_PLACES, ROUND_HALF_UP),
        next_installment=next_installment,
        current_balance=result.current_balance,
        total_paid=result.total_paid,
        accumulated_interest=result.accumulated_interest,
        is_paid_off=is_paid_off,
    )
