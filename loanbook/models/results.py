from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from loanbook.models.loan import Payment


class InstallmentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    LATE = "late"


@dataclass(frozen=True)
class Installment:
    number: int  # 1-based
    due_date: date
    amount: Decimal  # interest_amount + principal_amount
    interest_amount: Decimal
    principal_amount: Decimal
    balance_before_payment: Decimal
    balance: Decimal  # After this installment
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_at: date | None = None
    days_elapsed: int | None = None  # Since the previous installment event
    paid_amount: Decimal = Decimal("0")  # Partial money applied to an unpaid row
    source_payment: Payment | None = None


@dataclass
class LoanProjection:
    total_amount: Decimal = Decimal("0")
    monthly_payment: Decimal = Decimal("0")
    installments: list[Installment] = field(default_factory=list)


@dataclass
class AccrualResult:
    current_balance: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    accumulated_interest: Decimal = Decimal("0")


@dataclass
class ReconciliationResult:
    installments: list[Installment] = field(default_factory=list)
    current_balance: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    accumulated_interest: Decimal = Decimal("0")  # Indefinite-term loans only
    monthly_payment: Decimal = Decimal("0")  # Installment value at the start of the schedule
    overpaid: Decimal = Decimal("0")  # Pool money left after the last installment

    def installment(self, number: int) -> Installment:
        for inst in self.installments:
            if inst.number == number:
                return inst
        raise KeyError(f"No installment number {number}")


@dataclass
class LoanSummary:
    """Card-level view of a reconciled loan."""
    paid_count: int = 0
    total_installments: int = 0
    progress_pct: Decimal = Decimal("0")
    next_installment: Installment | None = None
    current_balance: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    accumulated_interest: Decimal = Decimal("0")
    is_paid_off: bool = False
