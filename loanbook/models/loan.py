from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

OVERRIDE_TAG = "OVERRIDE"


class InterestPeriod(Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class InterestType(Enum):
    FIXED_INSTALLMENT = "fixed_installment"  # Price / French amortization
    COMPOUND = "compound"  # Equal split of compounded total


class LoanType(Enum):
    BORROWED = "borrowed"
    LENT = "lent"


class LoanStatus(Enum):
    ACTIVE = "active"
    PAID = "paid"
    DEFAULTED = "defaulted"


class RestructuringPolicy(Enum):
    """What changes after the balance drifts from the projection."""
    TERM_FIXED = "term_fixed"  # Recompute installment value, keep the term
    PAYMENT_FIXED = "payment_fixed"  # Keep installment value, move the end date


@dataclass(frozen=True)
class LoanDefinition:
    principal: Decimal
    interest_rate: Decimal  # Nominal %, e.g. Decimal("2") for 2% per period
    interest_period: InterestPeriod = InterestPeriod.MONTHLY
    interest_type: InterestType = InterestType.FIXED_INSTALLMENT
    term_months: int | None = None  # None or 0 = indefinite
    start_date: date = date(1970, 1, 1)

    @property
    def is_indefinite(self) -> bool:
        return not self.term_months or self.term_months <= 0


@dataclass(frozen=True)
class Payment:
    amount: Decimal
    date: date | None
    note: str | None = None
    installment_number: int | None = None  # Join key assigned from reconciliation
    id: str | None = None  # Store identity, opaque to the engine

    def is_override(self, tag: str = OVERRIDE_TAG) -> bool:
        """Override payments hold a rescheduled projection, not money received."""
        return bool(self.note) and tag in self.note


@dataclass(frozen=True)
class ReconcileOptions:
    restructuring: RestructuringPolicy = RestructuringPolicy.TERM_FIXED
    paid_tolerance: Decimal = Decimal("0.10")  # Pool shortfall still counted as paid
    payoff_tolerance: Decimal = Decimal("0.01")  # Balance treated as zero; the schedule stops there
    override_tag: str = OVERRIDE_TAG
