"""Pydantic schemas for API request/response models."""

import datetime as dt
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from loanbook.models.loan import InterestPeriod, InterestType, LoanStatus, LoanType


# ---- Request schemas ----

class LoanDefinitionIn(BaseModel):
    principal: Decimal = Field(..., gt=0, description="Amount borrowed or lent")
    interest_rate: Decimal = Field(Decimal("0"), ge=0, description="Nominal rate in %")
    interest_period: InterestPeriod = InterestPeriod.MONTHLY
    interest_type: InterestType = InterestType.FIXED_INSTALLMENT
    term_months: int | None = Field(None, ge=0, description="Installments; null or 0 = indefinite")
    start_date: dt.date


class LoanCreate(LoanDefinitionIn):
    name: str = Field(..., min_length=2, max_length=100)
    loan_type: LoanType = LoanType.BORROWED
    owner_id: str = ""


class PaymentIn(BaseModel):
    amount: Decimal
    date: dt.date | None = None
    note: str | None = None
    installment_number: int | None = Field(None, ge=1)
    id: str | None = None


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    date: dt.date | None = Field(None, description="Defaults to today")
    note: str | None = None


class PaymentsReplace(BaseModel):
    """Edited payment list to save wholesale. Zero amounts are dropped."""
    payments: list[PaymentIn] = []


class ScheduleRequest(BaseModel):
    loan: LoanDefinitionIn
    payments: list[PaymentIn] = []


class InstallmentEditRequest(ScheduleRequest):
    number: int = Field(..., ge=1)
    action: Literal["amount", "date", "paid", "pending"]
    amount: Decimal | None = Field(None, ge=0)
    date: dt.date | None = None


# ---- Response schemas ----

class PaymentResponse(BaseModel):
    id: str | None = None
    amount: Decimal
    date: dt.date | None = None
    note: str | None = None
    installment_number: int | None = None


class InstallmentResponse(BaseModel):
    number: int
    due_date: dt.date
    amount: Decimal
    interest_amount: Decimal
    principal_amount: Decimal
    balance_before_payment: Decimal
    balance: Decimal
    status: str
    paid_at: dt.date | None = None
    days_elapsed: int | None = None
    paid_amount: Decimal = Decimal("0")
    source_payment_id: str | None = None


class ProjectionResponse(BaseModel):
    total_amount: Decimal
    monthly_payment: Decimal
    installments: list[InstallmentResponse] = []


class SummaryResponse(BaseModel):
    paid_count: int
    total_installments: int
    progress_pct: Decimal
    next_due_date: dt.date | None = None
    next_amount: Decimal | None = None
    current_balance: Decimal
    total_paid: Decimal
    accumulated_interest: Decimal
    is_paid_off: bool


class ScheduleResponse(BaseModel):
    installments: list[InstallmentResponse] = []
    current_balance: Decimal
    total_paid: Decimal
    accumulated_interest: Decimal
    monthly_payment: Decimal
    overpaid: Decimal = Decimal("0")
    summary: SummaryResponse


class InstallmentEditResponse(BaseModel):
    payments: list[PaymentResponse] = []
    schedule: ScheduleResponse


class LoanResponse(BaseModel):
    id: UUID
    name: str
    owner_id: str
    loan_type: LoanType
    status: LoanStatus
    principal: Decimal
    interest_rate: Decimal
    interest_period: InterestPeriod
    interest_type: InterestType
    term_months: int | None = None
    start_date: dt.date
    summary: SummaryResponse


class LoanDetailResponse(LoanResponse):
    schedule: ScheduleResponse
    payments: list[PaymentResponse] = []
