"""Loan routes: form preview, live schedule editing and stored loans."""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from loanbook.api.deps import get_options, get_repository, get_today
from loanbook.api.schemas import (
    InstallmentEditRequest,
    InstallmentEditResponse,
    InstallmentResponse,
    LoanCreate,
    LoanDefinitionIn,
    LoanDetailResponse,
    LoanResponse,
    PaymentCreate,
    PaymentIn,
    PaymentResponse,
    PaymentsReplace,
    ProjectionResponse,
    ScheduleRequest,
    ScheduleResponse,
    SummaryResponse,
)
from loanbook.engine.pinning import (
    canonical_payments,
    mark_paid,
    mark_pending,
    pin_payments,
    set_installment_amount,
    set_installment_date,
)
from loanbook.engine.projection import project_loan
from loanbook.engine.reconcile import reconcile
from loanbook.engine.summary import summarize
from loanbook.models.db import LoanRecord
from loanbook.models.loan import LoanDefinition, LoanStatus, Payment, ReconcileOptions
from loanbook.models.results import Installment, ReconciliationResult
from loanbook.store.base import LoanRepository
from loanbook.store.sql import to_definition, to_payment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/loans", tags=["loans"])

TWO_PLACES = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, ROUND_HALF_UP)


def _definition(req: LoanDefinitionIn) -> LoanDefinition:
    return LoanDefinition(
        principal=req.principal,
        interest_rate=req.interest_rate,
        interest_period=req.interest_period,
        interest_type=req.interest_type,
        term_months=req.term_months,
        start_date=req.start_date,
    )


def _payments(items: list[PaymentIn]) -> list[Payment]:
    return [
        Payment(
            amount=p.amount,
            date=p.date,
            note=p.note,
            installment_number=p.installment_number,
            id=p.id,
        )
        for p in items
    ]


def _payment_response(p: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=p.id,
        amount=_money(p.amount),
        date=p.date,
        note=p.note,
        installment_number=p.installment_number,
    )


def _installment_response(inst: Installment) -> InstallmentResponse:
    return InstallmentResponse(
        number=inst.number,
        due_date=inst.due_date,
        amount=_money(inst.amount),
        interest_amount=_money(inst.interest_amount),
        principal_amount=_money(inst.principal_amount),
        balance_before_payment=_money(inst.balance_before_payment),
        balance=_money(inst.balance),
        status=inst.status.value,
        paid_at=inst.paid_at,
        days_elapsed=inst.days_elapsed,
        paid_amount=_money(inst.paid_amount),
        source_payment_id=inst.source_payment.id if inst.source_payment else None,
    )


def _schedule_response(loan: LoanDefinition, result: ReconciliationResult) -> ScheduleResponse:
    s = summarize(loan, result)
    nxt = s.next_installment
    summary = SummaryResponse(
        paid_count=s.paid_count,
        total_installments=s.total_installments,
        progress_pct=s.progress_pct,
        next_due_date=nxt.due_date if nxt else None,
        next_amount=_money(nxt.amount) if nxt else None,
        current_balance=_money(s.current_balance),
        total_paid=_money(s.total_paid),
        accumulated_interest=_money(s.accumulated_interest),
        is_paid_off=s.is_paid_off,
    )
    return ScheduleResponse(
        installments=[_installment_response(i) for i in result.installments],
        current_balance=_money(result.current_balance),
        total_paid=_money(result.total_paid),
        accumulated_interest=_money(result.accumulated_interest),
        monthly_payment=_money(result.monthly_payment),
        overpaid=_money(result.overpaid),
        summary=summary,
    )


async def _load(repo: LoanRepository, loan_id: UUID) -> LoanRecord:
    record = await repo.get_loan(loan_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Loan {loan_id} not found")
    return record


async def _detail(
    repo: LoanRepository,
    record: LoanRecord,
    today: date,
    options: ReconcileOptions,
) -> LoanDetailResponse:
    payments = [to_payment(p) for p in await repo.list_payments(record.id)]
    loan = to_definition(record)
    schedule = _schedule_response(loan, reconcile(loan, payments, today, options))
    return LoanDetailResponse(
        **_loan_fields(record),
        summary=schedule.summary,
        schedule=schedule,
        payments=[_payment_response(p) for p in payments],
    )


def _loan_fields(record: LoanRecord) -> dict:
    return {
        "id": record.id,
        "name": record.name,
        "owner_id": record.owner_id,
        "loan_type": record.loan_type,
        "status": record.status,
        "principal": record.principal,
        "interest_rate": record.interest_rate,
        "interest_period": record.interest_period,
        "interest_type": record.interest_type,
        "term_months": record.term_months,
        "start_date": record.start_date,
    }


# ---- Stateless: the form and the schedule editor call these on every change ----

@router.post("/preview", response_model=ProjectionResponse)
async def preview(req: LoanDefinitionIn):
    """Projected schedule for a loan that is still being filled in."""
    projection = project_loan(_definition(req))
    return ProjectionResponse(
        total_amount=_money(projection.total_amount),
        monthly_payment=_money(projection.monthly_payment),
        installments=[_installment_response(i) for i in projection.installments],
    )


@router.post("/schedule", response_model=ScheduleResponse)
async def schedule(
    req: ScheduleRequest,
    today: date = Depends(get_today),
    options: ReconcileOptions = Depends(get_options),
):
    """Reconcile an in-memory payment list without touching storage."""
    loan = _definition(req.loan)
    return _schedule_response(loan, reconcile(loan, _payments(req.payments), today, options))


@router.post("/schedule/edit", response_model=InstallmentEditResponse)
async def edit_schedule(
    req: InstallmentEditRequest,
    today: date = Depends(get_today),
    options: ReconcileOptions = Depends(get_options),
):
    """Apply one installment edit to an in-memory payment list.

    Returns the edited list (pinned to installment numbers) and its new schedule.
    Nothing is persisted until the list is saved with PUT /{loan_id}/payments.
    """
    loan = _definition(req.loan)
    payments = _payments(req.payments)
    result = reconcile(loan, payments, today, options)

    try:
        if req.action == "amount":
            if req.amount is None:
                raise ValueError("amount is required for an amount edit")
            edited = set_installment_amount(
                payments, result, req.number, req.amount, req.date, options.override_tag,
            )
        elif req.action == "date":
            if req.date is None:
                raise ValueError("date is required for a date edit")
            edited = set_installment_date(payments, result, req.number, req.date, options.override_tag)
        elif req.action == "paid":
            edited = mark_paid(payments, result, req.number, req.date, options.override_tag)
        else:
            edited = mark_pending(payments, result, req.number, options.override_tag)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    edited = canonical_payments(edited)
    new_result = reconcile(loan, edited, today, options)
    edited = pin_payments(edited, new_result, options.override_tag)
    return InstallmentEditResponse(
        payments=[_payment_response(p) for p in edited],
        schedule=_schedule_response(loan, new_result),
    )


# ---- Stored loans ----

@router.post("", response_model=LoanDetailResponse, status_code=201)
async def create_loan(
    req: LoanCreate,
    repo: LoanRepository = Depends(get_repository),
    today: date = Depends(get_today),
    options: ReconcileOptions = Depends(get_options),
):
    record = await repo.create_loan(LoanRecord(
        owner_id=req.owner_id,
        name=req.name,
        loan_type=req.loan_type.value,
        status=LoanStatus.ACTIVE.value,
        principal=req.principal,
        interest_rate=req.interest_rate,
        interest_period=req.interest_period.value,
        interest_type=req.interest_type.value,
        term_months=req.term_months or None,
        start_date=req.start_date,
    ))
    return await _detail(repo, record, today, options)


@router.get("", response_model=list[LoanResponse])
async def list_loans(
    owner_id: str | None = None,
    repo: LoanRepository = Depends(get_repository),
    today: date = Depends(get_today),
    options: ReconcileOptions = Depends(get_options),
):
    loans = []
    for record in await repo.list_loans(owner_id):
        payments = [to_payment(p) for p in await repo.list_payments(record.id)]
        loan = to_definition(record)
        schedule = _schedule_response(loan, reconcile(loan, payments, today, options))
        loans.append(LoanResponse(**_loan_fields(record), summary=schedule.summary))
    return loans


@router.get("/{loan_id}", response_model=LoanDetailResponse)
async def get_loan(
    loan_id: UUID,
    repo: LoanRepository = Depends(get_repository),
    today: date = Depends(get_today),
    options: ReconcileOptions = Depends(get_options),
):
    record = await _load(repo, loan_id)
    return await _detail(repo, record, today, options)


@router.delete("/{loan_id}")
async def delete_loan(loan_id: UUID, repo: LoanRepository = Depends(get_repository)):
    if not await repo.delete_loan(loan_id):
        raise HTTPException(status_code=404, detail=f"Loan {loan_id} not found")
    return {"status": "deleted"}


@router.post("/{loan_id}/payments", response_model=LoanDetailResponse, status_code=201)
async def add_payment(
    loan_id: UUID,
    req: PaymentCreate,
    repo: LoanRepository = Depends(get_repository),
    today: date = Depends(get_today),
    options: ReconcileOptions = Depends(get_options),
):
    """Record money paid toward a loan (amortize)."""
    record = await _load(repo, loan_id)
    await repo.add_payment(loan_id, Payment(amount=req.amount, date=req.date or today, note=req.note))
    return await _detail(repo, record, today, options)


@router.put("/{loan_id}/payments", response_model=LoanDetailResponse)
async def save_payments(
    loan_id: UUID,
    req: PaymentsReplace,
    repo: LoanRepository = Depends(get_repository),
    today: date = Depends(get_today),
    options: ReconcileOptions = Depends(get_options),
):
    """Save an edited payment list wholesale.

    The list is canonicalized and pinned to installment numbers before it replaces
    what is stored. The loan is marked paid once every installment is paid.
    """
    record = await _load(repo, loan_id)
    loan = to_definition(record)

    payments = canonical_payments(_payments(req.payments))
    result = reconcile(loan, payments, today, options)
    payments = pin_payments(payments, result, options.override_tag)
    await repo.replace_payments(loan_id, payments)

    is_paid_off = summarize(loan, result).is_paid_off
    if record.status != LoanStatus.DEFAULTED.value:
        status = LoanStatus.PAID if is_paid_off else LoanStatus.ACTIVE
        if record.status != status.value:
            logger.info("Loan %s status %s -> %s", loan_id, record.status, status.value)
            await repo.set_status(loan_id, status.value)

    return await _detail(repo, record, today, options)
