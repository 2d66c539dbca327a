"""SQLAlchemy-backed loan repository."""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from loanbook.models.db import LoanPaymentRecord, LoanRecord
from loanbook.models.loan import InterestPeriod, InterestType, LoanDefinition, Payment

logger = logging.getLogger(__name__)


def to_definition(record: LoanRecord) -> LoanDefinition:
    return LoanDefinition(
        principal=record.principal,
        interest_rate=record.interest_rate,
        interest_period=InterestPeriod(record.interest_period),
        interest_type=InterestType(record.interest_type),
        term_months=record.term_months,
        start_date=record.start_date,
    )


def to_payment(record: LoanPaymentRecord) -> Payment:
    return Payment(
        amount=record.amount,
        date=record.payment_date,
        note=record.note,
        installment_number=record.installment_number,
        id=str(record.id),
    )


def _to_record(loan_id: UUID, payment: Payment) -> LoanPaymentRecord:
    return LoanPaymentRecord(
        loan_id=loan_id,
        amount=payment.amount,
        payment_date=payment.date,
        note=payment.note,
        installment_number=payment.installment_number,
    )


class SqlLoanRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_loan(self, record: LoanRecord) -> LoanRecord:
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        logger.info("Created loan %s (%s)", record.id, record.name)
        return record

    async def get_loan(self, loan_id: UUID) -> LoanRecord | None:
        return await self.session.get(LoanRecord, loan_id)

    async def list_loans(self, owner_id: str | None = None) -> list[LoanRecord]:
        stmt = select(LoanRecord).order_by(LoanRecord.created_at, LoanRecord.name)
        if owner_id is not None:
            stmt = stmt.where(LoanRecord.owner_id == owner_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_loan(self, loan_id: UUID) -> bool:
        await self.session.execute(delete(LoanPaymentRecord).where(LoanPaymentRecord.loan_id == loan_id))
        result = await self.session.execute(delete(LoanRecord).where(LoanRecord.id == loan_id))
        await self.session.commit()
        return result.rowcount > 0

    async def set_status(self, loan_id: UUID, status: str) -> None:
        record = await self.session.get(LoanRecord, loan_id)
        if record is None:
            return
        record.status = status
        await self.session.commit()

    async def list_payments(self, loan_id: UUID) -> list[LoanPaymentRecord]:
        stmt = (
            select(LoanPaymentRecord)
            .where(LoanPaymentRecord.loan_id == loan_id)
            .order_by(LoanPaymentRecord.payment_date, LoanPaymentRecord.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_payment(self, loan_id: UUID, payment: Payment) -> LoanPaymentRecord:
        record = _to_record(loan_id, payment)
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        return record

    async def replace_payments(self, loan_id: UUID, payments: list[Payment]) -> list[LoanPaymentRecord]:
        await self.session.execute(delete(LoanPaymentRecord).where(LoanPaymentRecord.loan_id == loan_id))
        records = [_to_record(loan_id, p) for p in payments]
        self.session.add_all(records)
        await self.session.commit()
        logger.info("Replaced payments of loan %s with %d entries", loan_id, len(records))
        return await self.list_payments(loan_id)
