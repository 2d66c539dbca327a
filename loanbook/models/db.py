"""SQLAlchemy ORM models for loan persistence."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class LoanRecord(Base):
    __tablename__ = "loans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    owner_id: Mapped[str] = mapped_column(String(64), index=True, default="")
    name: Mapped[str] = mapped_column(String(100))
    loan_type: Mapped[str] = mapped_column(String(20), default="borrowed")
    status: Mapped[str] = mapped_column(String(20), default="active")

    # Definition
    principal: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(9, 4))  # Nominal %
    interest_period: Mapped[str] = mapped_column(String(10), default="monthly")
    interest_type: Mapped[str] = mapped_column(String(20), default="fixed_installment")
    term_months: Mapped[int | None] = mapped_column(Integer, nullable=True)  # NULL = indefinite
    start_date: Mapped[date] = mapped_column(Date)

    payments: Mapped[list["LoanPaymentRecord"]] = relationship(
        back_populates="loan",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="LoanPaymentRecord.payment_date",
    )


class LoanPaymentRecord(Base):
    __tablename__ = "loan_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    loan_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("loans.id", ondelete="CASCADE"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    payment_date: Mapped[date | None] = mapped_column("date", Date, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)  # May carry the override tag
    installment_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    loan: Mapped["LoanRecord"] = relationship(back_populates="payments")
