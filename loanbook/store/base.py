"""Protocol for loan persistence.

The engine never writes; the calling layer reads a loan and its payments, runs the
engine, and saves an edited payment list back wholesale.
"""

from typing import Protocol, runtime_checkable
from uuid import UUID

from loanbook.models.db import LoanRecord, LoanPaymentRecord
from loanbook.models.loan import Payment


@runtime_checkable
class LoanRepository(Protocol):
    async def create_loan(self, record: LoanRecord) -> LoanRecord:
        """Insert a new loan."""
        ...

    async def get_loan(self, loan_id: UUID) -> LoanRecord | None:
        """Fetch one loan, or None if it does not exist."""
        ...

    async def list_loans(self, owner_id: str | None = None) -> list[LoanRecord]:
        """All loans, optionally restricted to one owner."""
        ...

    async def delete_loan(self, loan_id: UUID) -> bool:
        """Delete a loan and its payments. False if it did not exist."""
        ...

    async def set_status(self, loan_id: UUID, status: str) -> None:
        ...

    async def list_payments(self, loan_id: UUID) -> list[LoanPaymentRecord]:
        """Payments of a loan ordered by date."""
        ...

    async def add_payment(self, loan_id: UUID, payment: Payment) -> LoanPaymentRecord:
        ...

    async def replace_payments(self, loan_id: UUID, payments: list[Payment]) -> list[LoanPaymentRecord]:
        """Delete every payment of the loan and insert `payments` in their place."""
        ...
