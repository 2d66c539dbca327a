"""Canonical test fixtures used across the engine, store and API tests.

Fixture: $1,200 borrowed at 2% a month, 12 Price installments, starting 2024-01-01.
Installment value ~$113.47, first interest $24.00.
"""

from datetime import date
from decimal import Decimal

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from loanbook.api.app import app
from loanbook.api.deps import get_db, get_today
from loanbook.models.db import Base
from loanbook.models.loan import InterestPeriod, InterestType, LoanDefinition

TODAY = date(2024, 7, 15)


@pytest.fixture
def price_loan() -> LoanDefinition:
    """$1,200 at 2%/month, 12 months, Price amortization."""
    return LoanDefinition(
        principal=Decimal("1200"),
        interest_rate=Decimal("2"),
        interest_period=InterestPeriod.MONTHLY,
        interest_type=InterestType.FIXED_INSTALLMENT,
        term_months=12,
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def compound_loan() -> LoanDefinition:
    """$1,000 at 1%/month over 10 months, equal-split compound."""
    return LoanDefinition(
        principal=Decimal("1000"),
        interest_rate=Decimal("1"),
        interest_type=InterestType.COMPOUND,
        term_months=10,
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def open_loan() -> LoanDefinition:
    """$1,000 at 3%/month with no term (balance accrues daily)."""
    return LoanDefinition(
        principal=Decimal("1000"),
        interest_rate=Decimal("3"),
        term_months=None,
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'loans.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def client(session_factory):
    async def _db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_today] = lambda: TODAY
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
