"""FastAPI dependency injection."""

from datetime import date

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from loanbook.config import settings
from loanbook.models.loan import ReconcileOptions
from loanbook.store.sql import SqlLoanRepository

engine = create_async_engine(settings.database_url, echo=settings.debug)
async_session = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncSession:
    async with async_session() as session:
        yield session


def get_repository(session: AsyncSession = Depends(get_db)) -> SqlLoanRepository:
    return SqlLoanRepository(session)


def get_today() -> date:
    """Reference date for late/pending classification. Overridden in tests."""
    return date.today()


def get_options() -> ReconcileOptions:
    return settings.reconcile_options()
