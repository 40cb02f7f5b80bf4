from datetime import date, datetime, timezone

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unipilot.storage.database import get_db
from unipilot.storage.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork


async def get_uow(db: AsyncSession = Depends(get_db)) -> UnitOfWork:
    return SqlAlchemyUnitOfWork(db)


def today() -> date:
    return datetime.now(timezone.utc).date()
