"""
FastAPI dependencies wiring the booking manager to the request's session.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventbook.db.session import get_db
from eventbook.infrastructure.sql_store import SqlUnitOfWork
from eventbook.services.booking_manager import BookingManager


async def get_booking_manager(db: AsyncSession = Depends(get_db)) -> BookingManager:
    return BookingManager(SqlUnitOfWork(db))
