"""
TRANSACTION HISTORY PROJECTION

Exactly one history row per request, created with the request and kept in
step with its status. amount / type / user / txn_req_id never change.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.errors import InternalError, NotFoundError, ValidationError
from app.domain.models import HistoryEntry, HistoryType, Page, RequestStatus
from app.infrastructure.db.repositories.history_repository import TransactionHistoryRepository
from app.utils.time import end_of_day, start_of_day


class HistoryProjection:

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Writes (inside the caller's unit of work)
    # ------------------------------------------------------------------

    @staticmethod
    async def record(
        session: AsyncSession,
        txn_req_id: str,
        user_id: str,
        amount: Decimal,
        entry_type: HistoryType,
    ) -> HistoryEntry:
        return await TransactionHistoryRepository(session).create(
            user_id=user_id,
            amount=amount,
            entry_type=entry_type,
            status=RequestStatus.PENDING,
            txn_req_id=txn_req_id,
        )

    @staticmethod
    async def mirror_status(session: AsyncSession, txn_req_id: str, status: RequestStatus) -> None:
        """
        Raises:
            InternalError: no history row for the request; aborts the unit
        """
        updated = await TransactionHistoryRepository(session).update_status(txn_req_id, status)
        if updated != 1:
            raise InternalError(f"History entry for request {txn_req_id} is missing")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, entry_id: str) -> HistoryEntry:
        async with self.session_factory() as session:
            entry = await TransactionHistoryRepository(session).get(entry_id)
        if entry is None:
            raise NotFoundError(f"Transaction history {entry_id} not found")
        return entry

    async def get_for_request(self, txn_req_id: str) -> HistoryEntry:
        async with self.session_factory() as session:
            entry = await TransactionHistoryRepository(session).get_by_txn_req_id(txn_req_id)
        if entry is None:
            raise NotFoundError(f"No history for request {txn_req_id}")
        return entry

    async def list(
        self,
        status: Optional[RequestStatus] = None,
        entry_type: Optional[HistoryType] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[HistoryEntry]:
        """Admin listing; end date is inclusive to the end of that day"""
        if start and end and start > end:
            raise ValidationError("start date must not be after end date")
        async with self.session_factory() as session:
            return await TransactionHistoryRepository(session).list(
                status=status,
                entry_type=entry_type,
                start=start_of_day(start) if start else None,
                end=end_of_day(end) if end else None,
                page=page,
                limit=limit,
            )

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[RequestStatus] = None,
        entry_type: Optional[HistoryType] = None,
        on_date: Optional[date] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Page[HistoryEntry]:
        if min_amount is not None and max_amount is not None and min_amount > max_amount:
            raise ValidationError("min_amount must not exceed max_amount")
        async with self.session_factory() as session:
            return await TransactionHistoryRepository(session).list(
                user_id=user_id,
                status=status,
                entry_type=entry_type,
                start=start_of_day(on_date) if on_date else None,
                end=end_of_day(on_date) if on_date else None,
                min_amount=min_amount,
                max_amount=max_amount,
                sort_by=sort_by,
                sort_order=sort_order,
                page=page,
                limit=limit,
            )
