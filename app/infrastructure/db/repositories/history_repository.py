"""
Transaction History Repository
Append-only projection; status is the only column rewritten after insert
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import HistoryEntry, HistoryType, Page, RequestStatus
from app.infrastructure.db.models import (
    HistoryTypeEnum,
    RequestStatusEnum,
    TransactionHistoryModel,
)
from app.infrastructure.db.repositories.pagination import order_clause, paginate
from app.utils.time import now_utc_naive


class TransactionHistoryRepository:
    """Repository for TransactionHistory"""

    SORT_COLUMNS = {
        "created_at": TransactionHistoryModel.created_at,
        "updated_at": TransactionHistoryModel.updated_at,
        "amount": TransactionHistoryModel.amount,
        "status": TransactionHistoryModel.status,
        "type": TransactionHistoryModel.type,
    }

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: str,
        amount: Decimal,
        entry_type: HistoryType,
        status: RequestStatus,
        txn_req_id: str,
    ) -> HistoryEntry:
        now = now_utc_naive()
        model = TransactionHistoryModel(
            user_id=user_id,
            amount=amount,
            type=HistoryTypeEnum(entry_type.value),
            status=RequestStatusEnum(status.value),
            txn_req_id=txn_req_id,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def update_status(self, txn_req_id: str, status: RequestStatus) -> int:
        """
        Mirror a request's status onto its history row

        Returns:
            Number of rows updated (0 or 1)
        """
        result = await self.session.execute(
            update(TransactionHistoryModel)
            .where(TransactionHistoryModel.txn_req_id == txn_req_id)
            .values(status=RequestStatusEnum(status.value), updated_at=now_utc_naive())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def get(self, entry_id: str) -> Optional[HistoryEntry]:
        result = await self.session.execute(
            select(TransactionHistoryModel)
            .where(TransactionHistoryModel.id == entry_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def get_by_txn_req_id(self, txn_req_id: str) -> Optional[HistoryEntry]:
        result = await self.session.execute(
            select(TransactionHistoryModel)
            .where(TransactionHistoryModel.txn_req_id == txn_req_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list(
        self,
        user_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        entry_type: Optional[HistoryType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Page[HistoryEntry]:
        stmt = select(TransactionHistoryModel)
        if user_id:
            stmt = stmt.where(TransactionHistoryModel.user_id == user_id)
        if status:
            stmt = stmt.where(TransactionHistoryModel.status == RequestStatusEnum(status.value))
        if entry_type:
            stmt = stmt.where(TransactionHistoryModel.type == HistoryTypeEnum(entry_type.value))
        if start:
            stmt = stmt.where(TransactionHistoryModel.created_at >= start)
        if end:
            stmt = stmt.where(TransactionHistoryModel.created_at <= end)
        if min_amount is not None:
            stmt = stmt.where(TransactionHistoryModel.amount >= min_amount)
        if max_amount is not None:
            stmt = stmt.where(TransactionHistoryModel.amount <= max_amount)
        stmt = stmt.order_by(
            order_clause(self.SORT_COLUMNS, sort_by, sort_order),
            TransactionHistoryModel.id,
        )
        return await paginate(self.session, stmt, page, limit, self._to_domain)

    @staticmethod
    def _to_domain(model: TransactionHistoryModel) -> HistoryEntry:
        return HistoryEntry(
            id=model.id,
            user_id=model.user_id,
            amount=Decimal(str(model.amount)),
            type=HistoryType(model.type.value),
            status=RequestStatus(model.status.value),
            txn_req_id=model.txn_req_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
