"""
Request Ledger Repositories
Deposit/withdrawal requests and investment requests.

A request row is a fact: amount, type, plan and owner never change after
insert. Only status (exactly once), rejection_reason and decided_at are
written by transition_status().
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import (
    InvestmentRequest,
    Page,
    PlanName,
    RequestStatus,
    RequestType,
    TransactionRequest,
)
from app.infrastructure.db.models import (
    InvestRequestModel,
    PlanNameEnum,
    RequestStatusEnum,
    RequestTypeEnum,
    TransactionRequestModel,
    UserModel,
)
from app.infrastructure.db.repositories.pagination import order_clause, paginate
from app.utils.time import now_utc_naive


class _StatusTransitions:
    """Compare-and-set status transition shared by both request tables"""

    model = None

    def __init__(self, session: AsyncSession):
        self.session = session

    async def transition_status(
        self,
        request_id: str,
        new_status: RequestStatus,
        rejection_reason: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> bool:
        """
        Move a request out of pending.

        The WHERE clause re-checks status='pending' at write time, so of two
        racing transitions at most one can match the row.

        Returns:
            True if this call performed the transition
        """
        at = at or now_utc_naive()
        model = self.model
        result = await self.session.execute(
            update(model)
            .where(model.id == request_id, model.status == RequestStatusEnum.PENDING)
            .values(
                status=RequestStatusEnum(new_status.value),
                rejection_reason=rejection_reason,
                decided_at=at,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _get_model(self, request_id: str, for_update: bool = False):
        stmt = select(self.model).where(self.model.id == request_id)
        if for_update:
            stmt = stmt.with_for_update()
        # populate_existing so a re-read inside the unit of work is never
        # served from a stale identity-map copy
        stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _search_clause(self, search: str):
        like = f"%{search.strip()}%"
        return or_(UserModel.name.ilike(like), UserModel.email.ilike(like))


class TransactionRequestRepository(_StatusTransitions):
    """Repository for deposit / withdrawal requests"""

    model = TransactionRequestModel

    SORT_COLUMNS = {
        "created_at": TransactionRequestModel.created_at,
        "updated_at": TransactionRequestModel.updated_at,
        "amount": TransactionRequestModel.amount,
        "status": TransactionRequestModel.status,
        "type": TransactionRequestModel.type,
    }

    async def create(
        self,
        user_id: str,
        amount: Decimal,
        request_type: RequestType,
        plan: PlanName,
        wallet_address: str,
        wallet_tx_id: Optional[str] = None,
        transaction_image: Optional[str] = None,
    ) -> TransactionRequest:
        now = now_utc_naive()
        model = TransactionRequestModel(
            user_id=user_id,
            amount=amount,
            type=RequestTypeEnum(request_type.value),
            plan=PlanNameEnum(plan.value),
            wallet_address=wallet_address,
            wallet_tx_id=wallet_tx_id,
            transaction_image=transaction_image,
            status=RequestStatusEnum.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def get(self, request_id: str, for_update: bool = False) -> Optional[TransactionRequest]:
        model = await self._get_model(request_id, for_update=for_update)
        return self._to_domain(model) if model else None

    async def delete(self, request_id: str) -> bool:
        result = await self.session.execute(
            delete(TransactionRequestModel).where(TransactionRequestModel.id == request_id)
        )
        return result.rowcount == 1

    async def list(
        self,
        status: Optional[RequestStatus] = None,
        request_type: Optional[RequestType] = None,
        plan: Optional[PlanName] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[TransactionRequest]:
        stmt = select(TransactionRequestModel)
        if status:
            stmt = stmt.where(TransactionRequestModel.status == RequestStatusEnum(status.value))
        if request_type:
            stmt = stmt.where(TransactionRequestModel.type == RequestTypeEnum(request_type.value))
        if plan:
            stmt = stmt.where(TransactionRequestModel.plan == PlanNameEnum(plan.value))
        if start:
            stmt = stmt.where(TransactionRequestModel.created_at >= start)
        if end:
            stmt = stmt.where(TransactionRequestModel.created_at <= end)
        if search:
            stmt = stmt.join(UserModel, UserModel.id == TransactionRequestModel.user_id).where(
                self._search_clause(search)
            )
        stmt = stmt.order_by(TransactionRequestModel.created_at.desc(), TransactionRequestModel.id)
        return await paginate(self.session, stmt, page, limit, self._to_domain)

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[RequestStatus] = None,
        request_type: Optional[RequestType] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Page[TransactionRequest]:
        stmt = select(TransactionRequestModel).where(TransactionRequestModel.user_id == user_id)
        if status:
            stmt = stmt.where(TransactionRequestModel.status == RequestStatusEnum(status.value))
        if request_type:
            stmt = stmt.where(TransactionRequestModel.type == RequestTypeEnum(request_type.value))
        stmt = stmt.order_by(
            order_clause(self.SORT_COLUMNS, sort_by, sort_order),
            TransactionRequestModel.id,
        )
        return await paginate(self.session, stmt, page, limit, self._to_domain)

    @staticmethod
    def _to_domain(model: TransactionRequestModel) -> TransactionRequest:
        return TransactionRequest(
            id=model.id,
            user_id=model.user_id,
            amount=Decimal(str(model.amount)),
            type=RequestType(model.type.value),
            plan=PlanName(model.plan.value),
            wallet_address=model.wallet_address,
            wallet_tx_id=model.wallet_tx_id,
            transaction_image=model.transaction_image,
            status=RequestStatus(model.status.value),
            rejection_reason=model.rejection_reason,
            created_at=model.created_at,
            updated_at=model.updated_at,
            decided_at=model.decided_at,
        )


class InvestRequestRepository(_StatusTransitions):
    """Repository for investment requests"""

    model = InvestRequestModel

    async def create(
        self,
        user_id: str,
        amount: Decimal,
        plan: PlanName,
        wallet_address: str,
        note: Optional[str] = None,
    ) -> InvestmentRequest:
        now = now_utc_naive()
        model = InvestRequestModel(
            user_id=user_id,
            amount=amount,
            plan=PlanNameEnum(plan.value),
            wallet_address=wallet_address,
            note=note,
            status=RequestStatusEnum.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def get(self, request_id: str, for_update: bool = False) -> Optional[InvestmentRequest]:
        model = await self._get_model(request_id, for_update=for_update)
        return self._to_domain(model) if model else None

    async def list(
        self,
        status: Optional[RequestStatus] = None,
        plan: Optional[PlanName] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[InvestmentRequest]:
        stmt = select(InvestRequestModel)
        if status:
            stmt = stmt.where(InvestRequestModel.status == RequestStatusEnum(status.value))
        if plan:
            stmt = stmt.where(InvestRequestModel.plan == PlanNameEnum(plan.value))
        if start:
            stmt = stmt.where(InvestRequestModel.created_at >= start)
        if end:
            stmt = stmt.where(InvestRequestModel.created_at <= end)
        if search:
            stmt = stmt.join(UserModel, UserModel.id == InvestRequestModel.user_id).where(
                self._search_clause(search)
            )
        stmt = stmt.order_by(InvestRequestModel.created_at.desc(), InvestRequestModel.id)
        return await paginate(self.session, stmt, page, limit, self._to_domain)

    @staticmethod
    def _to_domain(model: InvestRequestModel) -> InvestmentRequest:
        return InvestmentRequest(
            id=model.id,
            user_id=model.user_id,
            amount=Decimal(str(model.amount)),
            plan=PlanName(model.plan.value),
            wallet_address=model.wallet_address,
            note=model.note,
            status=RequestStatus(model.status.value),
            rejection_reason=model.rejection_reason,
            created_at=model.created_at,
            updated_at=model.updated_at,
            decided_at=model.decided_at,
        )
