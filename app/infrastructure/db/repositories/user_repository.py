"""
User Directory Repository
Read access to the slice of user data the ledger gates on
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import User, VerificationStatus
from app.infrastructure.db.models import UserModel, VerificationStatusEnum


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(select(UserModel).where(UserModel.id == user_id))
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def create(
        self,
        name: str,
        email: str,
        is_verified: bool = False,
        verification_status: VerificationStatus = VerificationStatus.UNVERIFIED,
        trust_wallet_address: Optional[str] = None,
    ) -> User:
        model = UserModel(
            name=name,
            email=email.lower().strip(),
            is_verified=is_verified,
            verification_status=VerificationStatusEnum(verification_status.value),
            trust_wallet_address=trust_wallet_address,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            is_verified=bool(model.is_verified),
            verification_status=VerificationStatus(model.verification_status.value),
            trust_wallet_address=model.trust_wallet_address,
        )
