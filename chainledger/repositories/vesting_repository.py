"""
Vesting repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.models.vesting import TokenBurn, VestingClaim, VestingSchedule
from chainledger.repositories.base import BaseRepository


class VestingScheduleRepository(BaseRepository[VestingSchedule]):
    """Repository for vesting schedules."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(VestingSchedule, session)

    async def get_schedule(
        self, chain_id: int, contract_address: str, schedule_id: int
    ) -> VestingSchedule | None:
        return await self.get_by(
            for_update=True,
            chain_id=chain_id,
            contract_address=contract_address,
            schedule_id=schedule_id,
        )


class VestingClaimRepository(BaseRepository[VestingClaim]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(VestingClaim, session)

    async def get_for_schedule(self, schedule_pk: int) -> list[VestingClaim]:
        return await self.find_all(schedule_pk=schedule_pk)


class TokenBurnRepository(BaseRepository[TokenBurn]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(TokenBurn, session)
