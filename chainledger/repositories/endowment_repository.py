"""
Wealth-building repositories.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.models.endowment import (
    EndowmentHarvest,
    EndowmentRecord,
    FundraiserEndowment,
    StockPortfolio,
    StockPurchase,
    WealthDonation,
)
from chainledger.repositories.base import BaseRepository


class EndowmentRepository(BaseRepository[EndowmentRecord]):
    """Repository for donor endowments."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(EndowmentRecord, session)

    async def get_endowment(
        self, chain_id: int, contract_address: str, donor: str, fundraiser_id: int
    ) -> EndowmentRecord | None:
        return await self.get_by(
            for_update=True,
            chain_id=chain_id,
            contract_address=contract_address,
            donor=donor,
            fundraiser_id=fundraiser_id,
        )

    async def get_latest_for_donor(
        self, chain_id: int, contract_address: str, donor: str
    ) -> EndowmentRecord | None:
        """The donor's most recently funded endowment."""
        stmt = (
            select(EndowmentRecord)
            .where(
                EndowmentRecord.chain_id == chain_id,
                EndowmentRecord.contract_address == contract_address,
                EndowmentRecord.donor == donor,
            )
            .order_by(EndowmentRecord.last_donation_block.desc(), EndowmentRecord.id.desc())
            .limit(1)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_fundraiser(
        self, chain_id: int, contract_address: str, fundraiser_id: int
    ) -> list[EndowmentRecord]:
        return await self.find_all(
            chain_id=chain_id, contract_address=contract_address, fundraiser_id=fundraiser_id
        )


class WealthDonationRepository(BaseRepository[WealthDonation]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(WealthDonation, session)

    async def get_for_fundraiser(
        self, chain_id: int, contract_address: str, fundraiser_id: int
    ) -> list[WealthDonation]:
        return await self.find_all(
            chain_id=chain_id, contract_address=contract_address, fundraiser_id=fundraiser_id
        )


class EndowmentHarvestRepository(BaseRepository[EndowmentHarvest]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(EndowmentHarvest, session)


class FundraiserEndowmentRepository(BaseRepository[FundraiserEndowment]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(FundraiserEndowment, session)

    async def get_or_create(
        self, chain_id: int, contract_address: str, fundraiser_id: int
    ) -> FundraiserEndowment:
        aggregate = await self.get_by(
            for_update=True,
            chain_id=chain_id,
            contract_address=contract_address,
            fundraiser_id=fundraiser_id,
        )
        if aggregate is None:
            aggregate = await self.create(
                chain_id=chain_id,
                contract_address=contract_address,
                fundraiser_id=fundraiser_id,
                raised_amount=0,
                endowment_principal=0,
                endowment_yield=0,
                cause_yield_paid=0,
                platform_fees=0,
                donors_count=0,
                donations_count=0,
            )
        return aggregate


class StockPurchaseRepository(BaseRepository[StockPurchase]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(StockPurchase, session)


class StockPortfolioRepository(BaseRepository[StockPortfolio]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(StockPortfolio, session)

    async def get_holding(
        self, chain_id: int, contract_address: str, donor: str, stock_token: str
    ) -> StockPortfolio | None:
        return await self.get_by(
            for_update=True,
            chain_id=chain_id,
            contract_address=contract_address,
            donor=donor,
            stock_token=stock_token,
        )
