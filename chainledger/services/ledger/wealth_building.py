"""
Wealth-building (endowment) ledger.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.config.constants import CAUSE_YIELD_BPS, DONOR_YIELD_BPS
from chainledger.models.endowment import (
    EndowmentHarvest,
    EndowmentRecord,
    FundraiserEndowment,
    StockPortfolio,
    WealthDonation,
)
from chainledger.repositories.endowment_repository import (
    EndowmentHarvestRepository,
    EndowmentRepository,
    FundraiserEndowmentRepository,
    StockPortfolioRepository,
    StockPurchaseRepository,
    WealthDonationRepository,
)
from chainledger.services.indexer.events import (
    DonationMade,
    EndowmentYieldHarvested,
    StockPurchased,
)
from chainledger.services.ledger.aggregates import add_deltas
from chainledger.services.ledger.splits import split_amount
from chainledger.utils.exceptions import HandlerReferenceMissing


class WealthBuildingLedger:
    """Donation, endowment yield and stock purchase mutations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.donations = WealthDonationRepository(session)
        self.endowments = EndowmentRepository(session)
        self.harvests = EndowmentHarvestRepository(session)
        self.fundraisers = FundraiserEndowmentRepository(session)
        self.purchases = StockPurchaseRepository(session)
        self.portfolios = StockPortfolioRepository(session)

    async def donation_made(self, event: DonationMade) -> WealthDonation:
        """
        Persist the contract-computed split and grow the donor's endowment.

        The direct/endowment/fee amounts are stored exactly as emitted.
        """
        meta = event.meta
        donation = await self.donations.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            contract_address=meta.contract_address,
            donor=event.donor,
            fundraiser_id=event.fundraiser_id,
            total_amount=event.total_amount,
            direct_amount=event.direct_amount,
            endowment_amount=event.endowment_amount,
            platform_fee=event.platform_fee,
        )

        endowment = await self.endowments.get_endowment(
            meta.chain_id, meta.contract_address, event.donor, event.fundraiser_id
        )
        new_donor = endowment is None
        if endowment is None:
            endowment = await self.endowments.create(
                chain_id=meta.chain_id,
                contract_address=meta.contract_address,
                donor=event.donor,
                fundraiser_id=event.fundraiser_id,
                principal=event.endowment_amount,
                lifetime_yield=0,
                cause_yield_paid=0,
                donor_yield_earned=0,
                donor_stock_value=0,
                donations_count=1,
                last_donation_block=meta.block_number,
            )
        else:
            endowment.principal += event.endowment_amount
            endowment.donations_count += 1
            endowment.last_donation_block = max(endowment.last_donation_block, meta.block_number)

        logger.info(
            f"[WealthBuilding] Donation {event.total_amount} by {event.donor[:10]} "
            f"to fundraiser {event.fundraiser_id}: direct={event.direct_amount} "
            f"endowment={event.endowment_amount} fee={event.platform_fee}"
        )
        await self._update_fundraiser(
            meta.chain_id,
            meta.contract_address,
            event.fundraiser_id,
            raised_amount=event.direct_amount,
            platform_fees=event.platform_fee,
            donations_count=1,
            donors_count=int(new_donor),
            endowment_principal=event.endowment_amount,
        )
        return donation

    async def yield_harvested(self, event: EndowmentYieldHarvested) -> EndowmentHarvest:
        """
        Book endowment yield with the cause and donor shares as emitted.

        The 30/70 split is recomputed only to flag events that disagree with it.

        Raises:
            HandlerReferenceMissing: The endowment's donation has not been applied yet
        """
        meta = event.meta
        endowment = await self.endowments.get_endowment(
            meta.chain_id, meta.contract_address, event.donor, event.fundraiser_id
        )
        if endowment is None:
            raise HandlerReferenceMissing(
                f"No endowment for {event.donor} in fundraiser {event.fundraiser_id} "
                f"({meta.short()})"
            )

        expected = split_amount(event.total_yield, (CAUSE_YIELD_BPS, DONOR_YIELD_BPS)).shares
        if expected != (event.cause_amount, event.donor_amount):
            logger.warning(
                f"[WealthBuilding] Emitted split ({event.cause_amount}, {event.donor_amount}) "
                f"differs from computed {expected} for {meta.short()}"
            )
        retained = max(0, event.total_yield - event.cause_amount - event.donor_amount)

        harvest = await self.harvests.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            endowment_id=endowment.id,
            total_yield=event.total_yield,
            cause_amount=event.cause_amount,
            donor_amount=event.donor_amount,
            retained_amount=retained,
        )

        endowment.lifetime_yield += event.total_yield
        endowment.cause_yield_paid += event.cause_amount
        endowment.donor_yield_earned += event.donor_amount

        await self._update_fundraiser(
            meta.chain_id,
            meta.contract_address,
            event.fundraiser_id,
            endowment_yield=event.total_yield,
            cause_yield_paid=event.cause_amount,
        )
        return harvest

    async def stock_purchased(self, event: StockPurchased) -> StockPortfolio:
        """Book a purchase and grow the donor's holding and cost basis."""
        meta = event.meta
        await self.purchases.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            contract_address=meta.contract_address,
            donor=event.donor,
            stock_token=event.stock_token,
            usdc_amount=event.usdc_amount,
            stock_amount=event.stock_amount,
        )

        holding = await self.portfolios.get_holding(
            meta.chain_id, meta.contract_address, event.donor, event.stock_token
        )
        if holding is None:
            holding = await self.portfolios.create(
                chain_id=meta.chain_id,
                contract_address=meta.contract_address,
                donor=event.donor,
                stock_token=event.stock_token,
                stock_balance=event.stock_amount,
                cost_basis=event.usdc_amount,
                purchases_count=1,
            )
        else:
            holding.stock_balance += event.stock_amount
            holding.cost_basis += event.usdc_amount
            holding.purchases_count += 1

        endowment = await self.endowments.get_latest_for_donor(
            meta.chain_id, meta.contract_address, event.donor
        )
        if endowment is not None:
            endowment.donor_stock_value += event.usdc_amount
        else:
            logger.debug(
                f"[WealthBuilding] Stock purchase for {event.donor[:10]} without endowment"
            )

        await self.session.flush()
        return holding

    async def _update_fundraiser(
        self, chain_id: int, contract_address: str, fundraiser_id: int, **deltas: int
    ) -> FundraiserEndowment:
        aggregate = await self.fundraisers.get_by(
            for_update=True,
            chain_id=chain_id,
            contract_address=contract_address,
            fundraiser_id=fundraiser_id,
        )
        if aggregate is None:
            return await self.refresh_fundraiser(chain_id, contract_address, fundraiser_id)
        add_deltas(aggregate, **deltas)
        await self.session.flush()
        return aggregate

    async def refresh_fundraiser(
        self, chain_id: int, contract_address: str, fundraiser_id: int
    ) -> FundraiserEndowment:
        """Rebuild the fundraiser aggregate from donations and endowments."""
        await self.session.flush()
        donations = await self.donations.get_for_fundraiser(chain_id, contract_address, fundraiser_id)
        endowments: list[EndowmentRecord] = await self.endowments.get_for_fundraiser(
            chain_id, contract_address, fundraiser_id
        )
        aggregate = await self.fundraisers.get_or_create(chain_id, contract_address, fundraiser_id)

        aggregate.raised_amount = sum(d.direct_amount for d in donations)
        aggregate.platform_fees = sum(d.platform_fee for d in donations)
        aggregate.donations_count = len(donations)
        aggregate.donors_count = len({d.donor for d in donations})
        aggregate.endowment_principal = sum(e.principal for e in endowments)
        aggregate.endowment_yield = sum(e.lifetime_yield for e in endowments)
        aggregate.cause_yield_paid = sum(e.cause_yield_paid for e in endowments)

        await self.session.flush()
        return aggregate
