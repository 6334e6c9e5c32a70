from typing import List, Optional

from sqlalchemy import exists, select, update
from sqlalchemy.exc import SQLAlchemyError

from deal_app.models.enums import DealRole, DealStatus
from deal_app.models.models import Deal, Listing
from deal_app.models.utils import utcnow

from .listing_repo import ListingRepo


class DealRepo:
    def __init__(self, db):
        self.db = db
        self.listings: ListingRepo = ListingRepo(db)

    async def get_deal_id(self, deal_id: int) -> Optional[Deal]:
        stmt = (
            select(Deal)
            .where(Deal.id == deal_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, data: dict) -> Deal:
        item = Deal(**data)

        self.db.add(item)
        try:
            await self.db.commit()
            await self.db.refresh(item)
            return item
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def has_pending_deal(self, listing_id: int, buyer_id: int) -> bool:
        stmt = select(
            exists().where(
                Deal.listing_id == listing_id,
                Deal.buyer_id == buyer_id,
                Deal.status == DealStatus.PENDING,
            )
        )
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    async def get_user_deals(self, user_id: int, role: DealRole) -> List[Deal]:
        stmt = select(Deal)
        if role == DealRole.SELLER:
            stmt = stmt.join(Listing, Deal.listing_id == Listing.id).where(
                Listing.seller_id == user_id
            )
        else:
            stmt = stmt.where(Deal.buyer_id == user_id)

        stmt = stmt.order_by(Deal.created_at.desc(), Deal.id.desc())
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def update(self, deal: Deal, **updates) -> Deal:
        for key, value in updates.items():
            setattr(deal, key, value)
        deal.updated_at = utcnow()

        try:
            await self.db.commit()
            await self.db.refresh(deal)
            return deal
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def _conditional_status(
        self, deal_id: int, expected: DealStatus, target: DealStatus, **values
    ) -> int:
        result = await self.db.execute(
            update(Deal)
            .where(Deal.id == deal_id, Deal.status == expected)
            .values(status=target, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def transition(
        self, deal_id: int, expected: DealStatus, target: DealStatus, **values
    ) -> Optional[Deal]:
        """Move a deal from ``expected`` to ``target`` in one guarded write.

        Returns None when the deal was no longer in ``expected``.
        """
        try:
            changed = await self._conditional_status(
                deal_id, expected, target, **values
            )
            if changed != 1:
                await self.db.rollback()
                return None
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_deal_id(deal_id)

    async def accept(
        self, deal_id: int, listing_id: int, **values
    ) -> Optional[tuple[Deal, int]]:
        """Accept a pending deal as one unit of work.

        Locks the listing, accepts the deal only if it is still pending,
        writing any extra ``values`` onto it in the same statement,
        rejects the other pending deals on the listing and marks the listing
        sold. Returns the accepted deal and the number of deals rejected, or
        None (with everything rolled back) when the deal was no longer pending.
        """
        try:
            await self.listings.lock_listing(listing_id)

            accepted = await self._conditional_status(
                deal_id, DealStatus.PENDING, DealStatus.ACCEPTED, **values
            )
            if accepted != 1:
                await self.db.rollback()
                return None

            rejected = await self.db.execute(
                update(Deal)
                .where(
                    Deal.listing_id == listing_id,
                    Deal.status == DealStatus.PENDING,
                    Deal.id != deal_id,
                )
                .values(status=DealStatus.REJECTED, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            rejected_count = rejected.rowcount
            await self.listings.mark_sold(listing_id)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        return await self.get_deal_id(deal_id), rejected_count
