from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from deal_app.models.enums import ListingStatus
from deal_app.models.models import Deal, DealMessage, Listing
from deal_app.models.utils import utcnow
from deal_app.schemas.schema import ListingFilters


class ListingRepo:
    def __init__(self, db):
        self.db = db

    async def get_listing_id(self, listing_id: int) -> Optional[Listing]:
        stmt = (
            select(Listing)
            .where(Listing.id == listing_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, data: dict) -> Listing:
        item = Listing(**data)

        self.db.add(item)
        try:
            await self.db.commit()
            await self.db.refresh(item)
            return item
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def get_user_listings(self, user_id: int) -> List[Listing]:
        stmt = (
            select(Listing)
            .where(Listing.seller_id == user_id)
            .order_by(Listing.created_at.desc(), Listing.id.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_all(self, filters: ListingFilters | None = None) -> List[Listing]:
        conditions = []
        if filters is not None:
            if filters.category:
                conditions.append(Listing.category == filters.category)
            if filters.min_price is not None:
                conditions.append(Listing.price >= filters.min_price)
            if filters.max_price is not None:
                conditions.append(Listing.price <= filters.max_price)
            if filters.status is not None:
                conditions.append(Listing.status == filters.status)

        stmt = (
            select(Listing)
            .where(*conditions)
            .order_by(Listing.created_at.desc(), Listing.id.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def update(self, listing: Listing, **updates) -> Listing:
        for key, value in updates.items():
            setattr(listing, key, value)
        listing.updated_at = utcnow()

        try:
            await self.db.commit()
            await self.db.refresh(listing)
            return listing
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def lock_listing(self, listing_id: int) -> Optional[Listing]:
        stmt = (
            select(Listing)
            .where(Listing.id == listing_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_sold(self, listing_id: int) -> int:
        """Flip an active listing to sold inside the caller's transaction."""
        result = await self.db.execute(
            update(Listing)
            .where(Listing.id == listing_id, Listing.status == ListingStatus.ACTIVE)
            .values(status=ListingStatus.SOLD, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete(self, listing_id: int) -> int:
        deal_ids = select(Deal.id).where(Deal.listing_id == listing_id)
        try:
            await self.db.execute(
                delete(DealMessage)
                .where(DealMessage.deal_id.in_(deal_ids))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(Deal)
                .where(Deal.listing_id == listing_id)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(
                delete(Listing)
                .where(Listing.id == listing_id)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount
        except SQLAlchemyError:
            await self.db.rollback()
            raise
