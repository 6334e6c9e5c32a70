import logging
from typing import List

from deal_app.core.breaker import breaker
from deal_app.core.errors import (
    Conflict,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationFailure,
)
from deal_app.models.enums import DEAL_TRANSITIONS, DealRole, DealStatus, ListingStatus
from deal_app.models.models import Deal, DealMessage, Listing
from deal_app.models.utils import utcnow
from deal_app.repos.deal_message_repo import DealMessageRepo
from deal_app.repos.deal_repo import DealRepo
from deal_app.repos.listing_repo import ListingRepo
from deal_app.schemas.schema import (
    DealCreateSchema,
    DealMessageSchema,
    DealUpdateSchema,
    ListingCreateSchema,
    ListingFilters,
    ListingUpdateSchema,
)

logger = logging.getLogger(__name__)


class DealService:
    """Listing and deal lifecycle: every ownership check and status change.

    Each method receives the acting user's id explicitly and raises a typed
    error (``NotFound``, ``Forbidden``, ``InvalidState``, ``Conflict``) on the
    first failed precondition.
    """

    def __init__(self, db):
        self.listings: ListingRepo = ListingRepo(db)
        self.deals: DealRepo = DealRepo(db)
        self.messages: DealMessageRepo = DealMessageRepo(db)

    # ------------------------------------------------------------ listings

    async def _owned_listing(self, listing_id: int, user_id: int, action: str) -> Listing:
        listing = await self.listings.get_listing_id(listing_id)
        if not listing:
            raise NotFound("Listing not found")
        if listing.seller_id != user_id:
            raise Forbidden(f"Not authorized to {action} this listing")
        return listing

    async def create_listing(self, data: ListingCreateSchema, seller_id: int) -> Listing:
        async def handler():
            data_dict = data.model_dump()
            data_dict["seller_id"] = seller_id
            data_dict["status"] = ListingStatus.ACTIVE

            listing = await self.listings.create(data_dict)
            logger.info(f"Listing created listing_id={listing.id} seller_id={seller_id}")
            return listing

        return await breaker.call(handler)

    async def get_listing(self, listing_id: int) -> Listing:
        async def handler():
            listing = await self.listings.get_listing_id(listing_id)
            if not listing:
                raise NotFound("Listing not found")
            return listing

        return await breaker.call(handler)

    async def get_user_listings(self, user_id: int) -> List[Listing]:
        return await breaker.call(self.listings.get_user_listings, user_id)

    async def get_all_listings(self, filters: ListingFilters | None = None) -> List[Listing]:
        return await breaker.call(self.listings.get_all, filters)

    async def update_listing(
        self, listing_id: int, updates: ListingUpdateSchema, user_id: int
    ) -> Listing:
        async def handler():
            listing = await self._owned_listing(listing_id, user_id, "update")

            updated = await self.listings.update(
                listing, **updates.model_dump(exclude_unset=True)
            )
            logger.info(f"Listing updated listing_id={listing_id} user_id={user_id}")
            return updated

        return await breaker.call(handler)

    async def delete_listing(self, listing_id: int, user_id: int) -> None:
        async def handler():
            await self._owned_listing(listing_id, user_id, "delete")

            await self.listings.delete(listing_id)
            logger.info(f"Listing deleted listing_id={listing_id} user_id={user_id}")

        return await breaker.call(handler)

    # --------------------------------------------------------------- deals

    async def _deal_with_listing(self, deal_id: int) -> tuple[Deal, Listing]:
        deal = await self.deals.get_deal_id(deal_id)
        if not deal:
            raise NotFound("Deal not found")
        listing = await self.listings.get_listing_id(deal.listing_id)
        if not listing:
            raise NotFound("Listing not found")
        return deal, listing

    async def _party_deal(self, deal_id: int, user_id: int, action: str) -> tuple[Deal, Listing]:
        deal, listing = await self._deal_with_listing(deal_id)
        if user_id not in {deal.buyer_id, listing.seller_id}:
            raise Forbidden(f"Not authorized to {action}")
        return deal, listing

    async def create_deal(self, data: DealCreateSchema, buyer_id: int) -> Deal:
        async def handler():
            listing = await self.listings.get_listing_id(data.listing_id)
            if not listing:
                raise NotFound("Listing not found")
            if listing.status != ListingStatus.ACTIVE:
                raise InvalidState("Listing is not available for deals")
            if listing.seller_id == buyer_id:
                raise Forbidden("Cannot create deal on your own listing")
            if await self.deals.has_pending_deal(listing.id, buyer_id):
                raise Conflict("You already have a pending deal for this listing")

            data_dict = data.model_dump()
            data_dict["buyer_id"] = buyer_id
            data_dict["status"] = DealStatus.PENDING

            deal = await self.deals.create(data_dict)
            logger.info(
                f"Deal created deal_id={deal.id} listing_id={listing.id} buyer_id={buyer_id}"
            )
            return deal

        return await breaker.call(handler)

    async def get_deal(self, deal_id: int, user_id: int) -> dict:
        async def handler():
            deal, listing = await self._party_deal(deal_id, user_id, "view this deal")
            return {"deal": deal, "listing": listing}

        return await breaker.call(handler)

    async def get_user_deals(
        self, user_id: int, role: DealRole | str = DealRole.BUYER
    ) -> List[Deal]:
        try:
            role = DealRole(role)
        except ValueError:
            raise ValidationFailure(
                "Validation failed",
                errors=[{"field": "role", "message": "Role must be either buyer or seller"}],
            )

        return await breaker.call(self.deals.get_user_deals, user_id, role)

    async def update_deal(
        self, deal_id: int, updates: DealUpdateSchema, user_id: int
    ) -> Deal:
        async def handler():
            deal, listing = await self._deal_with_listing(deal_id)
            target = updates.status

            if target in (DealStatus.ACCEPTED, DealStatus.REJECTED):
                if listing.seller_id != user_id:
                    raise Forbidden("Only the seller can accept or reject deals")
            elif target == DealStatus.CANCELLED:
                if deal.buyer_id != user_id:
                    raise Forbidden("Only the buyer can cancel this deal")
            elif user_id not in {deal.buyer_id, listing.seller_id}:
                raise Forbidden("Not authorized to update this deal")

            fields = updates.model_dump(exclude_unset=True, exclude={"status"})

            if target is not None and target != deal.status:
                if target not in DEAL_TRANSITIONS[deal.status]:
                    raise InvalidState(
                        f"Cannot move a {deal.status.value} deal to {target.value}"
                    )
                # edited fields ride in the same guarded write as the status
                if target == DealStatus.ACCEPTED:
                    deal = await self._accept(deal, listing, user_id, **fields)
                elif target == DealStatus.COMPLETED:
                    deal = await self._complete(deal, listing, user_id, **fields)
                else:
                    moved = await self.deals.transition(
                        deal.id, deal.status, target, **fields
                    )
                    if moved is None:
                        raise InvalidState("Deal status changed, please retry")
                    deal = moved
            elif fields:
                deal = await self.deals.update(deal, **fields)

            logger.info(
                f"Deal updated deal_id={deal_id} user_id={user_id} "
                f"status={deal.status.value} fields={sorted(fields)}"
            )
            return deal

        return await breaker.call(handler)

    async def _accept(
        self, deal: Deal, listing: Listing, user_id: int, **fields
    ) -> Deal:
        if listing.seller_id != user_id:
            raise Forbidden("Only the seller can accept deals")
        if deal.status != DealStatus.PENDING:
            raise InvalidState("Only pending deals can be accepted")

        outcome = await self.deals.accept(deal.id, listing.id, **fields)
        if outcome is None:
            raise InvalidState("Only pending deals can be accepted")

        accepted, rejected = outcome
        logger.info(
            f"Deal accepted deal_id={deal.id} user_id={user_id} "
            f"listing_id={listing.id} rejected_siblings={rejected}"
        )
        return accepted

    async def _complete(
        self, deal: Deal, listing: Listing, user_id: int, **fields
    ) -> Deal:
        if listing.seller_id != user_id:
            raise Forbidden("Only the seller can complete deals")
        if deal.status != DealStatus.ACCEPTED:
            raise InvalidState("Only accepted deals can be completed")

        completed = await self.deals.transition(
            deal.id,
            DealStatus.ACCEPTED,
            DealStatus.COMPLETED,
            completed_at=utcnow(),
            **fields,
        )
        if completed is None:
            raise InvalidState("Only accepted deals can be completed")

        logger.info(f"Deal completed deal_id={deal.id} user_id={user_id}")
        return completed

    async def accept_deal(self, deal_id: int, user_id: int) -> Deal:
        async def handler():
            deal, listing = await self._deal_with_listing(deal_id)
            return await self._accept(deal, listing, user_id)

        return await breaker.call(handler)

    async def complete_deal(self, deal_id: int, user_id: int) -> Deal:
        async def handler():
            deal, listing = await self._deal_with_listing(deal_id)
            return await self._complete(deal, listing, user_id)

        return await breaker.call(handler)

    # ------------------------------------------------------------ messages

    async def add_message(
        self, deal_id: int, user_id: int, data: DealMessageSchema
    ) -> DealMessage:
        async def handler():
            await self._party_deal(deal_id, user_id, "message in this deal")

            message = await self.messages.add(deal_id, user_id, data.message)
            logger.info(
                f"Message added to deal deal_id={deal_id} user_id={user_id} "
                f"message_id={message.id}"
            )
            return message

        return await breaker.call(handler)

    async def get_deal_messages(self, deal_id: int, user_id: int) -> List[DealMessage]:
        async def handler():
            await self._party_deal(deal_id, user_id, "view messages for this deal")
            return await self.messages.list_for_deal(deal_id)

        return await breaker.call(handler)
