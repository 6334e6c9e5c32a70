from decimal import Decimal

from deal_app.models.enums import DealRole, DealStatus, ListingStatus
from deal_app.repos.deal_message_repo import DealMessageRepo
from deal_app.repos.deal_repo import DealRepo
from deal_app.repos.listing_repo import ListingRepo
from deal_app.schemas.schema import ListingFilters


async def create_listing(db, seller, **overrides):
    data = {
        "title": "Road bike",
        "price": Decimal("100.00"),
        "category": "sports",
        "seller_id": seller.id,
        "status": ListingStatus.ACTIVE,
    }
    data.update(overrides)
    return await ListingRepo(db).create(data)


async def create_deal(db, listing, buyer, amount="90.00", status=DealStatus.PENDING):
    return await DealRepo(db).create(
        {
            "listing_id": listing.id,
            "buyer_id": buyer.id,
            "offer_amount": Decimal(amount),
            "status": status,
        }
    )


class TestListingRepo:
    async def test_filters_combine(self, db, seller):
        await create_listing(db, seller, title="Bike", price=Decimal("50"))
        await create_listing(db, seller, title="Car", price=Decimal("5000"), category="cars")
        await create_listing(
            db, seller, title="Helmet", price=Decimal("20"), status=ListingStatus.SOLD
        )

        repo = ListingRepo(db)
        sports = await repo.get_all(ListingFilters(category="sports"))
        cheap_active = await repo.get_all(
            ListingFilters(max_price="60", status="active")
        )
        pricey = await repo.get_all(ListingFilters(min_price="100"))

        assert {item.title for item in sports} == {"Bike", "Helmet"}
        assert [item.title for item in cheap_active] == ["Bike"]
        assert [item.title for item in pricey] == ["Car"]

    async def test_newest_first(self, db, seller):
        first = await create_listing(db, seller, title="First")
        second = await create_listing(db, seller, title="Second")

        listings = await ListingRepo(db).get_user_listings(seller.id)

        assert [item.id for item in listings] == [second.id, first.id]

    async def test_mark_sold_only_flips_active(self, db, seller):
        listing = await create_listing(db, seller)
        repo = ListingRepo(db)

        assert await repo.mark_sold(listing.id) == 1
        await db.commit()
        assert await repo.mark_sold(listing.id) == 0
        await db.commit()

        reloaded = await repo.get_listing_id(listing.id)
        assert reloaded.status == ListingStatus.SOLD

    async def test_delete_removes_deals_and_messages(self, db, seller, buyer):
        listing = await create_listing(db, seller)
        deal = await create_deal(db, listing, buyer)
        await DealMessageRepo(db).add(deal.id, buyer.id, "Still available?")
        listing_id, deal_id = listing.id, deal.id

        assert await ListingRepo(db).delete(listing_id) == 1

        assert await ListingRepo(db).get_listing_id(listing_id) is None
        assert await DealRepo(db).get_deal_id(deal_id) is None
        assert await DealMessageRepo(db).list_for_deal(deal_id) == []


class TestDealRepo:
    async def test_has_pending_deal(self, db, seller, buyer):
        listing = await create_listing(db, seller)
        repo = DealRepo(db)

        assert not await repo.has_pending_deal(listing.id, buyer.id)
        await create_deal(db, listing, buyer)
        assert await repo.has_pending_deal(listing.id, buyer.id)

    async def test_user_deals_by_role(self, db, seller, buyer, other_buyer):
        listing = await create_listing(db, seller)
        mine = await create_deal(db, listing, buyer)
        await create_deal(db, listing, other_buyer)
        repo = DealRepo(db)

        as_buyer = await repo.get_user_deals(buyer.id, DealRole.BUYER)
        as_seller = await repo.get_user_deals(seller.id, DealRole.SELLER)

        assert [deal.id for deal in as_buyer] == [mine.id]
        assert len(as_seller) == 2
        assert await repo.get_user_deals(seller.id, DealRole.BUYER) == []

    async def test_transition_guards_expected_status(self, db, seller, buyer):
        listing = await create_listing(db, seller)
        deal = await create_deal(db, listing, buyer)
        deal_id = deal.id
        repo = DealRepo(db)

        missed = await repo.transition(deal_id, DealStatus.ACCEPTED, DealStatus.COMPLETED)
        assert missed is None

        moved = await repo.transition(deal_id, DealStatus.PENDING, DealStatus.CANCELLED)
        assert moved.status == DealStatus.CANCELLED

    async def test_transition_writes_extra_values_only_when_it_moves(
        self, db, seller, buyer
    ):
        listing = await create_listing(db, seller)
        deal = await create_deal(db, listing, buyer)
        deal_id = deal.id
        repo = DealRepo(db)

        missed = await repo.transition(
            deal_id, DealStatus.ACCEPTED, DealStatus.COMPLETED, message="too late"
        )
        assert missed is None
        assert (await repo.get_deal_id(deal_id)).message is None

        moved = await repo.transition(
            deal_id, DealStatus.PENDING, DealStatus.REJECTED, message="price too low"
        )
        assert moved.status == DealStatus.REJECTED
        assert moved.message == "price too low"

    async def test_accept_rejects_pending_siblings_and_sells(
        self, db, seller, buyer, other_buyer, stranger
    ):
        listing = await create_listing(db, seller)
        chosen = await create_deal(db, listing, buyer, "90.00")
        sibling = await create_deal(db, listing, other_buyer, "95.00")
        withdrawn = await create_deal(
            db, listing, stranger, "80.00", status=DealStatus.CANCELLED
        )
        ids = (listing.id, chosen.id, sibling.id, withdrawn.id)
        repo = DealRepo(db)

        accepted, rejected = await repo.accept(ids[1], ids[0])

        assert accepted.status == DealStatus.ACCEPTED
        assert rejected == 1
        assert (await repo.get_deal_id(ids[2])).status == DealStatus.REJECTED
        assert (await repo.get_deal_id(ids[3])).status == DealStatus.CANCELLED
        listing = await repo.listings.get_listing_id(ids[0])
        assert listing.status == ListingStatus.SOLD

    async def test_accept_on_stale_read_changes_nothing(
        self, app, db, seller, buyer, other_buyer
    ):
        listing = await create_listing(db, seller)
        first = await create_deal(db, listing, buyer)
        second = await create_deal(db, listing, other_buyer)
        listing_id, first_id, second_id = listing.id, first.id, second.id

        async with app.state.sessionmaker() as other:
            stale = await DealRepo(other).get_deal_id(second_id)
            assert stale.status == DealStatus.PENDING

            await DealRepo(db).accept(first_id, listing_id)

            assert await DealRepo(other).accept(second_id, listing_id) is None

        assert (await DealRepo(db).get_deal_id(first_id)).status == DealStatus.ACCEPTED
        assert (await DealRepo(db).get_deal_id(second_id)).status == DealStatus.REJECTED


class TestDealMessageRepo:
    async def test_messages_oldest_first(self, db, seller, buyer):
        listing = await create_listing(db, seller)
        deal = await create_deal(db, listing, buyer)
        repo = DealMessageRepo(db)

        await repo.add(deal.id, buyer.id, "Hi")
        await repo.add(deal.id, seller.id, "Hello")

        messages = await repo.list_for_deal(deal.id)
        assert [m.message for m in messages] == ["Hi", "Hello"]
        assert [m.user_id for m in messages] == [buyer.id, seller.id]
