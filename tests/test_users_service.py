import pytest

from conftest import PASSWORD, make_settings
from deal_app.core.errors import Conflict, Forbidden, NotFound, Unauthenticated
from deal_app.models.enums import UserRole
from deal_app.repos.users_repo import UsersRepo
from deal_app.schemas.schema import (
    DealCreateSchema,
    DealMessageSchema,
    ListingCreateSchema,
    SignInSchema,
    SignUpSchema,
    UserUpdateSchema,
)
from deal_app.security.tokens import TokenSigner
from deal_app.services.auth_service import AuthService
from deal_app.services.deal_service import DealService
from deal_app.services.users_service import UsersService


@pytest.fixture
async def admin(make_user):
    return await make_user("Admin", role=UserRole.ADMIN)


async def seed_marketplace(db, seller, buyer):
    service = DealService(db)
    listing = await service.create_listing(
        ListingCreateSchema(title="Lamp", price="15", category="home"), seller.id
    )
    deal = await service.create_deal(
        DealCreateSchema(listing_id=listing.id, offer_amount="12"), buyer.id
    )
    await service.add_message(deal.id, buyer.id, DealMessageSchema(message="Hi"))
    return listing, deal


class TestAuthService:
    async def test_sign_up_issues_token(self, db, settings):
        user, token = await AuthService(db, settings).sign_up(
            SignUpSchema(name="Ada", email="Ada@Example.com", password="secret1")
        )

        identity = TokenSigner(settings).verify(token)
        assert user.email == "ada@example.com"
        assert user.password_hash != "secret1"
        assert identity.id == user.id
        assert identity.role == UserRole.USER

    async def test_duplicate_sign_up(self, db, settings, buyer):
        with pytest.raises(Conflict, match="User already exists!"):
            await AuthService(db, settings).sign_up(
                SignUpSchema(name="Copy", email=buyer.email, password="secret1")
            )

    async def test_sign_in(self, db, settings, buyer):
        user, token = await AuthService(db, settings).sign_in(
            SignInSchema(email=buyer.email.upper(), password=PASSWORD)
        )

        assert user.id == buyer.id
        assert TokenSigner(settings).verify(token).email == buyer.email

    @pytest.mark.parametrize("email", ["buyer@example.com", "ghost@example.com"])
    async def test_sign_in_rejects_bad_credentials(self, db, settings, buyer, email):
        with pytest.raises(Unauthenticated, match="Invalid credentials"):
            await AuthService(db, settings).sign_in(
                SignInSchema(email=email, password="wrong-password")
            )


class TestUsersService:
    async def test_list_requires_admin(self, db, settings, admin, buyer):
        service = UsersService(db, settings)

        users = await service.get_all_users(admin)
        assert {u.id for u in users} == {admin.id, buyer.id}

        with pytest.raises(Forbidden, match="Access Denied."):
            await service.get_all_users(buyer)

    async def test_get_self_or_admin(self, db, settings, admin, buyer, stranger):
        service = UsersService(db, settings)

        assert (await service.get_user(buyer.id, buyer)).id == buyer.id
        assert (await service.get_user(buyer.id, admin)).id == buyer.id
        with pytest.raises(Forbidden):
            await service.get_user(buyer.id, stranger)

    async def test_admin_gets_missing_user(self, db, settings, admin):
        with pytest.raises(NotFound, match="User not found"):
            await UsersService(db, settings).get_user(9999, admin)

    async def test_update_self(self, db, settings, buyer):
        updated = await UsersService(db, settings).update_user(
            buyer.id, UserUpdateSchema(name="Renamed"), buyer
        )

        assert updated.name == "Renamed"

    async def test_only_admin_changes_role(self, db, settings, admin, buyer):
        service = UsersService(db, settings)

        with pytest.raises(Forbidden, match="Only an admin can change roles"):
            await service.update_user(buyer.id, UserUpdateSchema(role="admin"), buyer)

        promoted = await service.update_user(
            buyer.id, UserUpdateSchema(role="admin"), admin
        )
        assert promoted.role == UserRole.ADMIN

    async def test_update_rejects_taken_email(self, db, settings, buyer, stranger):
        with pytest.raises(Conflict, match="Email already registered"):
            await UsersService(db, settings).update_user(
                buyer.id, UserUpdateSchema(email=stranger.email), buyer
            )

    async def test_insert_with_taken_email_is_a_conflict(self, make_user, buyer):
        with pytest.raises(Conflict, match="Email already registered"):
            await make_user("Buyer")

    async def test_restrict_policy_blocks_referenced_user(
        self, db, settings, seller, buyer
    ):
        await seed_marketplace(db, seller, buyer)

        with pytest.raises(Conflict, match="cannot be deleted"):
            await UsersService(db, settings).delete_user(seller.id, seller)

        assert await UsersRepo(db).by_id(seller.id) is not None

    async def test_restrict_policy_deletes_unreferenced_user(
        self, db, settings, stranger
    ):
        stranger_id = stranger.id

        await UsersService(db, settings).delete_user(stranger_id, stranger)

        assert await UsersRepo(db).by_id(stranger_id) is None

    async def test_cascade_policy_removes_everything(
        self, db, tmp_path, seller, buyer
    ):
        listing, deal = await seed_marketplace(db, seller, buyer)
        ids = (seller.id, buyer.id, listing.id, deal.id)
        cascade = make_settings(tmp_path, USER_DELETE_POLICY="cascade")

        await UsersService(db, cascade).delete_user(ids[0], seller)

        deals = DealService(db)
        assert await UsersRepo(db).by_id(ids[0]) is None
        assert await UsersRepo(db).by_id(ids[1]) is not None
        assert await deals.listings.get_listing_id(ids[2]) is None
        assert await deals.deals.get_deal_id(ids[3]) is None
        assert await deals.messages.list_for_deal(ids[3]) == []
