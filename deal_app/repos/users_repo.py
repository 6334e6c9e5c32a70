from typing import List, Optional

from sqlalchemy import delete, exists, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from deal_app.core.errors import Conflict
from deal_app.models.models import Deal, DealMessage, Listing, User
from deal_app.models.utils import utcnow


class UsersRepo:
    def __init__(self, db):
        self.db = db

    async def by_id(self, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        email_payload = email.strip().lower()
        result = await self.db.execute(select(User).where(User.email == email_payload))
        return result.scalar_one_or_none()

    async def get_all(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.id))
        return result.scalars().all()

    async def create(self, user: User) -> User:
        if user.id is not None:
            raise ValueError(
                "create() called with existing user, use update() instead"
            )
        self.db.add(user)
        return await self._commit_and_refresh(user)

    async def update(self, user: User, **fields) -> User:
        if user.id is None:
            raise ValueError("update() called with no ID, use create() instead")
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = utcnow()
        self.db.add(user)
        return await self._commit_and_refresh(user)

    async def _commit_and_refresh(self, user: User) -> User:
        try:
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except IntegrityError:
            await self.db.rollback()
            # email is the only unique column
            raise Conflict("Email already registered")
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def is_referenced(self, user_id: int) -> bool:
        stmt = select(
            or_(
                exists().where(Listing.seller_id == user_id),
                exists().where(Deal.buyer_id == user_id),
                exists().where(DealMessage.user_id == user_id),
            )
        )
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    async def delete(self, user_id: int) -> int:
        try:
            result = await self.db.execute(delete(User).where(User.id == user_id))
            await self.db.commit()
            return result.rowcount
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def delete_cascade(self, user_id: int) -> int:
        """Delete the user with every listing, deal and message tied to them."""
        own_listings = select(Listing.id).where(Listing.seller_id == user_id)
        touched_deals = select(Deal.id).where(
            or_(Deal.buyer_id == user_id, Deal.listing_id.in_(own_listings))
        )
        try:
            await self.db.execute(
                delete(DealMessage)
                .where(
                    or_(
                        DealMessage.user_id == user_id,
                        DealMessage.deal_id.in_(touched_deals),
                    )
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(Deal)
                .where(or_(Deal.buyer_id == user_id, Deal.listing_id.in_(own_listings)))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(Listing)
                .where(Listing.seller_id == user_id)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(
                delete(User)
                .where(User.id == user_id)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount
        except SQLAlchemyError:
            await self.db.rollback()
            raise
