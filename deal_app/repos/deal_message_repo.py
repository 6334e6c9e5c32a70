from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from deal_app.models.models import DealMessage


class DealMessageRepo:
    def __init__(self, db):
        self.db = db

    async def add(self, deal_id: int, user_id: int, message: str) -> DealMessage:
        item = DealMessage(deal_id=deal_id, user_id=user_id, message=message)

        self.db.add(item)
        try:
            await self.db.commit()
            await self.db.refresh(item)
            return item
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def list_for_deal(self, deal_id: int) -> List[DealMessage]:
        stmt = (
            select(DealMessage)
            .where(DealMessage.deal_id == deal_id)
            .order_by(DealMessage.created_at.asc(), DealMessage.id.asc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
