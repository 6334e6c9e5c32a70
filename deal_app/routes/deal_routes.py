from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from deal_app.core.get_current_user import get_current_user
from deal_app.core.get_db import get_db_async
from deal_app.core.mapper import ORMMapper
from deal_app.core.responses import envelope
from deal_app.core.safe_handler import safe_handler
from deal_app.core.throttling import rate_limit
from deal_app.models.enums import DealRole
from deal_app.models.models import User
from deal_app.schemas.schema import (
    DealCreateSchema,
    DealDetailOut,
    DealMessageOut,
    DealMessageSchema,
    DealOut,
    DealUpdateSchema,
    ListingOut,
)
from deal_app.services.deal_service import DealService

router = APIRouter(tags=["Deals"], dependencies=[rate_limit])
mapper = ORMMapper()


@cbv(router)
class DealRoutes:
    @router.post("/deals", status_code=201)
    @safe_handler
    async def create_deal(
        self,
        request: Request,
        data: DealCreateSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        deal = await DealService(db).create_deal(data, current_user.id)
        return envelope(
            "Deal created successfully", mapper.one(deal, DealOut), status_code=201
        )

    @router.get("/deals")
    @safe_handler
    async def get_user_deals(
        self,
        request: Request,
        role: Optional[str] = None,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        deals = await DealService(db).get_user_deals(
            current_user.id, role or DealRole.BUYER.value
        )
        return envelope(
            "User deals retrieved successfully",
            mapper.many(deals, DealOut),
            count=len(deals),
        )

    @router.get("/deals/{deal_id:int}")
    @safe_handler
    async def get_deal(
        self,
        request: Request,
        deal_id: int,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        result = await DealService(db).get_deal(deal_id, current_user.id)
        return envelope(
            "Deal retrieved successfully",
            DealDetailOut(
                deal=mapper.one(result["deal"], DealOut),
                listing=mapper.one(result["listing"], ListingOut),
            ),
        )

    @router.put("/deals/{deal_id:int}")
    @safe_handler
    async def update_deal(
        self,
        request: Request,
        deal_id: int,
        data: DealUpdateSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        deal = await DealService(db).update_deal(deal_id, data, current_user.id)
        return envelope("Deal updated successfully", mapper.one(deal, DealOut))

    @router.patch("/deals/{deal_id:int}/accept")
    @safe_handler
    async def accept_deal(
        self,
        request: Request,
        deal_id: int,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        deal = await DealService(db).accept_deal(deal_id, current_user.id)
        return envelope("Deal accepted successfully", mapper.one(deal, DealOut))

    @router.patch("/deals/{deal_id:int}/complete")
    @safe_handler
    async def complete_deal(
        self,
        request: Request,
        deal_id: int,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        deal = await DealService(db).complete_deal(deal_id, current_user.id)
        return envelope("Deal completed successfully", mapper.one(deal, DealOut))

    @router.post("/deals/{deal_id:int}/messages", status_code=201)
    @safe_handler
    async def add_message(
        self,
        request: Request,
        deal_id: int,
        data: DealMessageSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        message = await DealService(db).add_message(deal_id, current_user.id, data)
        return envelope(
            "Message added successfully",
            mapper.one(message, DealMessageOut),
            status_code=201,
        )

    @router.get("/deals/{deal_id:int}/messages")
    @safe_handler
    async def get_deal_messages(
        self,
        request: Request,
        deal_id: int,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        messages = await DealService(db).get_deal_messages(deal_id, current_user.id)
        return envelope(
            "Deal messages retrieved successfully",
            mapper.many(messages, DealMessageOut),
            count=len(messages),
        )
