from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from deal_app.core.errors import ValidationFailure
from deal_app.core.get_current_user import get_current_user
from deal_app.core.get_db import get_db_async
from deal_app.core.mapper import ORMMapper
from deal_app.core.responses import envelope
from deal_app.core.safe_handler import safe_handler
from deal_app.core.throttling import rate_limit
from deal_app.models.models import User
from deal_app.schemas.schema import (
    ListingCreateSchema,
    ListingFilters,
    ListingOut,
    ListingUpdateSchema,
)
from deal_app.services.deal_service import DealService

router = APIRouter(tags=["Listings"], dependencies=[rate_limit])
mapper = ORMMapper()


def _validation_failure(exc: ValidationError) -> ValidationFailure:
    errors = [
        {
            "field": ".".join(str(p) for p in err["loc"]) or "query",
            "message": str(err["msg"]).removeprefix("Value error, "),
        }
        for err in exc.errors()
    ]
    return ValidationFailure("Validation failed", errors=errors)


@cbv(router)
class ListingRoutes:
    @router.post("/listings", status_code=201)
    @safe_handler
    async def create_listing(
        self,
        request: Request,
        data: ListingCreateSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        listing = await DealService(db).create_listing(data, current_user.id)
        return envelope(
            "Listing created successfully",
            mapper.one(listing, ListingOut),
            status_code=201,
        )

    @router.get("/listings")
    @safe_handler
    async def get_all_listings(
        self,
        request: Request,
        category: Optional[str] = None,
        min_price: Optional[str] = None,
        max_price: Optional[str] = None,
        status: Optional[str] = None,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        try:
            filters = ListingFilters(
                category=category,
                min_price=min_price,
                max_price=max_price,
                status=status,
            )
        except ValidationError as e:
            raise _validation_failure(e)

        listings = await DealService(db).get_all_listings(filters)
        return envelope(
            "Listings retrieved successfully",
            mapper.many(listings, ListingOut),
            count=len(listings),
        )

    @router.get("/listings/my")
    @safe_handler
    async def get_user_listings(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        listings = await DealService(db).get_user_listings(current_user.id)
        return envelope(
            "User listings retrieved successfully",
            mapper.many(listings, ListingOut),
            count=len(listings),
        )

    @router.get("/listings/{listing_id:int}")
    @safe_handler
    async def get_listing(
        self,
        request: Request,
        listing_id: int,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        listing = await DealService(db).get_listing(listing_id)
        return envelope(
            "Listing retrieved successfully", mapper.one(listing, ListingOut)
        )

    @router.put("/listings/{listing_id:int}")
    @safe_handler
    async def update_listing(
        self,
        request: Request,
        listing_id: int,
        data: ListingUpdateSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        listing = await DealService(db).update_listing(
            listing_id, data, current_user.id
        )
        return envelope("Listing updated successfully", mapper.one(listing, ListingOut))

    @router.delete("/listings/{listing_id:int}")
    @safe_handler
    async def delete_listing(
        self,
        request: Request,
        listing_id: int,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        await DealService(db).delete_listing(listing_id, current_user.id)
        return envelope("Listing deleted successfully")
