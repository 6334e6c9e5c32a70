from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from deal_app.models.enums import DealStatus, ListingStatus, UserRole

DECIMAL_RE = re.compile(r"^\d+(\.\d{1,2})?$")
ISO_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{3})?Z?$")


def parse_amount(value: Any, field: str) -> Decimal:
    if not isinstance(value, str) or not DECIMAL_RE.match(value.strip()):
        raise ValueError(
            f"{field} must be a valid number with up to 2 decimal places"
        )
    amount = Decimal(value.strip())
    if amount <= 0:
        raise ValueError(f"{field} must be greater than 0")
    return amount


def parse_future_datetime(value: str, field: str) -> datetime:
    message = f"{field} must be a valid ISO 8601 datetime string in the future"
    if not ISO_DATETIME_RE.match(value):
        raise ValueError(message)
    try:
        parsed = datetime.fromisoformat(value.rstrip("Z"))
    except ValueError:
        raise ValueError(message)
    parsed = parsed.replace(tzinfo=timezone.utc)
    if parsed <= datetime.now(timezone.utc):
        raise ValueError(message)
    return parsed


def _required_text(value: str, field: str, max_length: int) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field} is required")
    if len(value) > max_length:
        raise ValueError(f"{field} must be less than {max_length} characters")
    return value


def _optional_text(value: str | None, field: str, max_length: int) -> str | None:
    if value is not None and len(value) > max_length:
        raise ValueError(f"{field} must be less than {max_length} characters")
    return value


class UpdatePayload(BaseModel):
    @model_validator(mode="after")
    def require_any_field(self):
        if not self.model_fields_set:
            raise ValueError("No fields provided for update.")
        return self


# ---------------------------------------------------------------- users / auth


class SignUpSchema(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(
        ..., json_schema_extra={"type": "string", "format": "password"}
    )
    role: UserRole = UserRole.USER

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name is required and must be at least 2 characters long")
        if len(value) > 100:
            raise ValueError("Name must not exceed 100 characters")
        return value

    @field_validator("email")
    @classmethod
    def validate_email_length(cls, value: str) -> str:
        if len(value) > 255:
            raise ValueError("Email must not exceed 255 characters")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        if len(value) > 100:
            raise ValueError("Password must not exceed 100 characters")
        return value


class SignInSchema(BaseModel):
    email: EmailStr
    password: str = Field(
        ...,
        min_length=6,
        max_length=100,
        json_schema_extra={"type": "string", "format": "password"},
    )

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower() if isinstance(value, str) else value


class UserUpdateSchema(UpdatePayload):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str | None):
        if value is None:
            return value
        value = value.strip()
        if not 2 <= len(value) <= 100:
            raise ValueError("Name must be between 2 and 100 characters long")
        return value


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthOut(BaseModel):
    user: UserOut
    token: str


# -------------------------------------------------------------------- listings


class ListingCreateSchema(BaseModel):
    title: str
    description: Optional[str] = None
    price: Decimal
    category: str

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        return _required_text(value, "Title", 255)

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: str | None):
        return _optional_text(value, "Description", 2000)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, value):
        return parse_amount(value, "Price")

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        return _required_text(value, "Category", 100)


class ListingUpdateSchema(UpdatePayload):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None

    # description may be cleared with null; the other columns are NOT NULL
    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, value):
        if value is None:
            raise ValueError("Title is required")
        return value

    @field_validator("title")
    @classmethod
    def trim_title(cls, value: str):
        return _required_text(value, "Title", 255)

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: str | None):
        return _optional_text(value, "Description", 2000)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, value):
        return parse_amount(value, "Price")

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, value):
        if value is None:
            raise ValueError("Category is required")
        return value

    @field_validator("category")
    @classmethod
    def trim_category(cls, value: str):
        return _required_text(value, "Category", 100)


class ListingFilters(BaseModel):
    category: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    status: Optional[ListingStatus] = None

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def validate_bounds(cls, value, info):
        if value is None or value == "":
            return None
        label = "Minimum price" if info.field_name == "min_price" else "Maximum price"
        if not isinstance(value, str) or not DECIMAL_RE.match(value.strip()):
            raise ValueError(
                f"{label} must be a valid number with up to 2 decimal places"
            )
        return Decimal(value.strip())


class ListingOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    price: Decimal
    category: str
    status: ListingStatus
    seller_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ----------------------------------------------------------------------- deals


class DealCreateSchema(BaseModel):
    listing_id: int
    offer_amount: Decimal
    message: Optional[str] = None
    terms: Optional[dict[str, Any]] = None
    expires_at: Optional[datetime] = None

    @field_validator("listing_id")
    @classmethod
    def validate_listing_id(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Listing ID must be greater than 0")
        return value

    @field_validator("offer_amount", mode="before")
    @classmethod
    def validate_offer_amount(cls, value):
        return parse_amount(value, "Offer amount")

    @field_validator("message")
    @classmethod
    def validate_message(cls, value: str | None):
        return _optional_text(value, "Message", 500)

    @field_validator("expires_at", mode="before")
    @classmethod
    def validate_expires_at(cls, value):
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError(
                "Expiration date must be a valid ISO 8601 datetime string in the future"
            )
        return parse_future_datetime(value, "Expiration date")


class DealUpdateSchema(UpdatePayload):
    status: Optional[DealStatus] = None
    message: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        if value is None or isinstance(value, DealStatus):
            return value
        allowed = ", ".join(s.value for s in DealStatus)
        if value not in {s.value for s in DealStatus}:
            raise ValueError(f"Status must be one of: {allowed}")
        return value

    @field_validator("message")
    @classmethod
    def validate_message(cls, value: str | None):
        return _optional_text(value, "Message", 500)


class DealOut(BaseModel):
    id: int
    listing_id: int
    buyer_id: int
    offer_amount: Decimal
    status: DealStatus
    message: Optional[str] = None
    terms: Optional[dict[str, Any]] = None
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DealDetailOut(BaseModel):
    deal: DealOut
    listing: ListingOut


# -------------------------------------------------------------------- messages


class DealMessageSchema(BaseModel):
    message: str

    @field_validator("message")
    @classmethod
    def validate_message(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message is required")
        if len(value) > 1000:
            raise ValueError("Message must be less than 1000 characters")
        return value


class DealMessageOut(BaseModel):
    id: int
    deal_id: int
    user_id: int
    message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
