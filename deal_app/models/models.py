from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from bcrypt import checkpw, gensalt, hashpw
from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from deal_app.core.get_db import Base

from .enums import DealStatus, ListingStatus, UserRole
from .utils import enum_values, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=UserRole.USER,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    listings: Mapped[List["Listing"]] = relationship(
        "Listing", back_populates="seller", foreign_keys="Listing.seller_id"
    )
    deals: Mapped[List["Deal"]] = relationship(
        "Deal", back_populates="buyer", foreign_keys="Deal.buyer_id"
    )

    def set_password(self, raw_password: str):
        salt = gensalt()
        self.password_hash = hashpw(raw_password.encode("utf-8"), salt).decode(
            "utf-8"
        )

    def check_password(self, raw_password: str) -> bool:
        return checkpw(
            raw_password.encode("utf-8"), self.password_hash.encode("utf-8")
        )

    def normalize(self) -> None:
        self.name = self.name.strip()
        self.email = self.email.strip().lower()


class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (Index("idx_listings_category_status", "category", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus, native_enum=False, values_callable=enum_values, length=50),
        nullable=False,
        default=ListingStatus.ACTIVE,
    )
    seller_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    seller: Mapped["User"] = relationship(
        "User", back_populates="listings", foreign_keys=[seller_id]
    )
    deals: Mapped[List["Deal"]] = relationship("Deal", back_populates="listing")


class Deal(Base):
    __tablename__ = "deals"
    __table_args__ = (Index("idx_deals_listing_status", "listing_id", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id"), nullable=False, index=True
    )
    buyer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    offer_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[DealStatus] = mapped_column(
        Enum(DealStatus, native_enum=False, values_callable=enum_values, length=50),
        nullable=False,
        default=DealStatus.PENDING,
    )
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terms: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    listing: Mapped["Listing"] = relationship("Listing", back_populates="deals")
    buyer: Mapped["User"] = relationship(
        "User", back_populates="deals", foreign_keys=[buyer_id]
    )
    messages: Mapped[List["DealMessage"]] = relationship(
        "DealMessage", back_populates="deal", order_by="DealMessage.created_at"
    )


class DealMessage(Base):
    __tablename__ = "deal_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("deals.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    deal: Mapped["Deal"] = relationship("Deal", back_populates="messages")
