from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"


class DealStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DealRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"


# status -> statuses reachable from it in one step
DEAL_TRANSITIONS: dict[DealStatus, frozenset[DealStatus]] = {
    DealStatus.PENDING: frozenset(
        {DealStatus.ACCEPTED, DealStatus.REJECTED, DealStatus.CANCELLED}
    ),
    DealStatus.ACCEPTED: frozenset({DealStatus.COMPLETED}),
    DealStatus.REJECTED: frozenset(),
    DealStatus.COMPLETED: frozenset(),
    DealStatus.CANCELLED: frozenset(),
}
