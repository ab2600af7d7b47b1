"""Domain error codes for the ticketing module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_PASSED = "EVENT_PASSED"
    EVENT_CANCELLED = "EVENT_CANCELLED"
    TIER_NOT_FOUND = "TIER_NOT_FOUND"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    MAX_PER_PERSON_EXCEEDED = "MAX_PER_PERSON_EXCEEDED"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    EMPTY_ORDER = "EMPTY_ORDER"
    INVALID_PROMO_CODE = "INVALID_PROMO_CODE"
    DUPLICATE_REFERENCE = "DUPLICATE_REFERENCE"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_REQUEST = "INVALID_REQUEST"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")


class EventPassedError(DomainError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.EVENT_PASSED, message="This event has already passed")


class EventCancelledError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.EVENT_CANCELLED, message="This event has been cancelled"
        )


class TierNotFoundError(DomainError):
    """Raised when a requested tier does not belong to the event."""

    def __init__(self, tier_id: str) -> None:
        super().__init__(
            code=ErrorCode.TIER_NOT_FOUND, message=f"Ticket tier not found: {tier_id}"
        )


class InsufficientInventoryError(DomainError):
    """Raised when a tier has fewer remaining seats than requested."""

    def __init__(self, tier_name: str, remaining: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_INVENTORY,
            message=f"Only {remaining} seats left for {tier_name}",
        )


class MaxPerPersonExceededError(DomainError):
    def __init__(self, tier_name: str, limit: int) -> None:
        super().__init__(
            code=ErrorCode.MAX_PER_PERSON_EXCEEDED,
            message=f"Maximum {limit} {tier_name} tickets per person",
        )


class InvalidQuantityError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_QUANTITY,
            message="Ticket quantities must be whole numbers of zero or more",
        )


class EmptyOrderError(DomainError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.EMPTY_ORDER, message="No tickets selected")


class InvalidPromoCodeError(DomainError):
    """Carries the promo engine's rejection message."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_PROMO_CODE, message=message)


class DuplicateReferenceError(DomainError):
    """Raised by stores when a payment reference is already taken."""

    def __init__(self, tx_ref: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_REFERENCE,
            message=f"Payment reference already in use: {tx_ref}",
        )


class OrderNotFoundError(DomainError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.ORDER_NOT_FOUND, message="Order not found")


class InvalidTransitionError(DomainError):
    """Raised when an order status change is not allowed."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot move order from {current} to {requested}",
        )


class InvalidRequestError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_REQUEST, message=message)


class StorageUnavailableError(DomainError):
    """The record store cannot be read or written.

    This is the only error that propagates out of the services.
    """

    def __init__(self, message: str = "Ticket storage is unavailable") -> None:
        super().__init__(code=ErrorCode.STORAGE_UNAVAILABLE, message=message)
