"""Typed result values returned by the services.

Every recoverable failure is reported through one of these instead of an
exception, so callers can always render a specific message.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ticketing.domain.errors import DomainError
from ticketing.domain.models import Order, PromoCode
from ticketing.domain.value_objects import Money


@dataclass(frozen=True)
class Availability:
    """Outcome of an availability check or an inventory deduction.

    On failure ``tier_id`` and ``remaining`` identify the offending tier
    when the failure is tier-specific.
    """

    available: bool
    error: DomainError | None = None
    tier_id: str | None = None
    remaining: int | None = None

    @property
    def reason(self) -> str | None:
        return self.error.message if self.error else None

    @classmethod
    def ok(cls) -> "Availability":
        return cls(available=True)

    @classmethod
    def rejected(
        cls, error: DomainError, tier_id: str | None = None, remaining: int | None = None
    ) -> "Availability":
        return cls(available=False, error=error, tier_id=tier_id, remaining=remaining)


@dataclass(frozen=True)
class OrderResult:
    """Outcome of create_order: either an order or an error."""

    success: bool
    order: Order | None = None
    error: DomainError | None = None

    @classmethod
    def created(cls, order: Order) -> "OrderResult":
        return cls(success=True, order=order)

    @classmethod
    def failed(cls, error: DomainError) -> "OrderResult":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a lifecycle transition.

    ``order`` is the order after the transition, or None when the
    transition was rejected.
    """

    order: Order | None = None
    error: DomainError | None = None

    @property
    def success(self) -> bool:
        return self.order is not None


@dataclass(frozen=True)
class PromoValidation:
    valid: bool
    discount: Money
    message: str
    code: PromoCode | None = None

    @classmethod
    def rejected(cls, message: str) -> "PromoValidation":
        return cls(valid=False, discount=Money.zero(), message=message)


class TicketStatus(str, Enum):
    """Door-side classification of a scanned ticket."""

    VALID = "valid"
    USED = "used"
    INVALID = "invalid"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class VerificationResult:
    """Classification of a scanned ticket.

    ``admitted`` is True only on the single call that moved the order
    from confirmed to used.
    """

    status: TicketStatus
    message: str
    order: Order | None = None
    admitted: bool = False


@dataclass(frozen=True)
class OrderStats:
    total: int
    pending: int
    confirmed: int
    cancelled: int
    used: int
    revenue: Decimal


@dataclass(frozen=True)
class PromoStats:
    total: int
    active: int
    total_uses: int
