"""Booking status state machine and the pure transition policy.

``evaluate_transition`` never touches the database or the request: callers
pass the actor and the booking's parties explicitly and map the returned
decision onto an error.
"""
import enum
import uuid
from dataclasses import dataclass

from app.models.enums import BookingStatus, UserRole

# Defines all valid status transitions for a booking
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.REQUESTED: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.IN_PROGRESS,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.IN_PROGRESS: frozenset({
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.COMPLETED: frozenset(),  # Terminal state
    BookingStatus.CANCELLED: frozenset(),  # Terminal state
}

# Statuses that hold the provider's (date, time) slot
ACTIVE_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.REQUESTED,
    BookingStatus.CONFIRMED,
    BookingStatus.IN_PROGRESS,
})

TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
})

PROVIDER_SETTABLE_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.CONFIRMED,
    BookingStatus.IN_PROGRESS,
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
})

CUSTOMER_SETTABLE_STATUSES: frozenset[BookingStatus] = frozenset({BookingStatus.CANCELLED})


class TransitionRejection(str, enum.Enum):
    ACCESS_DENIED = "access_denied"
    ROLE_NOT_AUTHORIZED = "role_not_authorized"
    INVALID_STATUS_FOR_ROLE = "invalid_status_for_role"
    INVALID_TRANSITION = "invalid_transition"


@dataclass(frozen=True)
class Actor:
    """Who is asking: resolved from the session by the caller."""

    id: uuid.UUID
    role: UserRole

    def __post_init__(self):
        # Roles read back from the database are plain strings
        object.__setattr__(self, "role", UserRole(self.role))

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class TransitionDecision:
    allowed: bool
    rejection: TransitionRejection | None = None
    message: str | None = None
    # True when an admin moved the booking along an edge outside ALLOWED_TRANSITIONS
    bypassed_state_machine: bool = False

    @classmethod
    def permit(cls, bypassed_state_machine: bool = False) -> "TransitionDecision":
        return cls(allowed=True, bypassed_state_machine=bypassed_state_machine)

    @classmethod
    def reject(cls, rejection: TransitionRejection, message: str) -> "TransitionDecision":
        return cls(allowed=False, rejection=rejection, message=message)


def is_terminal(status: BookingStatus | str) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES


def is_valid_edge(current: BookingStatus | str, new: BookingStatus | str) -> bool:
    return BookingStatus(new) in ALLOWED_TRANSITIONS[BookingStatus(current)]


def evaluate_transition(
    current: BookingStatus | str,
    requested: BookingStatus | str | None,
    actor: Actor,
    customer_id: uuid.UUID,
    provider_id: uuid.UUID,
) -> TransitionDecision:
    """Decide whether ``actor`` may move a booking from ``current`` to ``requested``.

    ``requested`` is None when the update does not touch the status; the
    actor must still be a party to the booking (or an admin).

    Admins are not bound by the edge table. Providers may set any status in
    PROVIDER_SETTABLE_STATUSES and customers may only cancel, in both cases
    along a valid edge.
    """
    current = BookingStatus(current)
    requested = BookingStatus(requested) if requested is not None else None

    if actor.is_admin:
        bypassed = requested is not None and not is_valid_edge(current, requested)
        return TransitionDecision.permit(bypassed_state_machine=bypassed)

    is_provider = actor.id == provider_id
    is_customer = actor.id == customer_id
    if not is_provider and not is_customer:
        return TransitionDecision.reject(
            TransitionRejection.ACCESS_DENIED,
            "You are not a party to this booking",
        )

    if requested is None:
        return TransitionDecision.permit()

    if is_provider:
        if requested not in PROVIDER_SETTABLE_STATUSES:
            return TransitionDecision.reject(
                TransitionRejection.INVALID_STATUS_FOR_ROLE,
                f"Invalid status update for provider: '{requested.value}'",
            )
    elif requested not in CUSTOMER_SETTABLE_STATUSES:
        return TransitionDecision.reject(
            TransitionRejection.ROLE_NOT_AUTHORIZED,
            "Customers can only cancel bookings",
        )

    if not is_valid_edge(current, requested):
        return TransitionDecision.reject(
            TransitionRejection.INVALID_TRANSITION,
            f"Cannot change status from {current.value} to {requested.value}",
        )

    return TransitionDecision.permit()
