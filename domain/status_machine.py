"""Booking status state machine.

The transition table is the single source of truth for which status
changes are legal. The role table narrows that set to what a given
actor may trigger; it never widens it.
"""
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel

from domain.enums import BookingStatus, ErrorKind, UserRole
from domain.errors import CoreError, ForbiddenTransition, IllegalTransition, NoOpTransition

S = BookingStatus

TRANSITION_TABLE: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    S.PENDING: frozenset({S.APPROVED, S.REJECTED}),
    S.APPROVED: frozenset({S.PAID}),
    S.PAID: frozenset({S.CHECKED_IN}),
    S.CHECKED_IN: frozenset({S.CHECKED_OUT}),
    S.REJECTED: frozenset(),
    S.CHECKED_OUT: frozenset(),
}

INITIAL_STATUS = S.PENDING
TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITION_TABLE.items() if not targets)

_FRONT_DESK = frozenset({UserRole.STAFF, UserRole.HOTEL_MANAGER, UserRole.ADMIN})
_APPROVERS = frozenset({UserRole.HOTEL_MANAGER, UserRole.ADMIN})

# Which roles may move a booking INTO each status
ROLE_PERMISSIONS: Dict[BookingStatus, FrozenSet[UserRole]] = {
    S.APPROVED: _APPROVERS,
    S.REJECTED: _APPROVERS,
    S.PAID: _FRONT_DESK | {UserRole.CUSTOMER},
    S.CHECKED_IN: _FRONT_DESK,
    S.CHECKED_OUT: _FRONT_DESK,
}

STATUS_LABELS: Dict[BookingStatus, str] = {
    S.PENDING: "Pending: Waiting for hotel's approval",
    S.APPROVED: "Approved: Hotel approved, waiting for deposit",
    S.REJECTED: "Rejected: Hotel declined the reservation",
    S.PAID: "Paid: Deposited, can stay at the hotel when time comes",
    S.CHECKED_IN: "Checked in: Currently staying",
    S.CHECKED_OUT: "Checked out: Stay completed",
}


class TransitionResult(BaseModel):
    """Outcome of a transition attempt"""
    ok: bool
    current_status: BookingStatus
    new_status: Optional[BookingStatus] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def allowed(cls, current: BookingStatus, new_status: BookingStatus) -> "TransitionResult":
        return cls(ok=True, current_status=current, new_status=new_status)

    @classmethod
    def rejected(cls, current: BookingStatus, error: CoreError) -> "TransitionResult":
        return cls(ok=False, current_status=current, error_kind=error.kind, message=error.message)


def is_terminal(status: BookingStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_trigger(actor: Optional[UserRole], target: BookingStatus) -> bool:
    """Check whether an actor may move a booking into target; no actor means unrestricted"""
    if actor is None:
        return True
    return actor in ROLE_PERMISSIONS.get(target, frozenset())


def available_actions(current: BookingStatus, actor: Optional[UserRole] = None) -> FrozenSet[BookingStatus]:
    """Statuses directly reachable from current, narrowed to what actor may trigger"""
    targets = TRANSITION_TABLE[S.parse(current)]
    if actor is None:
        return targets
    return frozenset(t for t in targets if can_trigger(actor, t))


def assert_transition(
    current: BookingStatus,
    requested: BookingStatus,
    actor: Optional[UserRole] = None,
) -> BookingStatus:
    """Validate a transition and return the new status, raising a CoreError otherwise"""
    current = S.parse(current)
    requested = S.parse(requested)
    if requested == current:
        raise NoOpTransition(f"Booking is already {current.value}")
    if requested not in TRANSITION_TABLE[current]:
        raise IllegalTransition(
            f"Invalid booking transition: {current.value} → {requested.value}"
        )
    if not can_trigger(actor, requested):
        raise ForbiddenTransition(
            f"Role {actor.value} may not move a booking to {requested.value}"
        )
    return requested


def attempt_transition(
    current: BookingStatus,
    requested: BookingStatus,
    actor: Optional[UserRole] = None,
) -> TransitionResult:
    """Decide a transition without raising; the caller applies the result"""
    current = S.parse(current)
    try:
        new_status = assert_transition(current, requested, actor)
    except CoreError as e:
        return TransitionResult.rejected(current, e)
    return TransitionResult.allowed(current, new_status)


def reachable_from(status: BookingStatus) -> FrozenSet[BookingStatus]:
    """Every status reachable through one or more legal transitions"""
    seen = set()
    frontier = list(TRANSITION_TABLE[S.parse(status)])
    while frontier:
        nxt = frontier.pop()
        if nxt in seen:
            continue
        seen.add(nxt)
        frontier.extend(TRANSITION_TABLE[nxt])
    return frozenset(seen)
