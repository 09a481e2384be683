# =============================================================================
# File: app/event/exceptions.py
# Description: Event / mega-event domain exceptions
# =============================================================================

from typing import Iterable, List, Optional

from app.common.exceptions.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    InfrastructureError,
    ResourceNotFoundError,
    ValidationError,
)


class ValidationFailed(ValidationError):
    """Malformed or missing input"""
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFound(ResourceNotFoundError):
    """Aggregate or membership absent (or soft-deleted)"""
    def __init__(self, kind: str, identifier: object):
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class SponsorNotFound(NotFound):
    def __init__(self, company_id: int):
        super().__init__("Sponsor", company_id)
        self.company_id = company_id


class Unauthorized(AuthorizationError):
    """Actor lacks the role or relationship the operation needs"""
    def __init__(self, actor_id: object, action: str):
        super().__init__(f"Actor {actor_id} is not allowed to {action}")
        self.actor_id = actor_id
        self.action = action


# =============================================================================
# Lifecycle
# =============================================================================

class LifecycleError(DomainError):
    """Base for state machine violations"""
    def __init__(self, message: str, current: str, target: str, allowed: Iterable[str]):
        super().__init__(message)
        self.current = current
        self.target = target
        self.allowed: List[str] = list(allowed)


class InvalidTransition(LifecycleError):
    def __init__(self, current: str, target: str, allowed: Iterable[str]):
        allowed = list(allowed)
        super().__init__(
            f"Cannot change state from '{current}' to '{target}'. "
            f"Allowed: {', '.join(allowed) if allowed else 'none (terminal state)'}",
            current, target, allowed,
        )


class PreconditionFailed(LifecycleError):
    def __init__(self, current: str, target: str, reason: str, allowed: Iterable[str]):
        super().__init__(f"Cannot change state to '{target}': {reason}", current, target, allowed)
        self.reason = reason


# =============================================================================
# Invariant violations (400)
# =============================================================================

class InvariantViolation(DomainError):
    """Base for membership / capacity / image invariants"""
    pass


class AlreadyRegistered(InvariantViolation):
    def __init__(self, member_id: int):
        super().__init__(f"Member {member_id} is already registered")
        self.member_id = member_id


class CapacityExceeded(InvariantViolation):
    def __init__(self, capacity: int):
        super().__init__(f"Capacity of {capacity} participants reached")
        self.capacity = capacity


class EnrollmentClosed(InvariantViolation):
    def __init__(self):
        super().__init__("Enrollment is closed")


class EnrollmentDeadlinePassed(InvariantViolation):
    def __init__(self, deadline):
        super().__init__(f"Enrollment deadline passed at {deadline.isoformat()}")
        self.deadline = deadline


class AggregateClosed(InvariantViolation):
    def __init__(self, kind: str, aggregate_id: str, state: str):
        super().__init__(f"{kind} {aggregate_id} is {state} and can no longer be changed")
        self.state = state


class NotRegistered(InvariantViolation):
    def __init__(self, member_id: int):
        super().__init__(f"Member {member_id} is not registered")
        self.member_id = member_id


class AlreadyOrganizer(InvariantViolation):
    def __init__(self, ngo_id: int):
        super().__init__(f"NGO {ngo_id} is already an organizer")
        self.ngo_id = ngo_id


class NotAnNgo(InvariantViolation):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} is not an active NGO account")
        self.user_id = user_id


class AlreadySponsor(InvariantViolation):
    def __init__(self, company_id: int):
        super().__init__(f"Company {company_id} is already a sponsor")
        self.company_id = company_id


class InvalidPledgeTransition(InvariantViolation):
    def __init__(self, current: str, target: str):
        super().__init__(f"Pledge cannot move from '{current}' to '{target}'")
        self.current = current
        self.target = target


class HasDependents(InvariantViolation):
    def __init__(self, aggregate_id: str, participants: int):
        super().__init__(f"Cannot delete {aggregate_id}: {participants} participant(s) registered")
        self.aggregate_id = aggregate_id
        self.participants = participants


class TooManyImages(InvariantViolation):
    def __init__(self, ceiling: int, current: int, incoming: int):
        super().__init__(
            f"Image limit is {ceiling}: {current} stored, {incoming} more requested"
        )
        self.ceiling = ceiling
        self.current = current
        self.incoming = incoming


# =============================================================================
# Cross-store / infrastructure (500)
# =============================================================================

class DualWriteFailure(InfrastructureError):
    """A cross-store write could not be made atomic. Safe to retry."""
    retryable = True

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Dual write failed during {operation}{detail}")
        self.operation = operation
        self.cause = cause


class StoreUnavailable(InfrastructureError):
    """Pool or connection failure, including bounded-wait timeouts"""
    def __init__(self, store: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{store} unavailable{detail}")
        self.store = store
        self.cause = cause


class ConcurrencyConflict(ConflictError):
    """Conditional save lost against a concurrent writer"""
    def __init__(self, aggregate_id: str, expected_version: int):
        super().__init__(f"Aggregate {aggregate_id} changed concurrently (expected version {expected_version})")
        self.aggregate_id = aggregate_id
        self.expected_version = expected_version
