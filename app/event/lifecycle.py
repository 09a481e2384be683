# =============================================================================
# File: app/event/lifecycle.py
# Description: State machines for Event and MegaEvent
#
# Each machine is three tables:
#   - TRANSITIONS: current state -> allowed targets (exhaustive over the enum)
#   - GUARDS:      target state  -> precondition returning a failure reason
#   - EFFECTS:     target state  -> side effect applied after the guard passes
#
# change_status() authorizes, validates, applies effects and appends one
# history entry. Persisting the aggregate is the caller's job.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional

from app.event.aggregate import Aggregate, MegaEventAggregate, percentage
from app.event.authorization import ensure_organizer
from app.event.enums import AggregateKind, EventState, MegaEventState
from app.event.exceptions import AggregateClosed, InvalidTransition, PreconditionFailed, ValidationFailed
from app.event.value_objects import Actor, TransitionOption, utc_now

log = logging.getLogger("eventhub.event.lifecycle")

Guard = Callable[[Aggregate, datetime], Optional[str]]
Effect = Callable[[Aggregate, datetime], None]

CREATED_REASON = "created"


# =============================================================================
# Transition tables
# =============================================================================

EVENT_TRANSITIONS: Mapping[EventState, FrozenSet[EventState]] = {
    EventState.DRAFT: frozenset({EventState.PUBLISHED, EventState.CANCELLED}),
    EventState.PUBLISHED: frozenset({EventState.IN_PROGRESS, EventState.SUSPENDED, EventState.CANCELLED}),
    EventState.IN_PROGRESS: frozenset({EventState.FINISHED, EventState.SUSPENDED}),
    EventState.SUSPENDED: frozenset({EventState.PUBLISHED, EventState.CANCELLED}),
    EventState.FINISHED: frozenset(),
    EventState.CANCELLED: frozenset(),
}

MEGA_EVENT_TRANSITIONS: Mapping[MegaEventState, FrozenSet[MegaEventState]] = {
    MegaEventState.PLANNING: frozenset({MegaEventState.CALL_FOR_PARTICIPATION, MegaEventState.CANCELLED}),
    MegaEventState.CALL_FOR_PARTICIPATION: frozenset({
        MegaEventState.ORGANIZING, MegaEventState.POSTPONED, MegaEventState.CANCELLED,
    }),
    MegaEventState.ORGANIZING: frozenset({
        MegaEventState.IN_PROGRESS, MegaEventState.POSTPONED, MegaEventState.CANCELLED,
    }),
    MegaEventState.IN_PROGRESS: frozenset({MegaEventState.FINISHED, MegaEventState.POSTPONED}),
    MegaEventState.POSTPONED: frozenset({MegaEventState.CALL_FOR_PARTICIPATION, MegaEventState.CANCELLED}),
    MegaEventState.FINISHED: frozenset(),
    MegaEventState.CANCELLED: frozenset(),
}

assert set(EVENT_TRANSITIONS) == set(EventState)
assert set(MEGA_EVENT_TRANSITIONS) == set(MegaEventState)


# =============================================================================
# Guards
# =============================================================================

def _requires_publishable_fields(aggregate: Aggregate, now: datetime) -> Optional[str]:
    missing = [
        name for name, value in (
            ("title", aggregate.title),
            ("start", aggregate.start),
            ("location", aggregate.location),
        ) if not value
    ]
    if missing:
        return f"missing required fields: {', '.join(missing)}"
    if aggregate.start <= now:
        return "start must be in the future"
    return None


def _requires_running_window(aggregate: Aggregate, now: datetime) -> Optional[str]:
    if aggregate.start is None or now < aggregate.start:
        return "the event has not started yet"
    if aggregate.end is not None and now > aggregate.end:
        return "the event has already ended"
    return None


def _requires_ended(aggregate: Aggregate, now: datetime) -> Optional[str]:
    deadline = aggregate.end or aggregate.start
    if deadline is None or now < deadline:
        return "the event has not ended yet"
    return None


def _requires_organizing_ngo(aggregate: Aggregate, now: datetime) -> Optional[str]:
    reason = _requires_publishable_fields(aggregate, now)
    if reason:
        return reason
    if not aggregate.active_organizers():
        return "at least one active organizing NGO is required"
    return None


def _requires_participant(aggregate: Aggregate, now: datetime) -> Optional[str]:
    if not aggregate.participants:
        return "at least one registered participant is required"
    return None


EVENT_GUARDS: Dict[EventState, Guard] = {
    EventState.PUBLISHED: _requires_publishable_fields,
    EventState.IN_PROGRESS: _requires_running_window,
    EventState.FINISHED: _requires_ended,
}

MEGA_EVENT_GUARDS: Dict[MegaEventState, Guard] = {
    MegaEventState.CALL_FOR_PARTICIPATION: _requires_organizing_ngo,
    MegaEventState.ORGANIZING: _requires_participant,
    MegaEventState.IN_PROGRESS: _requires_running_window,
    MegaEventState.FINISHED: _requires_ended,
}


# =============================================================================
# Side effects
# =============================================================================

def _open(aggregate: Aggregate, now: datetime) -> None:
    aggregate.public = True
    aggregate.enrollment_open = True


def _close_enrollment(aggregate: Aggregate, now: datetime) -> None:
    aggregate.enrollment_open = False


def _finish(aggregate: Aggregate, now: datetime) -> None:
    aggregate.enrollment_open = False
    aggregate.finished_at = now
    aggregate.recompute_metrics()
    if aggregate.capacity:
        aggregate.metrics.capacity_used = percentage(len(aggregate.participants), aggregate.capacity)
    aggregate.metrics.final_snapshot_at = now
    if isinstance(aggregate, MegaEventAggregate):
        aggregate.budget.collected_total = aggregate.confirmed_pledge_total()


def _cancel(aggregate: Aggregate, now: datetime) -> None:
    aggregate.public = False
    aggregate.enrollment_open = False
    aggregate.cancelled_at = now


EVENT_EFFECTS: Dict[EventState, Effect] = {
    EventState.PUBLISHED: _open,
    EventState.IN_PROGRESS: _close_enrollment,
    EventState.FINISHED: _finish,
    EventState.SUSPENDED: _close_enrollment,
    EventState.CANCELLED: _cancel,
}

MEGA_EVENT_EFFECTS: Dict[MegaEventState, Effect] = {
    MegaEventState.CALL_FOR_PARTICIPATION: _open,
    MegaEventState.ORGANIZING: _close_enrollment,
    MegaEventState.IN_PROGRESS: _close_enrollment,
    MegaEventState.FINISHED: _finish,
    MegaEventState.POSTPONED: _close_enrollment,
    MegaEventState.CANCELLED: _cancel,
}


@dataclass(frozen=True)
class StateMachine:
    states: type
    transitions: Mapping
    guards: Mapping
    effects: Mapping
    open_states: FrozenSet   # states in which enrollment may be open

    def parse(self, value: str):
        try:
            return self.states(value)
        except ValueError:
            raise ValidationFailed(
                f"Unknown state '{value}'. Valid: {', '.join(s.value for s in self.states)}",
                field="target",
            )

    def allowed(self, current) -> List[str]:
        return sorted(s.value for s in self.transitions[self.states(current)])

    def is_terminal(self, current) -> bool:
        return not self.transitions[self.states(current)]


STATE_MACHINES: Dict[AggregateKind, StateMachine] = {
    AggregateKind.EVENT: StateMachine(
        EventState, EVENT_TRANSITIONS, EVENT_GUARDS, EVENT_EFFECTS, frozenset({EventState.PUBLISHED}),
    ),
    AggregateKind.MEGA_EVENT: StateMachine(
        MegaEventState, MEGA_EVENT_TRANSITIONS, MEGA_EVENT_GUARDS, MEGA_EVENT_EFFECTS,
        frozenset({MegaEventState.CALL_FOR_PARTICIPATION}),
    ),
}


def default_reason(previous: str, new: str) -> str:
    return f"Changed from {previous} to {new}"


# =============================================================================
# Engine
# =============================================================================

class LifecycleEngine:
    """Validates and applies state transitions on an in-memory aggregate."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    @staticmethod
    def machine_for(aggregate: Aggregate) -> StateMachine:
        return STATE_MACHINES[AggregateKind(aggregate.kind)]

    def allowed_targets(self, aggregate: Aggregate) -> List[str]:
        return self.machine_for(aggregate).allowed(aggregate.state)

    def check_guard(self, aggregate: Aggregate, target) -> Optional[str]:
        guard = self.machine_for(aggregate).guards.get(target)
        return guard(aggregate, self._clock()) if guard else None

    def available_transitions(self, aggregate: Aggregate) -> List[TransitionOption]:
        machine = self.machine_for(aggregate)
        options = []
        for target in self.allowed_targets(aggregate):
            reason = self.check_guard(aggregate, machine.states(target))
            options.append(TransitionOption(target=target, allowed=reason is None, reason=reason))
        return options

    def ensure_editable(self, aggregate: Aggregate, changes: Mapping[str, Any]) -> None:
        """
        Field updates may not reopen what the lifecycle closed. Finished and
        cancelled aggregates are frozen; enrollment_open and public can only
        be switched on in the state that opens enrollment.
        """
        machine = self.machine_for(aggregate)
        if machine.is_terminal(aggregate.state):
            raise AggregateClosed(aggregate.kind, aggregate.id, aggregate.state)
        if machine.states(aggregate.state) in machine.open_states:
            return
        for name in ("enrollment_open", "public"):
            if changes.get(name) and not getattr(aggregate, name):
                opening = ", ".join(sorted(s.value for s in machine.open_states))
                raise ValidationFailed(
                    f"{name} can only be switched on while the {aggregate.kind} is {opening}", field=name,
                )

    def record_creation(self, aggregate: Aggregate, actor: Optional[Actor]) -> None:
        aggregate.append_history(
            previous_state=None,
            new_state=aggregate.state,
            acting_user_id=actor.actor_id if actor else None,
            reason=CREATED_REASON,
            timestamp=self._clock(),
        )

    def change_status(
            self,
            aggregate: Aggregate,
            target: str,
            actor: Actor,
            reason: Optional[str] = None,
    ):
        """Move the aggregate to target. Returns the appended history entry."""
        ensure_organizer(aggregate, actor, "change status")

        machine = self.machine_for(aggregate)
        target_state = machine.parse(target)
        current = aggregate.state
        allowed = machine.allowed(current)

        if target_state.value not in allowed:
            raise InvalidTransition(current, target_state.value, allowed)

        now = self._clock()
        guard = machine.guards.get(target_state)
        failure = guard(aggregate, now) if guard else None
        if failure:
            raise PreconditionFailed(current, target_state.value, failure, allowed)

        effect = machine.effects.get(target_state)
        if effect:
            effect(aggregate, now)
        aggregate.state = target_state

        entry = aggregate.append_history(
            previous_state=current,
            new_state=target_state.value,
            acting_user_id=actor.actor_id,
            reason=reason or default_reason(current, target_state.value),
            timestamp=now,
        )
        log.info(
            f"{aggregate.kind} {aggregate.id} moved {current} -> {target_state.value} by {actor.actor_id}"
        )
        return entry

    def force_cancel(self, aggregate: Aggregate, actor: Actor, reason: str) -> None:
        """Soft-delete path: cancellation without the transition table."""
        now = self._clock()
        current = aggregate.state
        aggregate.active = False
        if current == "cancelled":
            return
        _cancel(aggregate, now)
        aggregate.state = "cancelled"
        aggregate.append_history(
            previous_state=current,
            new_state="cancelled",
            acting_user_id=actor.actor_id,
            reason=reason,
            timestamp=now,
        )
