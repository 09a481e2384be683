# =============================================================================
# File: app/event/command_handlers/lifecycle_handlers.py
# Description: Status transitions of events and mega-events
# Handlers: ChangeStatus
# =============================================================================

from __future__ import annotations

from app.common.base.base_command_handler import BaseCommandHandler
from app.event.commands import ChangeStatusCommand
from app.event.projections import AggregateView
from app.infra.cqrs.decorators import command_handler


@command_handler(ChangeStatusCommand)
class ChangeStatusHandler(BaseCommandHandler):
    """
    Runs the lifecycle engine under the aggregate lock.

    The engine enforces the transition table, the guard of the target
    state and its side effects; the ledger row follows via update_core.
    """

    async def handle(self, command: ChangeStatusCommand) -> AggregateView:
        aggregate, _ = await self.mutate(
            command.kind,
            command.aggregate_id,
            lambda a: self.lifecycle.change_status(a, command.target, command.actor, command.reason),
            operation=f"change status to {command.target}",
        )
        return self.view(aggregate)
