# =============================================================================
# File: app/event/command_handlers/membership_handlers.py
# Description: Participants, organizers and sponsors
# Handlers: RegisterParticipant, RegisterAttendance, ReviewParticipant,
#           AddOrganizer, AddSponsor, UpdateSponsorPledge
# =============================================================================

from __future__ import annotations

from app.common.base.base_command_handler import BaseCommandHandler
from app.event.aggregate import Aggregate, OrganizerRecord, ParticipantRecord, SponsorRecord
from app.event.commands import (
    AddOrganizerCommand,
    AddSponsorCommand,
    RegisterAttendanceCommand,
    RegisterParticipantCommand,
    ReviewParticipantCommand,
    UpdateSponsorPledgeCommand,
)
from app.event.enums import AggregateKind
from app.event.projections import AggregateView
from app.infra.cqrs.decorators import command_handler


class _ParticipantHandler(BaseCommandHandler):
    async def mirror_participant(self, aggregate: Aggregate, record: ParticipantRecord) -> None:
        await self.ledger.upsert_participant(aggregate.kind, aggregate.ledger_id, record)


class _SponsorHandler(BaseCommandHandler):
    async def mirror_sponsor(self, aggregate: Aggregate, record: SponsorRecord) -> None:
        await self.ledger.upsert_sponsor(aggregate.kind, aggregate.ledger_id, record)


# -----------------------------------------------------------------------------
# Participants
# -----------------------------------------------------------------------------
@command_handler(RegisterParticipantCommand)
class RegisterParticipantHandler(_ParticipantHandler):
    """Capacity and duplicate checks run under the aggregate lock."""

    async def handle(self, command: RegisterParticipantCommand) -> AggregateView:
        def register(aggregate: Aggregate) -> ParticipantRecord:
            return self.registration.register_participant(
                aggregate,
                command.actor,
                command.member_id,
                kind=command.participant_kind,
                availability=command.availability,
                skills=command.skills,
                comments=command.comments,
            )

        aggregate, _ = await self.mutate(
            command.kind,
            command.aggregate_id,
            register,
            operation=f"register member {command.member_id}",
            mirror=self.mirror_participant,
        )
        return self.view(aggregate)


@command_handler(RegisterAttendanceCommand)
class RegisterAttendanceHandler(_ParticipantHandler):
    async def handle(self, command: RegisterAttendanceCommand) -> AggregateView:
        aggregate, _ = await self.mutate(
            command.kind,
            command.aggregate_id,
            lambda a: self.registration.register_attendance(
                a, command.actor, command.member_id, command.attended,
            ),
            operation=f"attendance of member {command.member_id}",
            mirror=self.mirror_participant,
        )
        return self.view(aggregate)


@command_handler(ReviewParticipantCommand)
class ReviewParticipantHandler(_ParticipantHandler):
    async def handle(self, command: ReviewParticipantCommand) -> AggregateView:
        aggregate, _ = await self.mutate(
            command.kind,
            command.aggregate_id,
            lambda a: self.registration.review_participant(
                a, command.actor, command.member_id, command.approve,
            ),
            operation=f"review member {command.member_id}",
            mirror=self.mirror_participant,
        )
        return self.view(aggregate)


# -----------------------------------------------------------------------------
# Organizers
# -----------------------------------------------------------------------------
@command_handler(AddOrganizerCommand)
class AddOrganizerHandler(BaseCommandHandler):
    """Co-organizers exist on mega-events only."""

    async def handle(self, command: AddOrganizerCommand) -> AggregateView:
        # Looked up outside the lock; the ledger is the source of truth for users
        is_active_ngo = await self.ledger.is_active_ngo(command.ngo_id)

        async def mirror(aggregate: Aggregate, record: OrganizerRecord) -> None:
            await self.ledger.upsert_organizer(aggregate.ledger_id, record)

        aggregate, _ = await self.mutate(
            AggregateKind.MEGA_EVENT,
            command.aggregate_id,
            lambda a: self.registration.add_organizer(
                a, command.actor, command.ngo_id, is_active_ngo, role=command.role,
            ),
            operation=f"add organizer {command.ngo_id}",
            mirror=mirror,
        )
        return self.view(aggregate)


# -----------------------------------------------------------------------------
# Sponsors
# -----------------------------------------------------------------------------
@command_handler(AddSponsorCommand)
class AddSponsorHandler(_SponsorHandler):
    async def handle(self, command: AddSponsorCommand) -> AggregateView:
        aggregate, _ = await self.mutate(
            command.kind,
            command.aggregate_id,
            lambda a: self.registration.add_sponsor(
                a, command.actor, command.company_id, tier=command.tier, amount=command.amount,
            ),
            operation=f"add sponsor {command.company_id}",
            mirror=self.mirror_sponsor,
        )
        return self.view(aggregate)


@command_handler(UpdateSponsorPledgeCommand)
class UpdateSponsorPledgeHandler(_SponsorHandler):
    async def handle(self, command: UpdateSponsorPledgeCommand) -> AggregateView:
        aggregate, _ = await self.mutate(
            command.kind,
            command.aggregate_id,
            lambda a: self.registration.update_pledge(a, command.actor, command.company_id, command.state),
            operation=f"pledge of {command.company_id} to {command.state}",
            mirror=self.mirror_sponsor,
        )
        return self.view(aggregate)
