# =============================================================================
# File: app/event/command_handlers/__init__.py
# Description: Event / mega-event command handlers package
# =============================================================================

from app.event.command_handlers.aggregate_handlers import (
    CreateEventHandler,
    CreateMegaEventHandler,
    UpdateEventHandler,
    UpdateMegaEventHandler,
    DeleteAggregateHandler,
)
from app.event.command_handlers.lifecycle_handlers import (
    ChangeStatusHandler,
)
from app.event.command_handlers.membership_handlers import (
    RegisterParticipantHandler,
    RegisterAttendanceHandler,
    ReviewParticipantHandler,
    AddOrganizerHandler,
    AddSponsorHandler,
    UpdateSponsorPledgeHandler,
)
from app.event.command_handlers.image_handlers import (
    AddImagesHandler,
    RemoveImageHandler,
)

__all__ = [
    # Aggregate lifecycle
    "CreateEventHandler",
    "CreateMegaEventHandler",
    "UpdateEventHandler",
    "UpdateMegaEventHandler",
    "DeleteAggregateHandler",
    # Status
    "ChangeStatusHandler",
    # Membership
    "RegisterParticipantHandler",
    "RegisterAttendanceHandler",
    "ReviewParticipantHandler",
    "AddOrganizerHandler",
    "AddSponsorHandler",
    "UpdateSponsorPledgeHandler",
    # Images
    "AddImagesHandler",
    "RemoveImageHandler",
]
