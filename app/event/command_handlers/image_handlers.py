# =============================================================================
# File: app/event/command_handlers/image_handlers.py
# Description: Embedded images of events and mega-events
# Handlers: AddImages, RemoveImage
# =============================================================================

from __future__ import annotations

from app.common.base.base_command_handler import BaseCommandHandler
from app.event.commands import AddImagesCommand, RemoveImageCommand
from app.event.projections import AggregateView
from app.infra.cqrs.decorators import command_handler


@command_handler(AddImagesCommand)
class AddImagesHandler(BaseCommandHandler):
    """Images are document-only; the ledger row is refreshed but holds no image data."""

    async def handle(self, command: AddImagesCommand) -> AggregateView:
        # Ingest before taking the lock
        payloads = [
            await self.deps.image_ingestion.ingest(u.filename, u.content, u.content_type)
            for u in command.uploads
        ]
        aggregate, _ = await self.mutate(
            command.kind,
            command.aggregate_id,
            lambda a: self.registration.add_images(a, command.actor, payloads, command.image_type),
            operation=f"add {len(payloads)} images",
        )
        return self.view(aggregate)


@command_handler(RemoveImageCommand)
class RemoveImageHandler(BaseCommandHandler):
    async def handle(self, command: RemoveImageCommand) -> AggregateView:
        aggregate, _ = await self.mutate(
            command.kind,
            command.aggregate_id,
            lambda a: self.registration.remove_image(a, command.actor, command.image_id),
            operation=f"remove image {command.image_id}",
        )
        return self.view(aggregate)
