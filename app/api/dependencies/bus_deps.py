# app/api/dependencies/bus_deps.py
# =============================================================================
# File: app/api/dependencies/bus_deps.py
# Description: FastAPI dependencies for the CQRS buses and the caller identity
# =============================================================================

from typing import Annotated

from fastapi import Depends, Request

from app.event.value_objects import Actor
from app.infra.cqrs.command_bus import CommandBus
from app.infra.cqrs.query_bus import QueryBus
from app.security.jwt_auth import get_current_actor


async def get_command_bus(request: Request) -> CommandBus:
    """Get command bus from application state"""
    command_bus = getattr(request.app.state, 'command_bus', None)
    if command_bus is None:
        raise RuntimeError("Command bus not configured")
    return command_bus


async def get_query_bus(request: Request) -> QueryBus:
    """Get query bus from application state"""
    query_bus = getattr(request.app.state, 'query_bus', None)
    if query_bus is None:
        raise RuntimeError("Query bus not configured")
    return query_bus


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
CommandBusDep = Annotated[CommandBus, Depends(get_command_bus)]
QueryBusDep = Annotated[QueryBus, Depends(get_query_bus)]
