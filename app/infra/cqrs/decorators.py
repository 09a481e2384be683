# =============================================================================
# File: app/infra/cqrs/decorators.py
# Description: @command_handler / @query_handler class decorators.
#              Importing a handler module records its classes here;
#              auto_register_all_handlers then hands them to the buses.
# =============================================================================

import logging
from typing import Any, Dict, List, Type

log = logging.getLogger("eventhub.cqrs.decorators")

_COMMAND_HANDLERS: Dict[Type, Type] = {}
_QUERY_HANDLERS: Dict[Type, Type] = {}


def _record(registry: Dict[Type, Type], message_type: Type, handler_class: Type, kind: str) -> None:
    # Re-importing the same module re-applies the decorator with the same class
    owner = registry.setdefault(message_type, handler_class)
    if owner is not handler_class:
        raise ValueError(
            f"{message_type.__name__} is already handled by {owner.__module__}.{owner.__name__}; "
            f"{handler_class.__module__}.{handler_class.__name__} cannot also handle it"
        )
    handler_class._handler_type = kind
    log.debug(f"{kind} {message_type.__name__} -> {handler_class.__name__}")


def command_handler(command_type: Type):
    """
    Mark a class as the handler for command_type.

        @command_handler(ChangeStatusCommand)
        class ChangeStatusHandler(BaseCommandHandler):
            async def handle(self, command: ChangeStatusCommand) -> AggregateView:
                ...
    """

    def decorator(handler_class: Type) -> Type:
        _record(_COMMAND_HANDLERS, command_type, handler_class, "command")
        handler_class._command_type = command_type
        return handler_class

    return decorator


def query_handler(query_type: Type):
    """Mark a class as the handler for query_type"""

    def decorator(handler_class: Type) -> Type:
        _record(_QUERY_HANDLERS, query_type, handler_class, "query")
        handler_class._query_type = query_type
        return handler_class

    return decorator


def _factory(handler_class: Type, dependencies: Any):
    def build():
        return handler_class(dependencies)
    build.__name__ = f"build_{handler_class.__name__}"
    return build


def auto_register_all_handlers(command_bus, query_bus, dependencies) -> Dict[str, Any]:
    """Every recorded handler is built lazily, on its first message, with the shared dependencies"""
    for command_type, handler_class in _COMMAND_HANDLERS.items():
        command_bus.register_handler(command_type, _factory(handler_class, dependencies))
    for query_type, handler_class in _QUERY_HANDLERS.items():
        query_bus.register_handler(query_type, _factory(handler_class, dependencies))

    stats = {
        "commands": len(_COMMAND_HANDLERS),
        "queries": len(_QUERY_HANDLERS),
        "total": len(_COMMAND_HANDLERS) + len(_QUERY_HANDLERS),
    }
    log.info(f"Registered {stats['commands']} command and {stats['queries']} query handlers")
    return stats


def get_registered_handlers() -> Dict[str, List[Dict[str, str]]]:
    return {
        "commands": [
            {"command": t.__name__, "handler": h.__name__, "module": h.__module__}
            for t, h in _COMMAND_HANDLERS.items()
        ],
        "queries": [
            {"query": t.__name__, "handler": h.__name__, "module": h.__module__}
            for t, h in _QUERY_HANDLERS.items()
        ],
    }
