from __future__ import annotations

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

import structlog

from quota_core.core.domain.events.events import DomainEvent
from quota_core.core.domain.services.event_dispatcher import EventDispatcher

# ───────────────────────────────────────────────
# Generic CQRS with pagination and timing logs
# ───────────────────────────────────────────────

C = TypeVar('C')  # Command type
Q = TypeVar('Q')  # Query filters type
R = TypeVar('R')  # Query result type
T = TypeVar('T')  # PagedResult item type

logger = structlog.get_logger(__name__)

# ───────────────────────────────────────────────
# DTOs
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class CommandDTO:
    """Base for every write command."""
    pass

@dataclass(frozen=True)
class QueryDTO(Generic[Q]):
    """Base for read queries."""
    filtros: Q

@dataclass(frozen=True)
class PaginatedQueryDTO(Generic[Q]):
    """Paginated query: filters + page window."""
    filtros: Q
    page: int = 1
    page_size: int = 50

@dataclass(frozen=True)
class PagedResult(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    page_size: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'total_pages', math.ceil(self.total / self.page_size) if self.page_size else 0)

# ───────────────────────────────────────────────
# Handler protocols
# ───────────────────────────────────────────────
class CommandHandler(Protocol, Generic[C]):
    def handle(self, command: C) -> Any:
        ...

class QueryHandler(Protocol, Generic[Q, R]):
    def handle(self, query: QueryDTO[Q]) -> R:
        ...

# ───────────────────────────────────────────────
# Buses
# ───────────────────────────────────────────────
class CommandBus:
    def __init__(self) -> None:
        self._handlers: dict[type, CommandHandler] = {}

    def register(self, command_type: type[C], handler: CommandHandler[C]) -> None:
        self._handlers[command_type] = handler
        logger.debug("command.registered", command=command_type.__name__)

    def dispatch(self, command: C) -> Any:
        handler = self._handlers.get(type(command))
        if not handler:
            raise ValueError(f"No handler registered for command: {type(command).__name__}")
        start = time.perf_counter()
        logger.info("command.start", command=type(command).__name__)
        result = handler.handle(command)
        logger.info(
            "command.done",
            command=type(command).__name__,
            duration=f"{time.perf_counter() - start:.3f}s",
        )
        return result

class QueryBus:
    def __init__(self) -> None:
        self._handlers: dict[type, QueryHandler] = {}

    def register(self, query_type: type[QueryDTO], handler: QueryHandler[Any, Any]) -> None:
        self._handlers[query_type] = handler
        logger.debug("query.registered", query=query_type.__name__)

    def dispatch(self, query: QueryDTO[Any]) -> Any:
        handler = self._handlers.get(type(query))
        if not handler:
            raise ValueError(f"No handler registered for query: {type(query).__name__}")
        start = time.perf_counter()
        result = handler.handle(query)
        logger.debug(
            "query.done",
            query=type(query).__name__,
            duration=f"{time.perf_counter() - start:.3f}s",
        )
        return result

class CommandBusImpl(CommandBus):
    """Command bus that forwards DomainEvents returned by handlers to the dispatcher."""

    def __init__(self, dispatcher: EventDispatcher):
        super().__init__()
        self.dispatcher = dispatcher

    def dispatch(self, command: Any) -> Any:
        result = super().dispatch(command)

        if isinstance(result, DomainEvent):
            self.dispatcher.dispatch(result)
        elif isinstance(result, list | tuple):
            for evt in result:
                if isinstance(evt, DomainEvent):
                    self.dispatcher.dispatch(evt)

        return result

class QueryBusImpl(QueryBus):
    pass
