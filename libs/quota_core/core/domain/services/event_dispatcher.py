from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

import structlog

from quota_core.core.domain.events.events import DomainEvent

logger = structlog.get_logger(__name__)

E = TypeVar("E", bound=DomainEvent)
Listener = Callable[[E], None]


def _listener_name(listener: Callable) -> str:
    return getattr(listener, "__qualname__", None) or repr(listener)


class EventDispatcher:
    """
    In-process pub/sub for sync, case and clinic-settings events.

    Listeners are keyed by event class and also receive subclasses, so a
    listener on `DomainEvent` sees every event. Registering the same
    listener twice for one class is a no-op. A failing listener is logged
    with the event's clinic and never reaches the command that emitted it.
    """

    def __init__(self) -> None:
        self._subs: dict[type[DomainEvent], list[Listener]] = {}

    def subscribe(self, event_type: type[E], listener: Listener[E]) -> None:
        listeners = self._subs.setdefault(event_type, [])
        if listener in listeners:
            return
        listeners.append(listener)
        logger.debug("event.subscribed", event_type=event_type.__name__, listener=_listener_name(listener))

    def listens_to(self, *event_types: type[DomainEvent]) -> Callable[[Listener], Listener]:
        """Decorator form of `subscribe` for one or more event classes."""
        def register(listener: Listener) -> Listener:
            for event_type in event_types:
                self.subscribe(event_type, listener)
            return listener
        return register

    def listeners_for(self, event_type: type[DomainEvent]) -> list[Listener]:
        out: list[Listener] = []
        for klass in event_type.__mro__:
            for listener in self._subs.get(klass, ()):
                if listener not in out:
                    out.append(listener)
        return out

    def dispatch(self, event: DomainEvent) -> None:
        listeners = self.listeners_for(type(event))
        clinic_id = getattr(event, "clinic_id", None)
        logger.debug(
            "event.dispatch",
            event_name=type(event).__name__,
            clinic_id=str(clinic_id) if clinic_id else None,
            listeners=len(listeners),
        )
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:
                logger.error(
                    "event.listener_failed",
                    event_name=type(event).__name__,
                    event_id=str(event.event_id),
                    clinic_id=str(clinic_id) if clinic_id else None,
                    listener=_listener_name(listener),
                    error=str(exc),
                    exc_info=True,
                )
