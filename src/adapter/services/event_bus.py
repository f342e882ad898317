"""
In-process Event Bus

Default IEventPublisher: hands committed invitation events to the handlers
subscribed for their type.
"""

import inspect
import logging
from typing import Callable, List, Tuple, Type

from src.app.services.event_publisher import IEventPublisher
from src.domain.events import InvitationEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[InvitationEvent], object]


class EventBus(IEventPublisher):
    """
    Synchronous fan-out to subscribed handlers.

    Handlers may be plain functions or coroutine functions. A handler
    subscribed to a base class also receives its subclasses, so subscribing
    to InvitationEvent observes everything. A failing handler is logged and
    does not stop the remaining handlers.
    """

    def __init__(self):
        self._handlers: List[Tuple[Type[InvitationEvent], EventHandler]] = []

    def subscribe(self, event_type: Type[InvitationEvent], handler: EventHandler) -> None:
        self._handlers.append((event_type, handler))

    def unsubscribe(self, event_type: Type[InvitationEvent], handler: EventHandler) -> None:
        self._handlers = [
            (registered_type, registered)
            for registered_type, registered in self._handlers
            if not (registered_type is event_type and registered == handler)
        ]

    async def publish(self, event: InvitationEvent) -> None:
        for event_type, handler in list(self._handlers):
            if not isinstance(event, event_type):
                continue
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    f"Event handler failed for {event.action}",
                    extra={"invitation_id": event.invitation.id, "action": event.action},
                )
