from abc import ABC, abstractmethod

from src.domain.events import InvitationEvent


class IEventPublisher(ABC):
    """Event publication interface - application layer"""

    @abstractmethod
    async def publish(self, event: InvitationEvent) -> None:
        """Hand a committed invitation event to its observers"""
        pass
