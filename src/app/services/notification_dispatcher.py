from abc import ABC, abstractmethod

from src.domain.entities import Invitation, NotificationKind


class INotificationDispatcher(ABC):
    """Notification dispatch interface - application layer"""

    @abstractmethod
    async def dispatch(
        self,
        kind: NotificationKind,
        template: str,
        invitation: Invitation,
        recipient: str,
    ) -> None:
        """
        Render the template for an invitation and send it to recipient.

        Delivery is best-effort; the service never lets a failure here
        affect invitation state.
        """
        pass
