from abc import ABC, abstractmethod

from consultancy.schemas.booking import NotificationMessage


class Notifier(ABC):
    @abstractmethod
    def send(self, message: NotificationMessage) -> None:
        """Deliver one SMS or email. Raise on failure."""
        raise NotImplementedError
