"""Publishing seam between domain services and the event bus."""

from abc import ABC, abstractmethod
from typing import Any


class EventPublisher(ABC):
    """Anything domain services can hand their events to after a write."""

    @abstractmethod
    async def publish_async(self, event: Any) -> None:
        """Deliver ``event`` to every subscriber of its type."""
        ...
