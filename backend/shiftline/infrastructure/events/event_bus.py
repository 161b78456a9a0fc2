"""
Event bus implementation for domain event publishing and subscription.

The event bus replaces store-level change subscriptions: services publish an
event after each successful write, and UI refreshers, pollers and dashboards
subscribe to the event types they care about.
"""

import asyncio
import inspect
import logging
from abc import abstractmethod
from collections import defaultdict
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from ...domain.production.events.domain_events import DomainEvent
from ...domain.shared.events import EventPublisher

logger = logging.getLogger(__name__)


class EventBusInterface(EventPublisher):
    """
    Abstract interface for event bus implementations.

    Defines the contract for publishing events and subscribing to event types.
    """

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """
        Publish a domain event to all registered synchronous handlers.

        Args:
            event: Domain event to publish
        """
        pass

    @abstractmethod
    def subscribe(
        self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], None]
    ) -> None:
        """
        Subscribe a handler to a specific event type.

        Args:
            event_type: Type of event to subscribe to
            handler: Handler function to call when event is published
        """
        pass

    @abstractmethod
    def unsubscribe(
        self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], Any]
    ) -> None:
        """
        Unsubscribe a handler from a specific event type.

        Args:
            event_type: Type of event to unsubscribe from
            handler: Handler function to remove
        """
        pass


class InMemoryEventBus(EventBusInterface):
    """
    In-memory implementation of event bus.

    Synchronous handlers run in a small thread pool when published
    asynchronously; coroutine handlers run on the loop. A failing handler is
    logged and never stops delivery to the others, nor fails the write that
    raised the event.
    """

    def __init__(self, max_workers: int = 4, max_history_size: int = 1000):
        """
        Initialize the event bus.

        Args:
            max_workers: Maximum number of worker threads for synchronous handlers
            max_history_size: Number of published events kept for inspection
        """
        self._handlers: dict[type[DomainEvent], list[Callable]] = defaultdict(list)
        self._async_handlers: dict[type[DomainEvent], list[Callable]] = defaultdict(
            list
        )
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._event_history: list[DomainEvent] = []
        self._max_history_size = max_history_size

    def publish(self, event: DomainEvent) -> None:
        self._add_to_history(event)

        event_type = type(event)
        handlers = self._handlers.get(event_type, [])
        if not handlers:
            logger.debug("No handlers registered for event type: %s", event_type.__name__)
            return

        for handler in handlers:
            self._safe_handle_sync(handler, event)

    async def publish_async(self, event: DomainEvent) -> None:
        self._add_to_history(event)

        event_type = type(event)
        sync_handlers = self._handlers.get(event_type, [])
        async_handlers = self._async_handlers.get(event_type, [])

        if not sync_handlers and not async_handlers:
            logger.debug("No handlers registered for event type: %s", event_type.__name__)
            return

        logger.debug(
            "Publishing event %s to %d handlers",
            event_type.__name__,
            len(sync_handlers) + len(async_handlers),
        )

        if sync_handlers:
            loop = asyncio.get_running_loop()
            sync_tasks = [
                loop.run_in_executor(
                    self._executor, self._safe_handle_sync, handler, event
                )
                for handler in sync_handlers
            ]
            await asyncio.gather(*sync_tasks, return_exceptions=True)

        if async_handlers:
            async_tasks = [
                self._safe_handle_async(handler, event) for handler in async_handlers
            ]
            await asyncio.gather(*async_tasks, return_exceptions=True)

    def subscribe(
        self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], None]
    ) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)
            logger.debug("Subscribed handler %s to %s", handler, event_type.__name__)
        else:
            logger.warning(
                "Handler %s already subscribed to event type %s",
                handler,
                event_type.__name__,
            )

    def subscribe_async(
        self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], Any]
    ) -> None:
        """
        Subscribe an asynchronous handler to a specific event type.

        Args:
            event_type: Type of event to subscribe to
            handler: Async handler function to call when event is published
        """
        if handler not in self._async_handlers[event_type]:
            self._async_handlers[event_type].append(handler)
            logger.debug("Subscribed async handler %s to %s", handler, event_type.__name__)
        else:
            logger.warning(
                "Async handler %s already subscribed to event type %s",
                handler,
                event_type.__name__,
            )

    def unsubscribe(
        self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], Any]
    ) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)
        elif handler in self._async_handlers[event_type]:
            self._async_handlers[event_type].remove(handler)
        else:
            logger.warning(
                "Handler %s not found for event type %s", handler, event_type.__name__
            )

    def get_handler_count(self, event_type: type[DomainEvent]) -> int:
        """Total number of handlers (sync + async) registered for an event type."""
        sync_count = len(self._handlers.get(event_type, []))
        async_count = len(self._async_handlers.get(event_type, []))
        return sync_count + async_count

    def get_event_history(
        self, event_type: type[DomainEvent] | None = None
    ) -> list[DomainEvent]:
        """
        Get history of published events.

        Args:
            event_type: Optional event type to filter by

        Returns:
            List of published events, oldest first
        """
        if event_type:
            return [event for event in self._event_history if type(event) is event_type]
        return self._event_history.copy()

    def clear_event_history(self) -> None:
        self._event_history.clear()

    def shutdown(self) -> None:
        """Release the handler thread pool."""
        self._executor.shutdown(wait=False)

    def _add_to_history(self, event: DomainEvent) -> None:
        self._event_history.append(event)
        if len(self._event_history) > self._max_history_size:
            self._event_history.pop(0)

    def _safe_handle_sync(self, handler: Callable, event: DomainEvent) -> None:
        try:
            handler(event)
        except Exception:
            logger.exception(
                "Error handling event %s with %s", type(event).__name__, handler
            )

    async def _safe_handle_async(self, handler: Callable, event: DomainEvent) -> None:
        try:
            if inspect.iscoroutinefunction(handler):
                await handler(event)
            else:
                handler(event)
        except Exception:
            logger.exception(
                "Error handling event %s with %s", type(event).__name__, handler
            )
