"""In-process event channel.

Backends push named events (e.g. ``write-progress``) onto an
:class:`EventChannel`; consumers acquire a :class:`Subscription` for the
lifetime of the activity that needs the events. A subscription is a
context manager and is always released on exit, whether the activity
succeeded, failed, or its owner was torn down.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


class Subscription:
    """Handle for a registered event handler."""

    def __init__(self, channel: "EventChannel", event: str, handler: EventHandler):
        self._channel = channel
        self.event = event
        self.handler = handler
        self.active = True

    def close(self) -> None:
        """Release the handler. Safe to call more than once."""
        if self.active:
            self._channel._remove(self)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class EventChannel:
    """Named publish/subscribe channel.

    Handlers run synchronously in :meth:`emit`, in subscription order.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = defaultdict(list)

    def listen(self, event: str, handler: EventHandler) -> Subscription:
        """Register a handler for an event.

        Args:
            event: Event name.
            handler: Callable receiving the event payload.

        Returns:
            Subscription handle; close it (or use it as a context manager)
            to stop receiving events.
        """
        subscription = Subscription(self, event, handler)
        self._subscriptions[event].append(subscription)
        logger.debug("Listening for %s", event)
        return subscription

    def emit(self, event: str, payload: Any) -> int:
        """Deliver a payload to every handler registered for an event.

        Returns:
            Number of handlers the payload was delivered to.
        """
        subscriptions = list(self._subscriptions.get(event, ()))
        for subscription in subscriptions:
            subscription.handler(payload)
        return len(subscriptions)

    def listener_count(self, event: str) -> int:
        """Return the number of active handlers for an event."""
        return len(self._subscriptions.get(event, ()))

    def _remove(self, subscription: Subscription) -> None:
        handlers = self._subscriptions.get(subscription.event)
        if handlers and subscription in handlers:
            handlers.remove(subscription)
            logger.debug("Stopped listening for %s", subscription.event)


__all__ = ["EventChannel", "EventHandler", "Subscription"]
