"""
Event emitter for the pitboss table.

Listeners subscribe to an outbound event class (or its wire name) with a
priority, or to every event with ``on_any``. A failing listener is logged and
never stops delivery to the others or breaks the room that emitted the event.
"""

import logging
from collections import defaultdict
from enum import Enum
from typing import Callable, Dict, List, Optional, Type, Union

from pitboss.events.messages import RoomEvent

logger = logging.getLogger("pitboss.events")

Listener = Callable[[RoomEvent], None]
EventKey = Union[str, Type]


class EventPriority(Enum):
    """Priority levels for event handlers."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


def _key(event_type: EventKey) -> str:
    if isinstance(event_type, type):
        return event_type.name
    return event_type


def _insert(handlers: List[Dict], handler: Dict) -> None:
    # Higher priorities first; equal priorities keep subscription order
    for i, existing in enumerate(handlers):
        if existing["priority"] < handler["priority"]:
            handlers.insert(i, handler)
            return
    handlers.append(handler)


def _remove(handlers: List[Dict], callback: Callable) -> None:
    for i, existing in enumerate(handlers):
        if existing["callback"] is callback:
            handlers.pop(i)
            return


class EventEmitter:
    """
    Dispatches room events to subscribed listeners.

    Features:
    - Subscriptions with priorities
    - Once-only subscriptions
    - Catch-all subscriptions with ``on_any``
    - Unsubscribe functions returned from every subscription
    """

    def __init__(self):
        self._listeners: Dict[str, List[Dict]] = defaultdict(list)
        self._global_listeners: List[Dict] = []

    def on(
        self,
        event_type: EventKey,
        callback: Listener,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable[[], None]:
        """
        Subscribe to an event type.

        Args:
            event_type: An event class from ``pitboss.events.messages`` or its wire name
            callback: Function to call when the event occurs, signature: fn(event)
            priority: Priority level for this handler

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        key = _key(event_type)
        _insert(self._listeners[key], {"callback": callback, "priority": priority.value})

        def unsubscribe():
            _remove(self._listeners[key], callback)

        return unsubscribe

    def once(
        self,
        event_type: EventKey,
        callback: Listener,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable[[], None]:
        """
        Subscribe to an event type for a single occurrence.

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        unsubscribe_ref = []

        def one_time_handler(event):
            try:
                callback(event)
            finally:
                unsubscribe_ref[0]()

        unsubscribe_ref.append(self.on(event_type, one_time_handler, priority))
        return unsubscribe_ref[0]

    def on_any(
        self, callback: Listener, priority: EventPriority = EventPriority.NORMAL
    ) -> Callable[[], None]:
        """
        Subscribe to all events.

        Args:
            callback: Function to call for any event, signature: fn(event)
            priority: Priority level for this handler

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        _insert(self._global_listeners, {"callback": callback, "priority": priority.value})

        def unsubscribe():
            _remove(self._global_listeners, callback)

        return unsubscribe

    def emit(self, event: RoomEvent) -> None:
        """
        Emit an event to all registered listeners.

        Args:
            event: The event to deliver
        """
        handlers = list(self._listeners.get(event.name, ()))
        handlers += self._global_listeners

        for handler in handlers:
            try:
                handler["callback"](event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.name}: {e}", exc_info=True)

    def remove_all_listeners(self, event_type: Optional[EventKey] = None) -> None:
        """
        Remove all listeners for a specific event type or all events.

        Args:
            event_type: Optional event type. If None, removes all listeners for all events.
        """
        if event_type is None:
            self._listeners.clear()
            self._global_listeners.clear()
        else:
            self._listeners[_key(event_type)].clear()
