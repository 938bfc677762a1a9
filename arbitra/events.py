"""Global event bus for arbitration diagnostics.

This bus carries notifications about what the engine decided: rejected
suggestions, behavior switches and clears. It exists for logging, debug
overlays and tests.

USE FOR:
- Diagnostics about rejected suggestions
- Debug displays that want to react to behavior switches
- Counting/tracing decisions in tests

DO NOT USE FOR:
- Driving act-phase logic (query the advisor instead)
- Anything that needs a return value or must influence resolution

The bus is fire-and-forget: handlers run immediately and synchronously, and a
failing handler is logged without affecting the publisher or other handlers.
"""

import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class ArbitrationEvent:
    """Base class for all arbitration events."""

    pass


@dataclass
class SuggestionRejectedEvent(ArbitrationEvent):
    """A suggestion was discarded at propose time.

    Attributes:
        agent: Label of the advisor that rejected it.
        tag_name: Variant name of the rejected suggestion.
        score: The offending score (NaN or +/-infinity).
    """

    agent: str
    tag_name: str
    score: float


@dataclass
class BehaviorSwitchedEvent(ArbitrationEvent):
    """Resolve picked a different identity than the previous tick.

    ``previous`` is None when the agent had no active behavior. Both fields
    are the behavior instances themselves; treat them as read-only.
    """

    agent: str
    previous: Any
    current: Any


@dataclass
class BehaviorClearedEvent(ArbitrationEvent):
    """An empty tick under EmptyPolicy.CLEAR dropped the active behavior."""

    agent: str
    previous: Any


class EventBus:
    """Simple event bus for publish/subscribe pattern."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable]] = {}

    def subscribe(self, event_type: type, handler: Callable) -> None:
        """Subscribe a handler to an event type."""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Callable) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._handlers:
            with suppress(ValueError):
                self._handlers[event_type].remove(handler)

    def publish(self, event: ArbitrationEvent) -> None:
        """Publish an event to all subscribed handlers."""
        event_type = type(event)
        if event_type in self._handlers:
            # Copy so handlers may subscribe/unsubscribe during dispatch
            for handler in list(self._handlers[event_type]):
                try:
                    handler(event)
                except Exception:
                    logger.exception(f"Error handling event {event_type.__name__}")


# Global event bus instance
_global_event_bus = EventBus()


def subscribe_to_event(event_type: type, handler: Callable) -> None:
    """Subscribe to an event type globally."""
    _global_event_bus.subscribe(event_type, handler)


def unsubscribe_from_event(event_type: type, handler: Callable) -> None:
    """Unsubscribe from an event type globally."""
    _global_event_bus.unsubscribe(event_type, handler)


def publish_event(event: ArbitrationEvent) -> None:
    """Publish an event globally."""
    _global_event_bus.publish(event)


def reset_event_bus_for_testing() -> None:
    """Reset the global event bus. Use only in tests."""
    global _global_event_bus
    _global_event_bus = EventBus()
