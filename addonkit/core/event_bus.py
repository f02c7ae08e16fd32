"""
Event Bus - In-process publish/subscribe.

Consumers subscribe either to an exact event id or to a glob pattern:
- Exact consumers are called as callback(event)
- Pattern consumers are called as callback(src, event), src being the event id

Dispatch rules:
- Priority-based execution (higher priority = earlier execution)
- Same priority runs in registration order
- Every consumer runs; a failing consumer is logged and does not stop the
  others or the publisher
"""

import inspect
import logging
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


class EventBusError(Exception):
    """Base exception for event bus errors."""

    pass


class RegistrationError(EventBusError):
    """Raised when handler registration fails."""

    pass


@dataclass
class Handler:
    """
    A registered consumer.

    Attributes:
        callback: The consumer function
        priority: Higher priority executes first
        registration_order: Tie-breaker for same priority (lower = earlier)
        requires_src: Whether the callback takes the event id first
        pattern: Compiled glob pattern, None for exact consumers
    """

    callback: Callable
    priority: int
    registration_order: int
    requires_src: bool = False
    pattern: re.Pattern | None = None

    def __call__(self, event_id: str, event: Any) -> None:
        if self.requires_src:
            self.callback(event_id, event)
        else:
            self.callback(event)


def glob_to_regex(pattern: str) -> re.Pattern:
    """
    Convert a glob pattern to a compiled regex.

    `*` matches within one dot-separated segment; `**` matches across
    segments.
    """
    escaped = re.escape(pattern)
    regex = escaped.replace(r"\*\*", ".*").replace(r"\*", "[^.]*")
    return re.compile(f"^{regex}$")


class EventBus:
    """Registry and dispatcher of event consumers."""

    def __init__(self):
        self._routes: dict[str, list[Handler]] = {}
        self._patterns: list[Handler] = []
        self._registration_counter = 0
        self._lock = threading.Lock()

    def _next_registration_order(self) -> int:
        order = self._registration_counter
        self._registration_counter += 1
        return order

    def subscribe(self, event_id: str, callback: Callable, priority: int = 0) -> None:
        """
        Register a consumer for an exact event id.

        Args:
            event_id: Exact event id to match
            callback: Function taking (event)
            priority: Execution priority (higher = earlier)
        """
        with self._lock:
            handler = Handler(
                callback=callback,
                priority=priority,
                registration_order=self._next_registration_order(),
            )
            self._routes.setdefault(event_id, []).append(handler)

    def subscribe_pattern(self, pattern: str, callback: Callable, priority: int = 0) -> None:
        """
        Register a consumer for a glob pattern.

        Args:
            pattern: Glob pattern over event ids (e.g. "addon.*")
            callback: Function taking (src, event)
            priority: Execution priority (higher = earlier)

        Raises:
            RegistrationError: If the callback's first parameter is not `src`
        """
        params = list(inspect.signature(callback).parameters)
        if not params or params[0] != "src":
            raise RegistrationError(
                f"Pattern-based consumer must have 'src' as first parameter. Got: {params}"
            )

        with self._lock:
            self._patterns.append(
                Handler(
                    callback=callback,
                    priority=priority,
                    registration_order=self._next_registration_order(),
                    requires_src=True,
                    pattern=glob_to_regex(pattern),
                )
            )

    def unsubscribe(self, callback: Callable) -> int:
        """
        Remove every registration of `callback`.

        Returns:
            Number of registrations removed
        """
        with self._lock:
            removed = 0
            for event_id, handlers in list(self._routes.items()):
                kept = [h for h in handlers if h.callback is not callback]
                removed += len(handlers) - len(kept)
                if kept:
                    self._routes[event_id] = kept
                else:
                    del self._routes[event_id]
            kept_patterns = [h for h in self._patterns if h.callback is not callback]
            removed += len(self._patterns) - len(kept_patterns)
            self._patterns = kept_patterns
            return removed

    def consumer(self, event_id: str, priority: int = 0):
        """
        Decorator form of subscribe().

        Example:
            @bus.consumer("addon.activated", priority=10)
            def flush_cache(event):
                cache.clear()
        """

        def decorator(func: Callable) -> Callable:
            self.subscribe(event_id, func, priority)
            return func

        return decorator

    def consumer_re(self, pattern: str, priority: int = 0):
        """
        Decorator form of subscribe_pattern().

        Example:
            @bus.consumer_re("addon.*")
            def audit(src, event):
                log.info("%s: %s", src, event.addon_id)
        """

        def decorator(func: Callable) -> Callable:
            self.subscribe_pattern(pattern, func, priority)
            return func

        return decorator

    def _find_handlers(self, event_id: str) -> list[Handler]:
        with self._lock:
            handlers = list(self._routes.get(event_id, ()))
            handlers.extend(h for h in self._patterns if h.pattern.match(event_id))
        return sorted(handlers, key=lambda h: (-h.priority, h.registration_order))

    def publish(self, event_id: str, event: Any) -> None:
        """
        Dispatch an event to every matching consumer.

        Args:
            event_id: The event identifier
            event: The event payload
        """
        for handler in self._find_handlers(event_id):
            try:
                handler(event_id, event)
            except Exception:
                logger.exception("Event consumer %r failed for '%s'", handler.callback, event_id)
