"""
Addonkit Core - Building blocks shared across the framework.

- Event Bus: in-process publish/subscribe with priorities and glob patterns
"""

from addonkit.core.event_bus import EventBus, EventBusError, RegistrationError

__all__ = ["EventBus", "EventBusError", "RegistrationError"]
