"""
Activity registry: maps activity names to async handlers.

The registry is filled once at startup and only read afterwards, so a single
instance is shared by every run the engine drives. It performs no retries;
it only turns whatever a handler raises into an ActivityExecutionError that
names the failure kind the retry policy is evaluated against.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List

from fulfillment.activities import (
    SIMULATED_IO_SECONDS,
    InvoiceActivities,
    OrderActivities,
    activity_methods,
)

logger = logging.getLogger(__name__)

ActivityHandler = Callable[[Any], Awaitable[Any]]

NOT_REGISTERED_ERROR_KIND = "ActivityNotRegistered"


class ActivityExecutionError(Exception):
    """A single activity attempt failed.

    ``kind`` is the name of the exception class the handler raised and is
    what retry policies list as non-retryable.
    """

    def __init__(self, activity: str, kind: str, message: str) -> None:
        super().__init__(f"{activity} failed with {kind}: {message}")
        self.activity = activity
        self.kind = kind
        self.message = message


class ActivityRegistry:
    def __init__(self) -> None:
        self._handlers: Dict[str, ActivityHandler] = {}

    def register(self, name: str, handler: ActivityHandler) -> None:
        if not callable(handler):
            raise TypeError(f"Handler for activity {name} is not callable")
        if name in self._handlers:
            raise ValueError(f"Activity already registered: {name}")
        self._handlers[name] = handler
        logger.debug("Registered activity", extra={"activity": name})

    def register_activities(self, instance: object) -> List[str]:
        """Register every marked activity method of ``instance``."""
        registered = []
        for name, handler in activity_methods(instance).items():
            self.register(name, handler)
            registered.append(name)
        return registered

    def names(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    async def invoke(self, name: str, input: Any) -> Any:
        handler = self._handlers.get(name)
        if handler is None:
            raise ActivityExecutionError(
                name, NOT_REGISTERED_ERROR_KIND, "no handler registered"
            )
        try:
            return await handler(input)
        except Exception as e:
            raise ActivityExecutionError(name, type(e).__name__, str(e)) from e


def create_default_registry(
    delay_seconds: float = SIMULATED_IO_SECONDS,
) -> ActivityRegistry:
    """Registry holding the order and invoice activities."""
    registry = ActivityRegistry()
    registry.register_activities(OrderActivities(delay_seconds))
    registry.register_activities(InvoiceActivities(delay_seconds))
    logger.info(
        "Activity registry created", extra={"activities": registry.names()}
    )
    return registry
