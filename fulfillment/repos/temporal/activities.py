"""
Temporal activity registrations for the order and invoice activities.

Imported by the worker only; workflow code refers to activities by name so
the workflow sandbox never imports this module.
"""

import logging
from typing import Any, Callable, List

from fulfillment.activities import (
    SIMULATED_IO_SECONDS,
    InvoiceActivities,
    OrderActivities,
    activity_methods,
)
from fulfillment.definitions import definitions_for_task_queue
from .decorators import temporal_activities

logger = logging.getLogger(__name__)


@temporal_activities
class TemporalOrderActivities(OrderActivities):
    pass


@temporal_activities
class TemporalInvoiceActivities(InvoiceActivities):
    pass


_ACTIVITY_CLASSES = [TemporalOrderActivities, TemporalInvoiceActivities]


def activities_for_task_queue(
    task_queue: str, delay_seconds: float = SIMULATED_IO_SECONDS
) -> List[Callable[..., Any]]:
    """Bound activity callables a worker on ``task_queue`` must host."""
    needed = {
        name
        for definition in definitions_for_task_queue(task_queue).values()
        for name in definition.activity_names
    }
    found = {}
    for activity_class in _ACTIVITY_CLASSES:
        instance = activity_class(delay_seconds)
        for name, method in activity_methods(instance).items():
            if name in needed:
                found[name] = method

    missing = needed - set(found)
    if missing:
        raise ValueError(
            f"No activity implementation for {sorted(missing)} on "
            f"task queue {task_queue}"
        )
    logger.debug(
        "Resolved activities for task queue",
        extra={"task_queue": task_queue, "activities": sorted(found)},
    )
    return [found[name] for name in sorted(found)]
