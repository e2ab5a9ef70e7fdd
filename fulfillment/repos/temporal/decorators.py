"""
Temporal decorators for registering activity classes.

``temporal_activities`` wraps every method marked with ``activity_method``
as a Temporal activity under the same name the local registry uses, so the
workflow definitions resolve identically on both backends.
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Type, TypeVar

from temporalio import activity

logger = logging.getLogger(__name__)

T = TypeVar("T")


def temporal_activities(cls: Type[T]) -> Type[T]:
    """
    Class decorator that turns marked activity methods into Temporal
    activities.

    The MRO is searched so subclasses of the plain activity classes pick up
    every inherited activity method. Each is replaced by a thin wrapper
    decorated with ``activity.defn(name=<activity name>)``.

    Example:
        @temporal_activities
        class TemporalOrderActivities(OrderActivities):
            pass

        # charge_customer -> activity "ChargeCustomer", ...
    """
    methods: Dict[str, Callable[..., Any]] = {}
    for base_class in cls.__mro__:
        if base_class is object:
            continue
        for attr, value in base_class.__dict__.items():
            if attr in methods or attr.startswith("_"):
                continue
            if getattr(value, "__activity_name__", None):
                methods[attr] = value

    wrapped: List[str] = []
    for attr, method in methods.items():
        activity_name = method.__activity_name__

        def create_wrapper(original: Callable[..., Any]) -> Callable[..., Any]:
            @functools.wraps(original)
            async def wrapper(self: Any, business_id: str) -> None:
                await original(self, business_id)

            return wrapper

        setattr(
            cls,
            attr,
            activity.defn(name=activity_name)(create_wrapper(method)),
        )
        wrapped.append(activity_name)

    logger.debug(
        f"Temporal activities decorator applied to {cls.__name__}",
        extra={"activities": wrapped},
    )
    return cls
