"""
Activity implementations for order and invoice processing.

Each activity performs a single simulated I/O operation: it logs, waits a
fixed delay and logs again. The classes know nothing about the backend that
executes them; the local registry and the Temporal worker both discover the
methods through the ``activity_method`` marker.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, TypeVar

from fulfillment import activity_names as names

logger = logging.getLogger(__name__)

SIMULATED_IO_SECONDS = 0.5

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class InvalidOperationError(Exception):
    """Raised for input an activity can never process; never retried."""

    pass


def activity_method(name: str) -> Callable[[F], F]:
    """Mark an async method as the handler of the named activity."""

    def decorator(fn: F) -> F:
        setattr(fn, "__activity_name__", name)
        return fn

    return decorator


def activity_methods(instance: object) -> Dict[str, Callable[..., Any]]:
    """Return the bound activity methods of ``instance`` by activity name."""
    found: Dict[str, Callable[..., Any]] = {}
    for attr in dir(type(instance)):
        if attr.startswith("_"):
            continue
        member = getattr(type(instance), attr)
        name = getattr(member, "__activity_name__", None)
        if name:
            found[name] = getattr(instance, attr)
    return found


def _require_id(value: str, label: str) -> None:
    if not value or not value.strip():
        raise InvalidOperationError(f"{label} must not be empty")


class _SimulatedActivities:
    def __init__(self, delay_seconds: float = SIMULATED_IO_SECONDS) -> None:
        self.delay_seconds = delay_seconds

    async def _simulate_io(self) -> None:
        await asyncio.sleep(self.delay_seconds)


class OrderActivities(_SimulatedActivities):
    """Payment, shipping and confirmation steps of an order."""

    @activity_method(names.CHARGE_CUSTOMER)
    async def charge_customer(self, order_id: str) -> None:
        _require_id(order_id, "Order ID")
        logger.info(
            "Processing payment for order", extra={"order_id": order_id}
        )
        await self._simulate_io()
        logger.info(
            "Payment processed successfully", extra={"order_id": order_id}
        )

    @activity_method(names.SHIP_ORDER)
    async def ship_order(self, order_id: str) -> None:
        _require_id(order_id, "Order ID")
        logger.info(
            "Processing shipping for order", extra={"order_id": order_id}
        )
        await self._simulate_io()
        logger.info("Order shipped successfully", extra={"order_id": order_id})

    @activity_method(names.SEND_CONFIRMATION_EMAIL)
    async def send_confirmation_email(self, order_id: str) -> None:
        _require_id(order_id, "Order ID")
        logger.info(
            "Sending confirmation email for order",
            extra={"order_id": order_id},
        )
        await self._simulate_io()
        logger.info(
            "Confirmation email sent successfully",
            extra={"order_id": order_id},
        )


class InvoiceActivities(_SimulatedActivities):
    """Invoice document generation and delivery."""

    @activity_method(names.GENERATE_INVOICE)
    async def generate_invoice(self, invoice_id: str) -> None:
        _require_id(invoice_id, "Invoice ID")
        logger.info(
            "Generating invoice document", extra={"invoice_id": invoice_id}
        )
        await self._simulate_io()
        logger.info(
            "Invoice document generated successfully",
            extra={"invoice_id": invoice_id},
        )

    @activity_method(names.SEND_INVOICE_EMAIL)
    async def send_invoice_email(self, invoice_id: str) -> None:
        _require_id(invoice_id, "Invoice ID")
        logger.info(
            "Sending invoice email", extra={"invoice_id": invoice_id}
        )
        await self._simulate_io()
        logger.info(
            "Invoice email sent successfully",
            extra={"invoice_id": invoice_id},
        )
