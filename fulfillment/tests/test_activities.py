"""
Tests for the order and invoice activities.
"""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from fulfillment import activity_names as names
from fulfillment.activities import (
    InvalidOperationError,
    InvoiceActivities,
    OrderActivities,
    activity_methods,
)


class TestActivityDiscovery:
    def test_order_activities_are_marked_by_name(self) -> None:
        methods = activity_methods(OrderActivities(delay_seconds=0))
        assert set(methods) == {
            names.CHARGE_CUSTOMER,
            names.SHIP_ORDER,
            names.SEND_CONFIRMATION_EMAIL,
        }

    def test_invoice_activities_are_marked_by_name(self) -> None:
        methods = activity_methods(InvoiceActivities(delay_seconds=0))
        assert set(methods) == {
            names.GENERATE_INVOICE,
            names.SEND_INVOICE_EMAIL,
        }

    def test_methods_are_bound_to_instance(self) -> None:
        activities = OrderActivities(delay_seconds=0)
        method = activity_methods(activities)[names.SHIP_ORDER]
        assert method.__self__ is activities  # type: ignore[attr-defined]


class TestOrderActivities:
    @pytest.mark.asyncio
    async def test_each_activity_simulates_one_io_operation(self) -> None:
        activities = OrderActivities(delay_seconds=0.5)
        with patch(
            "fulfillment.activities.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            await activities.charge_customer("order-001")
            await activities.ship_order("order-001")
            await activities.send_confirmation_email("order-001")

        assert mock_sleep.await_count == 3
        for call in mock_sleep.await_args_list:
            assert call.args == (0.5,)

    @pytest.mark.asyncio
    async def test_logs_before_and_after(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.INFO, logger="fulfillment.activities")
        await OrderActivities(delay_seconds=0).charge_customer("order-001")

        messages = [record.getMessage() for record in caplog.records]
        assert messages == [
            "Processing payment for order",
            "Payment processed successfully",
        ]
        assert getattr(caplog.records[0], "order_id") == "order-001"

    @pytest.mark.asyncio
    async def test_empty_order_id_is_invalid(self) -> None:
        with pytest.raises(InvalidOperationError, match="Order ID"):
            await OrderActivities(delay_seconds=0).ship_order("")


class TestInvoiceActivities:
    @pytest.mark.asyncio
    async def test_generate_and_send(self) -> None:
        activities = InvoiceActivities(delay_seconds=0)
        assert await activities.generate_invoice("invoice-001") is None
        assert await activities.send_invoice_email("invoice-001") is None

    @pytest.mark.asyncio
    async def test_blank_invoice_id_is_invalid(self) -> None:
        with pytest.raises(InvalidOperationError, match="Invoice ID"):
            await InvoiceActivities(delay_seconds=0).generate_invoice("   ")
