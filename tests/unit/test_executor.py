"""Unit tests for AutoInvestExecutor."""

from unittest.mock import Mock

import pytest

from autoinvest.execution.base import (
    ConversionOutcome,
    ConversionStatus,
    OrderResultStatus,
    TerminalOrder,
    WhatIfPreview,
)
from autoinvest.execution.orders import OrderProtocol
from autoinvest.orchestration.executor import AutoInvestExecutor
from autoinvest.portfolio.base import AutoInvestPlan, PlannedOrder
from autoinvest.store.base import InMemoryAllocationStore
from autoinvest.utils.exceptions import ExchangeRateError, GatewayError, OrderRejectedError

AFFORDABLE = WhatIfPreview(order_total=800.0, equity_current=10000.0, equity_after=9200.0)
UNAFFORDABLE = WhatIfPreview(order_total=800.0, equity_current=10000.0, equity_after=400.0)


def make_plan(secondary_to_convert=0.0, orders=None):
    orders = orders if orders is not None else [
        PlannedOrder("VOO", 1, 2, 800.0, 400.0, priority=1),
        PlannedOrder("QQQ", 2, 2, 800.0, 400.0, priority=2),
    ]
    return AutoInvestPlan(
        total_available=2850.0,
        secondary_to_convert=secondary_to_convert,
        exchange_rate=0.27,
        orders=orders,
        summary="Planning to invest",
    )


@pytest.fixture
def mock_plan_builder():
    builder = Mock()
    builder.build_plan.return_value = make_plan()
    return builder


@pytest.fixture
def mock_protocol():
    protocol = Mock()
    protocol.preview.return_value = AFFORDABLE
    protocol.place_and_confirm.side_effect = [
        TerminalOrder(order_id="1001", status="Submitted"),
        TerminalOrder(order_id="1002", status="Submitted"),
    ]
    return protocol


@pytest.fixture
def mock_converter():
    converter = Mock()
    converter.convert_and_wait.return_value = ConversionOutcome(
        status=ConversionStatus.CONVERTED, amount=5000.0, message="Converted", order_id="900", filled=True
    )
    return converter


@pytest.fixture
def store():
    return InMemoryAllocationStore()


@pytest.fixture
def executor(mock_plan_builder, mock_protocol, mock_converter, store):
    return AutoInvestExecutor(mock_plan_builder, mock_protocol, mock_converter, store)


class TestExecute:
    """Test the full run."""

    def test_all_orders_placed(self, executor, mock_plan_builder) -> None:
        """Test a clean run."""
        result = executor.execute("U1")

        mock_plan_builder.build_plan.assert_called_once_with("U1")
        assert result.success is True
        assert result.orders_placed == 2
        assert result.orders_failed == 0
        assert result.total_invested == 1600.0
        assert [r.order_id for r in result.results] == ["1001", "1002"]
        assert all(r.message == "Order placed successfully" for r in result.results)
        assert result.errors == []
        assert result.currency_conversion is None

    def test_orders_run_by_priority(self, executor, mock_plan_builder, mock_protocol) -> None:
        """Test orders are placed in priority order."""
        plan = make_plan()
        plan.orders.reverse()
        mock_plan_builder.build_plan.return_value = plan

        result = executor.execute("U1")

        assert [r.symbol for r in result.results] == ["VOO", "QQQ"]
        first_order = mock_protocol.place_and_confirm.call_args_list[0][0][1][0]
        assert first_order.instrument_id == 1
        assert first_order.quantity == 2

    def test_plan_failure_propagates(self, executor, mock_plan_builder) -> None:
        """Test an analysis failure aborts before any order."""
        mock_plan_builder.build_plan.side_effect = ExchangeRateError("no rate")

        with pytest.raises(ExchangeRateError):
            executor.execute("U1")

    def test_empty_plan(self, executor, mock_plan_builder, mock_protocol) -> None:
        """Test nothing to do is not a success."""
        mock_plan_builder.build_plan.return_value = make_plan(orders=[])

        result = executor.execute("U1")

        assert result.success is False
        assert result.orders_placed == 0
        mock_protocol.preview.assert_not_called()


class TestOrderFailures:
    """Test per-order failure handling."""

    def test_failure_continues(self, executor, mock_protocol) -> None:
        """Test one failed order does not stop the next."""
        mock_protocol.place_and_confirm.side_effect = [
            OrderRejectedError("Order rejected: market closed"),
            TerminalOrder(order_id="1002", status="Submitted"),
        ]

        result = executor.execute("U1")

        assert result.success is False
        assert result.orders_placed == 1
        assert result.orders_failed == 1
        assert result.total_invested == 800.0
        assert result.results[0].status == OrderResultStatus.FAILED
        assert result.results[1].status == OrderResultStatus.SUCCESS
        assert result.errors == ["Failed to place order for VOO: Order rejected: market closed"]

    def test_preview_gateway_error(self, executor, mock_protocol) -> None:
        """Test a gateway error during preview counts as a failure."""
        mock_protocol.preview.side_effect = GatewayError(500, "Internal error")

        result = executor.execute("U1")

        assert result.orders_failed == 2
        assert len(result.errors) == 2
        mock_protocol.place_and_confirm.assert_not_called()

    def test_unaffordable_skipped(self, executor, mock_protocol) -> None:
        """Test an order failing the buffer check is skipped, not failed."""
        mock_protocol.preview.side_effect = [UNAFFORDABLE, AFFORDABLE]
        mock_protocol.place_and_confirm.side_effect = [TerminalOrder(order_id="1002")]

        result = executor.execute("U1")

        assert result.success is True
        assert result.orders_placed == 1
        assert result.orders_failed == 0
        assert result.results[0].status == OrderResultStatus.SKIPPED
        assert result.results[0].message == "Insufficient funds after applying safety buffer"
        assert result.errors == []

    def test_preview_error_skipped(self, executor, mock_protocol) -> None:
        """Test a preview error text is used as the skip reason."""
        mock_protocol.preview.side_effect = [WhatIfPreview(error="No trading permissions"), AFFORDABLE]
        mock_protocol.place_and_confirm.side_effect = [TerminalOrder(order_id="1002")]

        result = executor.execute("U1")

        assert result.results[0].status == OrderResultStatus.SKIPPED
        assert result.results[0].message == "No trading permissions"

    def test_buffer_read_at_execution(self, executor, mock_protocol, store) -> None:
        """Test the store buffer in effect at execution time is applied."""
        # 9200 remaining equity is below a 95% buffer
        store.set_buffer_percent(0.95)

        result = executor.execute("U1")

        assert result.orders_placed == 0
        assert all(r.status == OrderResultStatus.SKIPPED for r in result.results)
        assert result.success is False

    def test_malformed_preview_skips_only_that_order(
        self, mock_plan_builder, mock_converter, mock_client, store
    ) -> None:
        """Test a malformed what-if body skips one order and the run continues."""
        mock_client.request.side_effect = [
            {"amount": "n/a", "equity": {"current": "10,000", "after": "9,200"}},
            {"amount": {"total": "800"}, "equity": {"current": "10,000", "after": "9,200"}},
            [{"order_id": "1002", "order_status": "Submitted"}],
        ]
        executor = AutoInvestExecutor(mock_plan_builder, OrderProtocol(mock_client), mock_converter, store)

        result = executor.execute("U1")

        assert [r.status for r in result.results] == [
            OrderResultStatus.SKIPPED,
            OrderResultStatus.SUCCESS,
        ]
        assert result.results[0].message.startswith("Unexpected what-if response")
        assert result.results[1].order_id == "1002"
        assert result.orders_placed == 1


class TestConversion:
    """Test the currency conversion step."""

    def test_below_threshold_not_converted(self, executor, mock_plan_builder, mock_converter) -> None:
        """Test small secondary balances are left alone."""
        mock_plan_builder.build_plan.return_value = make_plan(secondary_to_convert=100.0)

        executor.execute("U1")

        mock_converter.convert_and_wait.assert_not_called()

    def test_converted_before_orders(self, executor, mock_plan_builder, mock_converter) -> None:
        """Test conversion above the threshold."""
        mock_plan_builder.build_plan.return_value = make_plan(secondary_to_convert=5000.0)

        result = executor.execute("U1")

        mock_converter.convert_and_wait.assert_called_once_with("U1", 5000.0, fill_timeout=180.0)
        assert result.currency_conversion.status == ConversionStatus.CONVERTED
        assert result.errors == []
        assert result.success is True

    def test_pending_conversion_reported(self, executor, mock_plan_builder, mock_converter) -> None:
        """Test an unconfirmed conversion is reported but orders still run."""
        mock_plan_builder.build_plan.return_value = make_plan(secondary_to_convert=5000.0)
        mock_converter.convert_and_wait.return_value = ConversionOutcome(
            status=ConversionStatus.PENDING,
            amount=5000.0,
            message="Conversion order 900 placed, fill not confirmed",
            order_id="900",
        )

        result = executor.execute("U1")

        assert result.errors == ["Conversion order 900 placed, fill not confirmed"]
        assert result.orders_placed == 2
        assert result.success is True
