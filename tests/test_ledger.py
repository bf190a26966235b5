"""Tests for position merging rules."""
from dataclasses import dataclass

import pytest

from app.services.paper_trading.ledger import LedgerAction, merge_equity_fill, merge_leg_fill


@dataclass
class Holding:
    quantity: int
    average_cost: float


def apply(holding, update):
    if update.action == LedgerAction.CLOSE:
        return None
    if update.action == LedgerAction.SKIP:
        return holding
    return Holding(update.quantity, update.average_cost)


class TestLegFills:
    def test_first_buy_opens_position_at_fill_price(self):
        update = merge_leg_fill(None, "buy", 1, 3.4747)

        assert update.action == LedgerAction.OPEN
        assert update.quantity == 1
        assert update.average_cost == pytest.approx(3.4747)
        assert update.unrealized_pnl == 0.0

    def test_same_direction_fills_keep_weighted_average(self):
        fills = [(2, 3.0), (5, 4.0), (1, 10.0), (3, 2.5)]
        holding = None
        for quantity, price in fills:
            holding = apply(holding, merge_leg_fill(holding, "buy", quantity, price))

        expected = sum(q * p for q, p in fills) / sum(q for q, _ in fills)
        assert holding.quantity == 11
        assert holding.average_cost == pytest.approx(expected)

    def test_selling_entire_position_closes_it(self):
        update = merge_leg_fill(Holding(2, 5.0), "sell", 2, 6.0)

        assert update.action == LedgerAction.CLOSE
        assert apply(Holding(2, 5.0), update) is None

    def test_partial_reduction_blends_fill_into_remaining_basis(self):
        update = merge_leg_fill(Holding(5, 4.0), "sell", 2, 4.5)

        assert update.action == LedgerAction.UPDATE
        assert update.quantity == 3
        assert update.average_cost == pytest.approx(11 / 3)
        assert update.current_price == 4.5
        assert update.unrealized_pnl == pytest.approx((4.5 - 11 / 3) * 3)

    def test_sell_without_position_is_skipped_by_default(self):
        update = merge_leg_fill(None, "sell", 1, 2.0)
        assert update.action == LedgerAction.SKIP

    def test_sell_without_position_opens_short_when_allowed(self):
        update = merge_leg_fill(None, "sell", 3, 2.0, allow_short_open=True)

        assert update.action == LedgerAction.OPEN
        assert update.quantity == -3
        assert update.average_cost == 2.0

    def test_buy_back_short_to_flat_closes(self):
        update = merge_leg_fill(Holding(-3, 2.0), "buy", 3, 1.5)
        assert update.action == LedgerAction.CLOSE


class TestEquityFills:
    def test_buy_opens_with_market_price_as_current(self):
        update = merge_equity_fill(None, "buy", 10, 100.1, 100.0)

        assert update.action == LedgerAction.OPEN
        assert update.average_cost == pytest.approx(100.1)
        assert update.current_price == 100.0
        assert update.unrealized_pnl == pytest.approx(-1.0)

    def test_buys_average_the_cost(self):
        update = merge_equity_fill(Holding(10, 100.0), "buy", 10, 110.0, 110.0)

        assert update.quantity == 20
        assert update.average_cost == pytest.approx(105.0)

    def test_sell_books_realized_pnl_and_keeps_average(self):
        update = merge_equity_fill(Holding(10, 100.0), "sell", 4, 120.0, 120.0)

        assert update.action == LedgerAction.UPDATE
        assert update.quantity == 6
        assert update.average_cost == 100.0
        assert update.realized_pnl_delta == pytest.approx(80.0)

    def test_selling_everything_closes_with_realized_pnl(self):
        update = merge_equity_fill(Holding(5, 50.0), "sell", 5, 40.0, 40.0)

        assert update.action == LedgerAction.CLOSE
        assert update.realized_pnl_delta == pytest.approx(-50.0)

    def test_oversell_is_rejected(self):
        with pytest.raises(ValueError):
            merge_equity_fill(Holding(1, 50.0), "sell", 2, 40.0, 40.0)
        with pytest.raises(ValueError):
            merge_equity_fill(None, "sell", 1, 40.0, 40.0)
