"""Account settlement: net debit/credit, buying power and equity."""
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Iterable, Protocol

from app.models.paper_account import PaperAccount
from app.models.paper_order import OrderSide
from app.services.paper_trading.errors import BusinessRuleViolation, ErrorCode


class CostedLeg(Protocol):
    side: OrderSide
    leg_cost: float


class ValuedPosition(Protocol):
    market_value: float


@dataclass
class SpreadCost:
    total_cost: float
    total_credit: float

    @property
    def net_cost(self) -> float:
        return self.total_cost - self.total_credit

    @property
    def is_debit(self) -> bool:
        return self.net_cost > 0

    @property
    def signed_net_cost(self) -> float:
        """Net cost as reported to callers: negative for a credit."""
        return self.net_cost if self.is_debit else -abs(self.net_cost)


@dataclass
class SettlementResult:
    cash_balance: float
    total_position_value: float
    total_equity: float
    total_pnl: float


def summarize_legs(legs: Iterable[CostedLeg]) -> SpreadCost:
    """Split leg notionals into paid (buys) and received (sells)."""
    total_cost = 0.0
    total_credit = 0.0
    for leg in legs:
        if OrderSide(leg.side) == OrderSide.BUY:
            total_cost += leg.leg_cost
        else:
            total_credit += leg.leg_cost
    return SpreadCost(total_cost=total_cost, total_credit=total_credit)


def check_buying_power(cash_balance: float, required: float) -> None:
    """Raise INSUFFICIENT_FUNDS when a debit exceeds available cash."""
    if required > 0 and cash_balance < required:
        raise BusinessRuleViolation(
            ErrorCode.INSUFFICIENT_FUNDS,
            "Insufficient funds for this order",
            extra={"requiredFunds": required, "availableFunds": cash_balance},
        )


def apply_cash_delta(cash_balance: float, cost: SpreadCost) -> float:
    if cost.is_debit:
        return cash_balance - cost.net_cost
    return cash_balance + abs(cost.net_cost)


def total_position_value(positions: Iterable[ValuedPosition]) -> float:
    return sum(position.market_value for position in positions)


def settle_account(
    account: PaperAccount,
    new_cash_balance: float,
    positions: Iterable[ValuedPosition],
) -> SettlementResult:
    """Write cash, equity and P&L onto the account row.

    ``total_equity`` is always exactly cash plus the summed position values.
    """
    position_value = total_position_value(positions)
    total_equity = new_cash_balance + position_value
    total_pnl = total_equity - account.initial_balance

    account.cash_balance = new_cash_balance
    account.total_equity = total_equity
    account.total_pnl = total_pnl
    account.updated_at = datetime.now(UTC)

    return SettlementResult(
        cash_balance=new_cash_balance,
        total_position_value=position_value,
        total_equity=total_equity,
        total_pnl=total_pnl,
    )
