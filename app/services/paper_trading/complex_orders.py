"""Multi-leg (spread) order execution.

Flow for one request, all inside the caller's transaction:

1. load and row-lock the account, require it to be active
2. resolve every leg's asset and price every leg (no writes yet)
3. check buying power against the planned net debit
4. per leg, in input order: write the order, fill it, merge the position
5. settle cash, equity and P&L on the account

Any failure raises a ``PaperTradingError`` before step 4, or rolls the whole
transaction back if it happens later.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, UTC
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import Settings
from app.models.asset import Asset
from app.models.paper_account import PaperAccount
from app.models.paper_order import OrderSide, OrderStatus, OrderType, PaperOrder
from app.monitoring.logger import BusinessLogger
from app.services.paper_trading.errors import PaperTradingError
from app.services.paper_trading.ledger import PositionLedger, merge_leg_fill
from app.services.paper_trading.lookups import get_account, get_asset
from app.services.paper_trading.pricing import days_until, estimate_option_price, simulate_fill
from app.services.paper_trading.schemas import ComplexOrderRequest, SpreadLegRequest
from app.services.paper_trading.settlement import (
    SettlementResult,
    SpreadCost,
    apply_cash_delta,
    check_buying_power,
    settle_account,
    summarize_legs,
)

logger = logging.getLogger(__name__)


@dataclass
class PlannedLeg:
    leg: SpreadLegRequest
    asset: Asset
    theoretical_price: float
    fill_price: float
    leg_cost: float

    @property
    def side(self) -> OrderSide:
        return self.leg.side


@dataclass
class ExecutedLeg:
    order_id: int
    asset_id: int
    symbol: str
    side: OrderSide
    quantity: int
    fill_price: float
    strike_price: Optional[float]
    expiration_date: Optional[date]
    option_type: Optional[str]
    leg_cost: float


@dataclass
class ComplexOrderResult:
    account_id: int
    spread_type: str
    underlying_symbol: str
    legs: List[ExecutedLeg]
    cost: SpreadCost
    settlement: SettlementResult

    @property
    def new_cash_balance(self) -> float:
        return self.settlement.cash_balance


class ComplexOrderService:
    """Executes spread orders against a paper account."""

    def __init__(
        self,
        settings: Settings,
        ledger: Optional[PositionLedger] = None,
        business_logger: Optional[BusinessLogger] = None,
    ):
        self.settings = settings
        self.ledger = ledger or PositionLedger()
        self.business_logger = business_logger or BusinessLogger()

    def price_leg(self, leg: SpreadLegRequest, market_price: Optional[float]) -> PlannedLeg:
        """Theoretical price, fill price and notional for one leg (asset unset)."""
        spot = market_price or self.settings.DEFAULT_UNDERLYING_PRICE
        strike = leg.strike_price or spot
        days = days_until(leg.expiration_date, self.settings.DEFAULT_DAYS_TO_EXPIRY)

        theoretical = estimate_option_price(
            spot_price=spot,
            strike_price=strike,
            days_to_expiry=days,
            volatility=self.settings.DEFAULT_VOLATILITY,
            option_type=leg.option_type.value if leg.option_type else None,
            time_value_factor=self.settings.TIME_VALUE_FACTOR,
        )
        fill_price = simulate_fill(theoretical, leg.side, self.settings.OPTION_SLIPPAGE)

        return PlannedLeg(
            leg=leg,
            asset=None,
            theoretical_price=theoretical,
            fill_price=fill_price,
            leg_cost=fill_price * leg.quantity * self.settings.CONTRACT_MULTIPLIER,
        )

    async def plan(self, db: AsyncSession, request: ComplexOrderRequest) -> List[PlannedLeg]:
        planned = []
        for leg in request.legs:
            asset = await get_asset(db, leg.asset_id)
            planned_leg = self.price_leg(leg, request.market_price)
            planned_leg.asset = asset
            planned.append(planned_leg)
        return planned

    async def execute(self, db: AsyncSession, request: ComplexOrderRequest) -> ComplexOrderResult:
        account_id = request.paper_account_id

        try:
            account = await get_account(db, account_id, for_update=True, require_active=True)
            planned = await self.plan(db, request)

            cost = summarize_legs(planned)
            logger.debug(f"Planned {len(planned)} legs for account {account_id}: net cost {cost.net_cost:.2f}")
            if cost.is_debit:
                check_buying_power(account.cash_balance, cost.net_cost)
        except PaperTradingError as e:
            self.business_logger.log_order_rejected(account_id, e.code.value, e.message)
            raise

        now = datetime.now(UTC)
        executed = [await self._execute_leg(db, account, planned_leg, now) for planned_leg in planned]

        new_cash_balance = apply_cash_delta(account.cash_balance, cost)
        positions = await self.ledger.list_positions(db, account.id)
        settlement = settle_account(account, new_cash_balance, positions)
        await db.flush()

        self.business_logger.log_spread_execution(
            account_id=account.id,
            spread_type=request.spread_type.value,
            underlying_symbol=request.underlying_symbol,
            leg_count=len(executed),
            net_cost=cost.net_cost,
            is_debit=cost.is_debit,
        )
        self.business_logger.log_account_update(
            account_id=account.id,
            cash_balance=settlement.cash_balance,
            total_equity=settlement.total_equity,
            total_pnl=settlement.total_pnl,
        )

        return ComplexOrderResult(
            account_id=account.id,
            spread_type=request.spread_type.value,
            underlying_symbol=request.underlying_symbol,
            legs=executed,
            cost=cost,
            settlement=settlement,
        )

    async def _execute_leg(
        self,
        db: AsyncSession,
        account: PaperAccount,
        planned: PlannedLeg,
        now: datetime,
    ) -> ExecutedLeg:
        leg = planned.leg

        order = PaperOrder(
            paper_account_id=account.id,
            asset_id=leg.asset_id,
            order_type=OrderType.MARKET,
            side=leg.side,
            quantity=leg.quantity,
            status=OrderStatus.PENDING,
            filled_quantity=0,
        )
        db.add(order)
        await db.flush()

        order.status = OrderStatus.FILLED
        order.filled_quantity = leg.quantity
        order.filled_price = planned.fill_price
        order.filled_at = now

        position = await self.ledger.get_position(db, account.id, leg.asset_id)
        update = merge_leg_fill(
            position,
            leg.side,
            leg.quantity,
            planned.fill_price,
            allow_short_open=self.settings.ALLOW_SHORT_OPEN,
        )
        await self.ledger.apply(
            db,
            account.id,
            leg.asset_id,
            position,
            update,
            multiplier=self.settings.CONTRACT_MULTIPLIER,
        )

        self.business_logger.log_order_fill(
            account_id=account.id,
            order_id=order.id,
            symbol=planned.asset.symbol,
            side=leg.side.value,
            quantity=leg.quantity,
            price=planned.fill_price,
            multiplier=self.settings.CONTRACT_MULTIPLIER,
        )

        return ExecutedLeg(
            order_id=order.id,
            asset_id=leg.asset_id,
            symbol=planned.asset.symbol,
            side=leg.side,
            quantity=leg.quantity,
            fill_price=planned.fill_price,
            strike_price=leg.strike_price,
            expiration_date=leg.expiration_date,
            option_type=leg.option_type.value if leg.option_type else None,
            leg_cost=planned.leg_cost,
        )
