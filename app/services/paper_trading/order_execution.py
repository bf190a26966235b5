"""Single-asset order execution (market, limit and stop)."""
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import Settings
from app.models.paper_order import OrderSide, OrderStatus, OrderType, PaperOrder
from app.models.paper_position import PaperPosition
from app.monitoring.logger import BusinessLogger
from app.services.paper_trading.errors import BusinessRuleViolation, ErrorCode, PaperTradingError
from app.services.paper_trading.ledger import PositionLedger, merge_equity_fill
from app.services.paper_trading.lookups import get_account, get_asset
from app.services.paper_trading.schemas import ExecuteOrderRequest
from app.services.paper_trading.settlement import SettlementResult, check_buying_power, settle_account


@dataclass
class OrderFill:
    order: PaperOrder
    position: Optional[PaperPosition]
    fill_price: float
    total_cost: float
    slippage: float
    settlement: SettlementResult

    @property
    def new_cash_balance(self) -> float:
        return self.settlement.cash_balance


def determine_fill_price(
    order_type: OrderType,
    side: OrderSide,
    market_price: float,
    limit_price: Optional[float] = None,
    stop_price: Optional[float] = None,
    market_slippage: float = 0.001,
    stop_slippage: float = 0.0015,
) -> float:
    """Fill price for a simulated single-asset order.

    Raises BusinessRuleViolation with LIMIT_NOT_MET or STOP_NOT_TRIGGERED
    when the order would not execute at ``market_price``.
    """
    is_buy = side == OrderSide.BUY

    if order_type == OrderType.MARKET:
        return market_price * (1 + market_slippage) if is_buy else market_price * (1 - market_slippage)

    if order_type == OrderType.LIMIT:
        marketable = market_price <= limit_price if is_buy else market_price >= limit_price
        if not marketable:
            raise BusinessRuleViolation(
                ErrorCode.LIMIT_NOT_MET,
                f"Limit price not met: market {market_price} vs limit {limit_price}",
            )
        return limit_price

    triggered = market_price >= stop_price if is_buy else market_price <= stop_price
    if not triggered:
        raise BusinessRuleViolation(
            ErrorCode.STOP_NOT_TRIGGERED,
            f"Stop price not triggered: market {market_price} vs stop {stop_price}",
        )
    return market_price * (1 + stop_slippage) if is_buy else market_price * (1 - stop_slippage)


class OrderExecutionService:
    """Fills one order against one asset and updates the account."""

    def __init__(
        self,
        settings: Settings,
        ledger: Optional[PositionLedger] = None,
        business_logger: Optional[BusinessLogger] = None,
    ):
        self.settings = settings
        self.ledger = ledger or PositionLedger()
        self.business_logger = business_logger or BusinessLogger()

    async def execute(self, db: AsyncSession, request: ExecuteOrderRequest) -> OrderFill:
        try:
            account = await get_account(db, request.paper_account_id, for_update=True, require_active=True)
            asset = await get_asset(db, request.asset_id)

            fill_price = determine_fill_price(
                request.order_type,
                request.side,
                request.market_price,
                limit_price=request.limit_price,
                stop_price=request.stop_price,
                market_slippage=self.settings.MARKET_SLIPPAGE,
                stop_slippage=self.settings.STOP_SLIPPAGE,
            )
            total_cost = fill_price * request.quantity

            position = await self.ledger.get_position(db, account.id, asset.id)
            if request.side == OrderSide.BUY:
                check_buying_power(account.cash_balance, total_cost)
            elif position is None or position.quantity < request.quantity:
                raise BusinessRuleViolation(
                    ErrorCode.INSUFFICIENT_POSITION,
                    "Insufficient position to sell",
                    extra={
                        "requestedQuantity": request.quantity,
                        "availableQuantity": position.quantity if position else 0,
                    },
                )
        except PaperTradingError as e:
            self.business_logger.log_order_rejected(request.paper_account_id, e.code.value, e.message)
            raise

        now = datetime.now(UTC)
        order = PaperOrder(
            paper_account_id=account.id,
            asset_id=asset.id,
            order_type=request.order_type,
            side=request.side,
            quantity=request.quantity,
            limit_price=request.limit_price,
            stop_price=request.stop_price,
            status=OrderStatus.FILLED,
            filled_quantity=request.quantity,
            filled_price=fill_price,
            filled_at=now,
        )
        db.add(order)

        update = merge_equity_fill(position, request.side, request.quantity, fill_price, request.market_price)
        position = await self.ledger.apply(db, account.id, asset.id, position, update)

        if request.side == OrderSide.BUY:
            new_cash_balance = account.cash_balance - total_cost
        else:
            new_cash_balance = account.cash_balance + total_cost

        positions = await self.ledger.list_positions(db, account.id)
        settlement = settle_account(account, new_cash_balance, positions)
        await db.flush()

        self.business_logger.log_order_fill(
            account_id=account.id,
            order_id=order.id,
            symbol=asset.symbol,
            side=request.side.value,
            quantity=request.quantity,
            price=fill_price,
            order_type=request.order_type.value,
            realized_pnl=update.realized_pnl_delta,
        )
        self.business_logger.log_account_update(
            account_id=account.id,
            cash_balance=settlement.cash_balance,
            total_equity=settlement.total_equity,
            total_pnl=settlement.total_pnl,
        )

        return OrderFill(
            order=order,
            position=position,
            fill_price=fill_price,
            total_cost=total_cost,
            slippage=abs(fill_price - request.market_price),
            settlement=settlement,
        )
