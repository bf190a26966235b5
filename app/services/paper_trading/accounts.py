"""Paper account lifecycle: initialize, activate, reset, portfolio and trade history."""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import Settings
from app.models.asset import Asset
from app.models.paper_account import PaperAccount
from app.models.paper_order import OrderSide, OrderStatus, PaperOrder
from app.models.paper_position import PaperPosition
from app.services.paper_trading.errors import BusinessRuleViolation, ErrorCode, ValidationFailed
from app.services.paper_trading.lookups import get_account
from app.services.paper_trading.order_book import OPEN_STATUSES
from app.services.paper_trading.schemas import parse_positive_number

logger = logging.getLogger(__name__)


@dataclass
class PortfolioPosition:
    position: PaperPosition
    symbol: str
    name: str
    market_value: float
    total_pnl: float
    percentage_return: float


@dataclass
class Portfolio:
    account: PaperAccount
    positions: List[PortfolioPosition] = field(default_factory=list)

    @property
    def total_position_value(self) -> float:
        return sum(p.market_value for p in self.positions)

    @property
    def total_equity(self) -> float:
        return self.account.cash_balance + self.total_position_value

    @property
    def total_pnl(self) -> float:
        return sum(p.total_pnl for p in self.positions)

    @property
    def percentage_return(self) -> float:
        initial = self.account.initial_balance
        if not initial:
            return 0.0
        return (self.total_equity - initial) / initial * 100

    def summary(self) -> Dict[str, Any]:
        return {
            "totalPositionValue": self.total_position_value,
            "totalCashBalance": self.account.cash_balance,
            "totalEquity": self.total_equity,
            "totalPnl": self.total_pnl,
            "percentageReturn": self.percentage_return,
            "numberOfPositions": sum(1 for p in self.positions if p.position.quantity != 0),
        }


@dataclass
class ResetResult:
    account: PaperAccount
    deleted_positions: int
    canceled_orders: int


@dataclass
class HistoryEntry:
    order: PaperOrder
    symbol: str
    name: str


@dataclass
class TradeStats:
    total_realized_pnl: float
    total_unrealized_pnl: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    commission_per_trade: float

    @property
    def total_pnl(self) -> float:
        return self.total_realized_pnl + self.total_unrealized_pnl

    @property
    def win_rate(self) -> float:
        closed = self.winning_trades + self.losing_trades
        return round(self.winning_trades / closed * 100, 2) if closed else 0.0

    @property
    def total_commission(self) -> float:
        return self.total_trades * self.commission_per_trade

    def summary(self) -> Dict[str, Any]:
        return {
            "totalRealizedPnl": self.total_realized_pnl,
            "totalUnrealizedPnl": self.total_unrealized_pnl,
            "totalPnl": self.total_pnl,
            "totalTrades": self.total_trades,
            "winningTrades": self.winning_trades,
            "losingTrades": self.losing_trades,
            "winRate": self.win_rate,
            "totalCommission": self.total_commission,
            "netPnl": self.total_pnl - self.total_commission,
        }


@dataclass
class TradeHistory:
    account: PaperAccount
    entries: List[HistoryEntry]
    total: int
    stats: TradeStats


def as_utc(moment: datetime) -> datetime:
    """Naive timestamps are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def count_wins_and_losses(filled_orders: Iterable[PaperOrder]) -> Tuple[int, int]:
    """Score each filled sell against the average buy fill of the same asset.

    Sells of an asset that was never bought are not scored.
    """
    bought: Dict[int, List[float]] = defaultdict(lambda: [0.0, 0.0])
    sells = []
    for order in filled_orders:
        if order.filled_price is None:
            continue
        quantity = order.filled_quantity or order.quantity
        if order.side == OrderSide.BUY:
            bought[order.asset_id][0] += order.filled_price * quantity
            bought[order.asset_id][1] += quantity
        else:
            sells.append(order)

    winning = losing = 0
    for sell in sells:
        notional, quantity = bought.get(sell.asset_id, (0.0, 0.0))
        if not quantity:
            continue
        average_buy = notional / quantity
        if sell.filled_price > average_buy:
            winning += 1
        elif sell.filled_price < average_buy:
            losing += 1
    return winning, losing

class AccountService:
    """Account operations outside the order path."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def initialize(self, db: AsyncSession, user_id: Any, initial_balance: Any) -> PaperAccount:
        if user_id is None or user_id == "" or initial_balance is None or initial_balance == "":
            raise ValidationFailed(
                ErrorCode.MISSING_REQUIRED_FIELDS,
                "Missing required fields: userId, initialBalance",
            )

        balance = parse_positive_number(initial_balance)
        if (
            balance is None
            or balance < self.settings.MIN_INITIAL_BALANCE
            or balance > self.settings.MAX_INITIAL_BALANCE
        ):
            raise ValidationFailed(
                ErrorCode.INVALID_INITIAL_BALANCE,
                f"initialBalance must be between {self.settings.MIN_INITIAL_BALANCE:,.0f} "
                f"and {self.settings.MAX_INITIAL_BALANCE:,.0f}",
            )

        user_id = str(user_id)
        existing = await db.execute(
            select(PaperAccount.id).where(
                PaperAccount.user_id == user_id,
                PaperAccount.is_active.is_(True),
            )
        )
        if existing.first() is not None:
            raise BusinessRuleViolation(
                ErrorCode.ACCOUNT_ALREADY_EXISTS,
                "User already has an active paper trading account",
            )

        account = PaperAccount(
            user_id=user_id,
            cash_balance=balance,
            initial_balance=balance,
            total_equity=balance,
            total_pnl=0.0,
            is_active=True,
        )
        db.add(account)
        await db.flush()

        logger.info(f"Paper account initialized: id={account.id} user={user_id} balance={balance:.2f}")
        return account

    async def list_accounts(
        self,
        db: AsyncSession,
        user_id: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> List[PaperAccount]:
        query = select(PaperAccount)
        if user_id:
            query = query.where(PaperAccount.user_id == user_id)
        query = query.order_by(PaperAccount.id).limit(limit).offset(offset)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def set_active(self, db: AsyncSession, account_id: int, is_active: bool) -> PaperAccount:
        account = await get_account(db, account_id, for_update=True)
        account.is_active = is_active
        account.updated_at = datetime.now(UTC)
        await db.flush()

        logger.info(f"Paper account {account_id} is_active={is_active}")
        return account

    async def reset(self, db: AsyncSession, account_id: int) -> ResetResult:
        """Delete all positions, cancel open orders and restore balances."""
        account = await get_account(db, account_id, for_update=True)
        now = datetime.now(UTC)

        deleted = await db.execute(
            delete(PaperPosition).where(PaperPosition.paper_account_id == account_id)
        )
        canceled = await db.execute(
            update(PaperOrder)
            .where(
                PaperOrder.paper_account_id == account_id,
                PaperOrder.status.in_(OPEN_STATUSES),
            )
            .values(status=OrderStatus.CANCELED, updated_at=now)
        )

        account.cash_balance = account.initial_balance
        account.total_equity = account.initial_balance
        account.total_pnl = 0.0
        account.updated_at = now
        await db.flush()

        logger.info(
            f"Paper account {account_id} reset: "
            f"{deleted.rowcount} positions deleted, {canceled.rowcount} orders canceled"
        )
        return ResetResult(
            account=account,
            deleted_positions=deleted.rowcount,
            canceled_orders=canceled.rowcount,
        )

    async def portfolio(self, db: AsyncSession, account_id: int) -> Portfolio:
        account = await get_account(db, account_id)

        result = await db.execute(
            select(PaperPosition, Asset.symbol, Asset.name)
            .outerjoin(Asset, PaperPosition.asset_id == Asset.id)
            .where(
                PaperPosition.paper_account_id == account_id,
                PaperPosition.quantity != 0,
            )
            .order_by(PaperPosition.id)
        )

        portfolio = Portfolio(account=account)
        for position, symbol, name in result.all():
            market_value = position.market_value
            cost_basis = position.average_cost * position.quantity * (position.multiplier or 1)
            portfolio.positions.append(
                PortfolioPosition(
                    position=position,
                    symbol=symbol or "",
                    name=name or "",
                    market_value=market_value,
                    total_pnl=(position.unrealized_pnl or 0.0) + (position.realized_pnl or 0.0),
                    percentage_return=(market_value - cost_basis) / cost_basis * 100 if cost_basis else 0.0,
                )
            )
        return portfolio

    async def history(
        self,
        db: AsyncSession,
        account_id: int,
        status: Optional[OrderStatus] = None,
        side: Optional[OrderSide] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> TradeHistory:
        """Filtered order history, newest first, with account-wide trade statistics."""
        account = await get_account(db, account_id)

        conditions = [PaperOrder.paper_account_id == account_id]
        if status is not None:
            conditions.append(PaperOrder.status == status)
        if side is not None:
            conditions.append(PaperOrder.side == side)
        if start is not None:
            conditions.append(PaperOrder.created_at >= as_utc(start))
        if end is not None:
            conditions.append(PaperOrder.created_at <= as_utc(end))

        result = await db.execute(
            select(PaperOrder, Asset.symbol, Asset.name)
            .join(Asset, PaperOrder.asset_id == Asset.id)
            .where(*conditions)
            .order_by(desc(PaperOrder.created_at), desc(PaperOrder.id))
            .limit(limit)
            .offset(offset)
        )
        entries = [HistoryEntry(order=order, symbol=symbol, name=name) for order, symbol, name in result.all()]

        total = await db.scalar(select(func.count()).select_from(PaperOrder).where(*conditions))

        positions = (
            await db.execute(select(PaperPosition).where(PaperPosition.paper_account_id == account_id))
        ).scalars().all()
        filled = (
            await db.execute(
                select(PaperOrder).where(
                    PaperOrder.paper_account_id == account_id,
                    PaperOrder.status == OrderStatus.FILLED,
                )
            )
        ).scalars().all()
        winning, losing = count_wins_and_losses(filled)

        stats = TradeStats(
            total_realized_pnl=sum(p.realized_pnl or 0.0 for p in positions),
            total_unrealized_pnl=sum(p.unrealized_pnl or 0.0 for p in positions),
            total_trades=len(filled),
            winning_trades=winning,
            losing_trades=losing,
            commission_per_trade=self.settings.COMMISSION_PER_TRADE,
        )
        return TradeHistory(account=account, entries=entries, total=total or 0, stats=stats)
