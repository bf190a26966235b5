"""Position ledger: merges fills into per-account positions."""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import List, Optional, Protocol, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.paper_order import OrderSide
from app.models.paper_position import PaperPosition

logger = logging.getLogger(__name__)


class PositionLike(Protocol):
    quantity: int
    average_cost: float


class LedgerAction(str, enum.Enum):
    OPEN = "open"
    UPDATE = "update"
    CLOSE = "close"
    SKIP = "skip"


@dataclass
class LedgerUpdate:
    """Position state after a fill, plus what to do with the row."""
    action: LedgerAction
    quantity: int = 0
    average_cost: float = 0.0
    current_price: Optional[float] = None
    unrealized_pnl: float = 0.0
    realized_pnl_delta: float = 0.0


def merge_leg_fill(
    position: Optional[PositionLike],
    side: Union[OrderSide, str],
    quantity: int,
    fill_price: float,
    allow_short_open: bool = False,
) -> LedgerUpdate:
    """Merge one spread leg into the existing position for its asset.

    Reductions blend the fill into the remaining basis:
    ``abs((avg * qty - fill * filled) / new_qty)``. A net quantity of exactly
    zero closes the position. A sell with nothing to sell opens a short only
    when ``allow_short_open`` is set.
    """
    side = OrderSide(side)
    signed_qty = quantity if side == OrderSide.BUY else -quantity

    if position is None:
        if side == OrderSide.SELL and not allow_short_open:
            return LedgerUpdate(action=LedgerAction.SKIP)
        return LedgerUpdate(
            action=LedgerAction.OPEN,
            quantity=signed_qty,
            average_cost=fill_price,
            current_price=fill_price,
            unrealized_pnl=0.0,
        )

    new_quantity = position.quantity + signed_qty
    if new_quantity == 0:
        return LedgerUpdate(action=LedgerAction.CLOSE)

    total_cost_basis = position.average_cost * position.quantity + fill_price * signed_qty
    new_average_cost = abs(total_cost_basis / new_quantity)

    return LedgerUpdate(
        action=LedgerAction.UPDATE,
        quantity=new_quantity,
        average_cost=new_average_cost,
        current_price=fill_price,
        unrealized_pnl=(fill_price - new_average_cost) * new_quantity,
    )


def merge_equity_fill(
    position: Optional[PositionLike],
    side: Union[OrderSide, str],
    quantity: int,
    fill_price: float,
    market_price: float,
) -> LedgerUpdate:
    """Merge a single-asset fill, booking realized P&L on sells.

    Buys re-average the cost; sells leave the average untouched. Callers
    must reject sells larger than the held quantity beforehand.
    """
    side = OrderSide(side)

    if side == OrderSide.BUY:
        if position is None:
            return LedgerUpdate(
                action=LedgerAction.OPEN,
                quantity=quantity,
                average_cost=fill_price,
                current_price=market_price,
                unrealized_pnl=(market_price - fill_price) * quantity,
            )
        new_quantity = position.quantity + quantity
        new_average_cost = (position.average_cost * position.quantity + fill_price * quantity) / new_quantity
        return LedgerUpdate(
            action=LedgerAction.UPDATE,
            quantity=new_quantity,
            average_cost=new_average_cost,
            current_price=market_price,
            unrealized_pnl=(market_price - new_average_cost) * new_quantity,
        )

    if position is None or position.quantity < quantity:
        raise ValueError("Sell quantity exceeds position")

    realized = (fill_price - position.average_cost) * quantity
    new_quantity = position.quantity - quantity
    if new_quantity == 0:
        return LedgerUpdate(action=LedgerAction.CLOSE, realized_pnl_delta=realized)

    return LedgerUpdate(
        action=LedgerAction.UPDATE,
        quantity=new_quantity,
        average_cost=position.average_cost,
        current_price=market_price,
        unrealized_pnl=(market_price - position.average_cost) * new_quantity,
        realized_pnl_delta=realized,
    )


class PositionLedger:
    """Reads and writes paper positions inside the caller's transaction."""

    async def get_position(
        self,
        db: AsyncSession,
        account_id: int,
        asset_id: int
    ) -> Optional[PaperPosition]:
        result = await db.execute(
            select(PaperPosition).where(
                PaperPosition.paper_account_id == account_id,
                PaperPosition.asset_id == asset_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_positions(self, db: AsyncSession, account_id: int) -> List[PaperPosition]:
        result = await db.execute(
            select(PaperPosition)
            .where(PaperPosition.paper_account_id == account_id)
            .order_by(PaperPosition.id)
        )
        return list(result.scalars().all())

    async def apply(
        self,
        db: AsyncSession,
        account_id: int,
        asset_id: int,
        position: Optional[PaperPosition],
        update: LedgerUpdate,
        multiplier: int = 1,
    ) -> Optional[PaperPosition]:
        """Write one ledger update: insert, update, delete or nothing.

        Returns the surviving position row, or None when there is none.
        """
        now = datetime.now(UTC)

        if update.action == LedgerAction.SKIP:
            return position

        if update.action == LedgerAction.CLOSE:
            await db.delete(position)
            await db.flush()
            logger.info(f"Position closed: account={account_id} asset={asset_id}")
            return None

        if update.action == LedgerAction.OPEN:
            position = PaperPosition(
                paper_account_id=account_id,
                asset_id=asset_id,
                quantity=update.quantity,
                average_cost=update.average_cost,
                current_price=update.current_price,
                multiplier=multiplier,
                unrealized_pnl=update.unrealized_pnl,
                realized_pnl=update.realized_pnl_delta,
                last_updated=now,
            )
            db.add(position)
        else:
            position.quantity = update.quantity
            position.average_cost = update.average_cost
            position.current_price = update.current_price
            position.unrealized_pnl = update.unrealized_pnl
            position.realized_pnl = (position.realized_pnl or 0.0) + update.realized_pnl_delta
            position.last_updated = now

        await db.flush()
        logger.info(
            f"Position updated: account={account_id} asset={asset_id} "
            f"qty={position.quantity} avg_cost={position.average_cost:.4f}"
        )
        return position
