"""Manual position maintenance: open, adjust and remove a holding.

Every write re-settles the owning account so total equity stays equal to
cash plus the summed position values.
"""
import logging
from datetime import datetime, UTC
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.paper_position import PaperPosition
from app.services.paper_trading.errors import Conflict, ErrorCode
from app.services.paper_trading.ledger import PositionLedger
from app.services.paper_trading.lookups import get_account, get_asset, get_position
from app.services.paper_trading.schemas import PositionCreateRequest, PositionUpdateRequest
from app.services.paper_trading.settlement import settle_account

logger = logging.getLogger(__name__)


def unrealized_pnl(current_price: Optional[float], average_cost: float, quantity: int) -> float:
    if current_price is None:
        return 0.0
    return (current_price - average_cost) * quantity


class PositionService:
    def __init__(self, ledger: Optional[PositionLedger] = None):
        self.ledger = ledger or PositionLedger()

    async def _resettle(self, db: AsyncSession, account_id: int) -> None:
        account = await get_account(db, account_id, for_update=True)
        positions = await self.ledger.list_positions(db, account_id)
        settle_account(account, account.cash_balance, positions)
        await db.flush()

    async def open(self, db: AsyncSession, request: PositionCreateRequest) -> PaperPosition:
        account = await get_account(db, request.paper_account_id, for_update=True)
        asset = await get_asset(db, request.asset_id)

        if await self.ledger.get_position(db, account.id, asset.id) is not None:
            raise Conflict(
                ErrorCode.POSITION_EXISTS,
                f"Account {account.id} already holds a position in {asset.symbol}",
            )

        position = PaperPosition(
            paper_account_id=account.id,
            asset_id=asset.id,
            quantity=request.quantity,
            average_cost=request.average_cost,
            current_price=request.current_price,
            multiplier=request.multiplier,
            unrealized_pnl=unrealized_pnl(request.current_price, request.average_cost, request.quantity),
            realized_pnl=0.0,
            last_updated=datetime.now(UTC),
        )
        db.add(position)
        await db.flush()
        await self._resettle(db, account.id)

        logger.info(f"Position opened manually: account={account.id} asset={asset.id} qty={position.quantity}")
        return position

    async def update(self, db: AsyncSession, position_id: int, changes: PositionUpdateRequest) -> PaperPosition:
        """Overwrite the supplied fields.

        A new current price recomputes unrealized P&L and wins over an
        explicit ``unrealizedPnl``.
        """
        position = await get_position(db, position_id)
        provided = {name for name in changes.model_fields_set if getattr(changes, name) is not None}

        for name in ("quantity", "average_cost", "current_price", "realized_pnl"):
            if name in provided:
                setattr(position, name, getattr(changes, name))

        if "current_price" in provided:
            position.unrealized_pnl = unrealized_pnl(position.current_price, position.average_cost, position.quantity)
        elif "unrealized_pnl" in provided:
            position.unrealized_pnl = changes.unrealized_pnl

        position.last_updated = datetime.now(UTC)
        await db.flush()
        await self._resettle(db, position.paper_account_id)

        logger.info(f"Position updated manually: id={position.id} qty={position.quantity}")
        return position

    async def close(self, db: AsyncSession, position_id: int) -> PaperPosition:
        position = await get_position(db, position_id)
        account_id = position.paper_account_id

        await db.delete(position)
        await db.flush()
        await self._resettle(db, account_id)

        logger.info(f"Position removed manually: id={position_id} account={account_id}")
        return position
