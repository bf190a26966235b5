"""Row lookups shared by the paper-trading services."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.asset import Asset
from app.models.paper_account import PaperAccount
from app.models.paper_order import PaperOrder
from app.models.paper_position import PaperPosition
from app.services.paper_trading.errors import BusinessRuleViolation, ErrorCode, NotFound


async def get_account(
    db: AsyncSession,
    account_id: int,
    for_update: bool = False,
    require_active: bool = False,
) -> PaperAccount:
    """Load an account or raise ACCOUNT_NOT_FOUND / ACCOUNT_NOT_ACTIVE.

    ``for_update`` row-locks the account until the transaction ends, which
    serializes concurrent orders against the same account.
    """
    query = select(PaperAccount).where(PaperAccount.id == account_id)
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    account = result.scalar_one_or_none()

    if not account:
        raise NotFound(ErrorCode.ACCOUNT_NOT_FOUND, "Paper trading account not found")
    if require_active and not account.is_active:
        raise BusinessRuleViolation(ErrorCode.ACCOUNT_NOT_ACTIVE, "Paper trading account is not active")

    return account


async def get_asset(db: AsyncSession, asset_id: int) -> Asset:
    asset = await db.get(Asset, asset_id)
    if not asset:
        raise NotFound(ErrorCode.ASSET_NOT_FOUND, f"Asset with ID {asset_id} not found")
    return asset


async def get_order(db: AsyncSession, order_id: int, for_update: bool = False) -> PaperOrder:
    query = select(PaperOrder).where(PaperOrder.id == order_id)
    if for_update:
        query = query.with_for_update()

    order = (await db.execute(query)).scalar_one_or_none()
    if not order:
        raise NotFound(ErrorCode.ORDER_NOT_FOUND, "Order not found")
    return order


async def get_position(db: AsyncSession, position_id: int) -> PaperPosition:
    position = await db.get(PaperPosition, position_id)
    if not position:
        raise NotFound(ErrorCode.POSITION_NOT_FOUND, "Position not found")
    return position
