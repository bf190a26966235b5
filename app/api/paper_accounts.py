"""Paper trading account endpoints."""
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import AccountResponse, HistoryOrderResponse, PortfolioPositionResponse, dump
from app.db.postgres import get_db
from app.dependencies import AppContext, get_context
from app.services.paper_trading.accounts import AccountService
from app.services.paper_trading.errors import ErrorCode, ValidationFailed
from app.services.paper_trading.lookups import get_account
from app.services.paper_trading.schemas import parse_side_filter, parse_status_filter

router = APIRouter(prefix="/api/paper-trading/accounts", tags=["paper-trading"])


class AccountUpdate(BaseModel):
    """Request model for toggling an account."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    is_active: bool = Field(..., alias="isActive")


def get_account_service(context: AppContext = Depends(get_context)) -> AccountService:
    return AccountService(context.settings)


@router.post("/initialize", status_code=status.HTTP_201_CREATED)
async def initialize_account(
    payload: Any = Body(...),
    db: AsyncSession = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """
    Open a paper trading account for a user.

    The balance must be between 1,000 and 10,000,000 and a user may hold only
    one active account at a time.
    """
    if not isinstance(payload, dict):
        raise ValidationFailed(ErrorCode.INVALID_REQUEST_BODY, "Request body must be a JSON object")

    account = await service.initialize(db, payload.get("userId"), payload.get("initialBalance"))
    return {
        "message": "Paper trading account initialized successfully",
        "account": dump(AccountResponse, account),
    }


@router.get("")
async def list_accounts(
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: int = Query(10, ge=1),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    accounts = await service.list_accounts(db, user_id=user_id, limit=min(limit, 100), offset=offset)
    return [dump(AccountResponse, account) for account in accounts]


@router.get("/{account_id}")
async def get_account_by_id(account_id: int, db: AsyncSession = Depends(get_db)):
    account = await get_account(db, account_id)
    return dump(AccountResponse, account)


@router.patch("/{account_id}")
async def update_account(
    account_id: int,
    update: AccountUpdate,
    db: AsyncSession = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Activate or deactivate an account."""
    account = await service.set_active(db, account_id, update.is_active)
    return dump(AccountResponse, account)


@router.post("/{account_id}/reset")
async def reset_account(
    account_id: int,
    db: AsyncSession = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Close every position, cancel pending orders and restore the initial balance."""
    result = await service.reset(db, account_id)
    return {
        "message": "Paper trading account reset successfully",
        "account": dump(AccountResponse, result.account),
        "deletedPositions": result.deleted_positions,
        "canceledOrders": result.canceled_orders,
    }


@router.get("/{account_id}/portfolio")
async def get_portfolio(
    account_id: int,
    db: AsyncSession = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Account, enriched open positions and a portfolio summary."""
    portfolio = await service.portfolio(db, account_id)

    positions = []
    for item in portfolio.positions:
        position = item.position
        positions.append(
            PortfolioPositionResponse(
                id=position.id,
                asset_id=position.asset_id,
                symbol=item.symbol,
                name=item.name,
                quantity=position.quantity,
                average_cost=position.average_cost,
                current_price=position.current_price or 0.0,
                multiplier=position.multiplier,
                market_value=item.market_value,
                unrealized_pnl=position.unrealized_pnl or 0.0,
                realized_pnl=position.realized_pnl or 0.0,
                total_pnl=item.total_pnl,
                percentage_return=item.percentage_return,
                last_updated=position.last_updated,
            ).model_dump(by_alias=True, mode="json")
        )

    return {
        "account": dump(AccountResponse, portfolio.account),
        "positions": positions,
        "summary": portfolio.summary(),
    }


@router.get("/{account_id}/history")
async def get_trade_history(
    account_id: int,
    order_status: Optional[str] = Query(None, alias="status"),
    side: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Order history with asset details, a P&L summary and win/loss counts."""
    limit = min(limit, 200)
    history = await service.history(
        db,
        account_id,
        status=parse_status_filter(order_status),
        side=parse_side_filter(side),
        start=start_date,
        end=end_date,
        limit=limit,
        offset=offset,
    )

    orders = [
        HistoryOrderResponse(
            id=entry.order.id,
            asset_id=entry.order.asset_id,
            symbol=entry.symbol,
            name=entry.name,
            order_type=entry.order.order_type,
            side=entry.order.side,
            quantity=entry.order.quantity,
            filled_quantity=entry.order.filled_quantity,
            filled_price=entry.order.filled_price,
            status=entry.order.status,
            filled_at=entry.order.filled_at,
            created_at=entry.order.created_at,
        ).model_dump(by_alias=True, mode="json")
        for entry in history.entries
    ]

    return {
        "account": dump(AccountResponse, history.account),
        "orders": orders,
        "pnlSummary": history.stats.summary(),
        "pagination": {"limit": limit, "offset": offset, "total": history.total},
    }
