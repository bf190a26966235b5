"""Paper trading order endpoints: multi-leg spreads, single fills, resting orders and history."""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import ExecutedLegResponse, OrderResponse, PositionResponse, dump
from app.db.postgres import get_db
from app.dependencies import AppContext, get_context
from app.models.paper_order import PaperOrder
from app.services.paper_trading.complex_orders import ComplexOrderService
from app.services.paper_trading.lookups import get_order
from app.services.paper_trading.order_book import OrderBookService
from app.services.paper_trading.order_execution import OrderExecutionService
from app.services.paper_trading.schemas import (
    parse_complex_order,
    parse_execute_order,
    parse_order_update,
    parse_pending_order,
    parse_side_filter,
    parse_status_filter,
)

router = APIRouter(prefix="/api/paper-trading/orders", tags=["paper-trading"])


@router.post("/complex", status_code=status.HTTP_201_CREATED)
async def execute_complex_order(
    payload: Any = Body(...),
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    """
    Execute a multi-leg option order (straddle, strangle, iron condor, ...).

    Every leg is priced and the net debit checked against cash before any
    order or position is written. All legs fill or none do.
    """
    request = parse_complex_order(payload)

    service = ComplexOrderService(context.settings, business_logger=context.business_logger)
    result = await service.execute(db, request)

    return {
        "message": "Complex order executed successfully",
        "spreadType": result.spread_type,
        "underlyingSymbol": result.underlying_symbol,
        "legs": [dump(ExecutedLegResponse, leg) for leg in result.legs],
        "execution": {
            "netCost": result.cost.signed_net_cost,
            "isDebitSpread": result.cost.is_debit,
            "totalCost": result.cost.total_cost,
            "totalCredit": result.cost.total_credit,
            "newCashBalance": result.new_cash_balance,
        },
    }


@router.post("/execute", status_code=status.HTTP_201_CREATED)
async def execute_order(
    payload: Any = Body(...),
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    """Fill a single market, limit or stop order at the supplied market price."""
    request = parse_execute_order(payload)

    service = OrderExecutionService(context.settings, business_logger=context.business_logger)
    fill = await service.execute(db, request)

    return {
        "message": "Order executed successfully",
        "order": dump(OrderResponse, fill.order),
        "execution": {
            "fillPrice": fill.fill_price,
            "totalCost": fill.total_cost,
            "slippage": fill.slippage,
            "newCashBalance": fill.new_cash_balance,
        },
        "position": dump(PositionResponse, fill.position) if fill.position else None,
    }


@router.get("")
async def list_orders(
    paper_account_id: Optional[int] = Query(None, alias="paperAccountId", gt=0),
    order_status: Optional[str] = Query(None, alias="status"),
    side: Optional[str] = Query(None),
    limit: int = Query(20, ge=1),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List orders, newest first."""
    query = select(PaperOrder)

    status_filter = parse_status_filter(order_status)
    if status_filter is not None:
        query = query.where(PaperOrder.status == status_filter)

    side_filter = parse_side_filter(side)
    if side_filter is not None:
        query = query.where(PaperOrder.side == side_filter)

    if paper_account_id is not None:
        query = query.where(PaperOrder.paper_account_id == paper_account_id)

    query = query.order_by(desc(PaperOrder.created_at), desc(PaperOrder.id))
    query = query.limit(min(limit, 100)).offset(offset)

    result = await db.execute(query)
    return [dump(OrderResponse, order) for order in result.scalars().all()]


@router.get("/{order_id}")
async def get_order_by_id(order_id: int, db: AsyncSession = Depends(get_db)):
    order = await get_order(db, order_id)
    return dump(OrderResponse, order)


@router.post("", status_code=status.HTTP_201_CREATED)
async def place_order(payload: Any = Body(...), db: AsyncSession = Depends(get_db)):
    """Record a resting order. Nothing is filled and no cash moves."""
    request = parse_pending_order(payload)
    order = await OrderBookService().place(db, request)
    return dump(OrderResponse, order)


@router.put("/{order_id}")
async def update_order(order_id: int, payload: Any = Body(...), db: AsyncSession = Depends(get_db)):
    """Update status, fill fields or trigger prices of an open order."""
    changes = parse_order_update(payload)
    order = await OrderBookService().update(db, order_id, changes)
    return dump(OrderResponse, order)


@router.delete("/{order_id}")
async def cancel_order(order_id: int, db: AsyncSession = Depends(get_db)):
    order = await OrderBookService().cancel(db, order_id)
    return {
        "message": "Paper order canceled successfully",
        "order": dump(OrderResponse, order),
    }
