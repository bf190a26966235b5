"""Paper trading position endpoints: listing and manual maintenance."""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import PositionResponse, dump
from app.db.postgres import get_db
from app.models.paper_position import PaperPosition
from app.services.paper_trading.positions import PositionService
from app.services.paper_trading.schemas import parse_position_create, parse_position_update

router = APIRouter(prefix="/api/paper-trading/positions", tags=["paper-trading"])


@router.get("")
async def list_positions(
    paper_account_id: Optional[int] = Query(None, alias="paperAccountId", gt=0),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List positions, most recently updated first."""
    query = select(PaperPosition)
    if paper_account_id is not None:
        query = query.where(PaperPosition.paper_account_id == paper_account_id)

    query = query.order_by(desc(PaperPosition.last_updated), desc(PaperPosition.id))
    query = query.limit(min(limit, 100)).offset(offset)

    result = await db.execute(query)
    return [dump(PositionResponse, position) for position in result.scalars().all()]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_position(payload: Any = Body(...), db: AsyncSession = Depends(get_db)):
    """Enter a holding by hand. One position per account and asset."""
    request = parse_position_create(payload)
    position = await PositionService().open(db, request)
    return dump(PositionResponse, position)


@router.put("/{position_id}")
async def update_position(position_id: int, payload: Any = Body(...), db: AsyncSession = Depends(get_db)):
    """Adjust quantity, cost basis, mark price or P&L of a position."""
    changes = parse_position_update(payload)
    position = await PositionService().update(db, position_id, changes)
    return dump(PositionResponse, position)


@router.delete("/{position_id}")
async def delete_position(position_id: int, db: AsyncSession = Depends(get_db)):
    position = await PositionService().close(db, position_id)
    return {
        "message": "Position deleted successfully",
        "position": dump(PositionResponse, position),
    }
