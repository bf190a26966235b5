"""Asset reference data endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import AssetResponse, dump
from app.db.postgres import get_db
from app.models.asset import Asset
from app.services.paper_trading.errors import Conflict, ErrorCode
from app.services.paper_trading.lookups import get_asset

router = APIRouter(prefix="/api/assets", tags=["assets"])


class AssetCreate(BaseModel):
    """Request model for registering an asset."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    symbol: str = Field(..., min_length=1, max_length=64, description="Ticker or OCC option symbol")
    name: str = Field(..., min_length=1, max_length=255)
    current_price: Optional[float] = Field(None, alias="currentPrice", gt=0)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_asset(asset_in: AssetCreate, db: AsyncSession = Depends(get_db)):
    symbol = asset_in.symbol.strip().upper()

    existing = await db.execute(select(Asset.id).where(Asset.symbol == symbol))
    if existing.first() is not None:
        raise Conflict(ErrorCode.DUPLICATE_SYMBOL, f"Asset with symbol {symbol} already exists")

    asset = Asset(
        symbol=symbol,
        name=asset_in.name.strip(),
        current_price=asset_in.current_price,
        is_active=True,
    )
    db.add(asset)
    await db.flush()
    return dump(AssetResponse, asset)


@router.get("")
async def list_assets(
    symbol: Optional[str] = Query(None),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    query = select(Asset)
    if symbol:
        query = query.where(Asset.symbol == symbol.strip().upper())
    query = query.order_by(Asset.symbol).limit(min(limit, 100)).offset(offset)

    result = await db.execute(query)
    return [dump(AssetResponse, asset) for asset in result.scalars().all()]


@router.get("/{asset_id}")
async def get_asset_by_id(asset_id: int, db: AsyncSession = Depends(get_db)):
    asset = await get_asset(db, asset_id)
    return dump(AssetResponse, asset)
