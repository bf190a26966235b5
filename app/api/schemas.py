"""Response models shared by the paper-trading routers.

Fields are snake_case in Python and camelCase on the wire.
"""
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.paper_order import OrderSide, OrderStatus, OrderType


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AccountResponse(CamelModel):
    id: int
    user_id: str
    cash_balance: float
    initial_balance: float
    total_equity: float
    total_pnl: float
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AssetResponse(CamelModel):
    id: int
    symbol: str
    name: str
    current_price: Optional[float] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class OrderResponse(CamelModel):
    id: int
    paper_account_id: int
    asset_id: int
    order_type: OrderType
    side: OrderSide
    quantity: int
    status: OrderStatus
    limit_price: Optional[float] = None
    stop_price: Optional[float] = None
    filled_quantity: int
    filled_price: Optional[float] = None
    filled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class HistoryOrderResponse(CamelModel):
    id: int
    asset_id: int
    symbol: str
    name: str
    order_type: OrderType
    side: OrderSide
    quantity: int
    filled_quantity: int
    filled_price: Optional[float] = None
    status: OrderStatus
    filled_at: Optional[datetime] = None
    created_at: datetime


class PositionResponse(CamelModel):
    id: int
    paper_account_id: int
    asset_id: int
    quantity: int
    average_cost: float
    current_price: Optional[float] = None
    multiplier: int
    market_value: float
    unrealized_pnl: float
    realized_pnl: float
    last_updated: datetime


class PortfolioPositionResponse(CamelModel):
    id: int
    asset_id: int
    symbol: str
    name: str
    quantity: int
    average_cost: float
    current_price: float
    multiplier: int
    market_value: float
    unrealized_pnl: float
    realized_pnl: float
    total_pnl: float
    percentage_return: float
    last_updated: datetime


class ExecutedLegResponse(CamelModel):
    order_id: int
    asset_id: int
    symbol: str
    side: OrderSide
    quantity: int
    fill_price: float
    strike_price: Optional[float] = None
    expiration_date: Optional[date] = None
    option_type: Optional[str] = None
    leg_cost: float


def dump(model: type[CamelModel], obj: Any) -> dict:
    """Serialize an ORM row or dataclass to a camelCase JSON-ready dict."""
    return model.model_validate(obj).model_dump(by_alias=True, mode="json")
