"""Database models package."""

from app.models.base import Base
from app.models.asset import Asset
from app.models.paper_account import PaperAccount
from app.models.paper_order import PaperOrder, OrderSide, OrderType, OrderStatus
from app.models.paper_position import PaperPosition

__all__ = [
    "Base", "Asset", "PaperAccount", "PaperOrder", "PaperPosition",
    "OrderSide", "OrderType", "OrderStatus",
]
