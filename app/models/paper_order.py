"""Paper order model."""
import enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.models.base import Base


class OrderSide(str, enum.Enum):
    """Order side enumeration."""
    BUY = "buy"
    SELL = "sell"


class OrderType(str, enum.Enum):
    """Order type enumeration."""
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"


class OrderStatus(str, enum.Enum):
    """Order status enumeration."""
    PENDING = "pending"
    FILLED = "filled"
    PARTIAL = "partial"
    CANCELED = "canceled"
    REJECTED = "rejected"


class PaperOrder(Base):
    """One simulated order; every leg of a spread is its own order."""

    __tablename__ = "paper_orders"

    paper_account_id = Column(
        Integer,
        ForeignKey("paper_trading_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False, index=True)

    order_type = Column(SQLEnum(OrderType), nullable=False, default=OrderType.MARKET)
    side = Column(SQLEnum(OrderSide), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)

    # Price fields
    limit_price = Column(Float, nullable=True)
    stop_price = Column(Float, nullable=True)
    filled_quantity = Column(Integer, nullable=False, default=0)
    filled_price = Column(Float, nullable=True)

    filled_at = Column(DateTime(timezone=True), nullable=True)

    account = relationship("PaperAccount", back_populates="orders")
