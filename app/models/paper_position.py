"""Paper position model."""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from app.models.base import Base, utcnow


class PaperPosition(Base):
    """Open holding of one asset in one paper account."""

    __tablename__ = "paper_positions"
    __table_args__ = (
        UniqueConstraint("paper_account_id", "asset_id", name="uq_paper_positions_account_asset"),
    )

    paper_account_id = Column(
        Integer,
        ForeignKey("paper_trading_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)  # Positive for long, negative for short
    average_cost = Column(Float, nullable=False)
    current_price = Column(Float, nullable=True)
    multiplier = Column(Integer, nullable=False, default=1)  # 100 for option contracts

    # P&L fields
    unrealized_pnl = Column(Float, nullable=False, default=0.0)
    realized_pnl = Column(Float, nullable=False, default=0.0)

    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    account = relationship("PaperAccount", back_populates="positions")

    @property
    def valuation_price(self) -> float:
        return self.current_price or self.average_cost

    @property
    def market_value(self) -> float:
        return self.valuation_price * self.quantity * self.multiplier
