"""Paper trading account model."""

from sqlalchemy import Boolean, Column, Float, String
from sqlalchemy.orm import relationship

from app.models.base import Base


class PaperAccount(Base):
    """Simulated cash account; root of the equity and P&L invariants."""

    __tablename__ = "paper_trading_accounts"

    user_id = Column(String(255), nullable=False, index=True)

    cash_balance = Column(Float, nullable=False, default=100_000.0)
    initial_balance = Column(Float, nullable=False, default=100_000.0)
    total_equity = Column(Float, nullable=False, default=100_000.0)
    total_pnl = Column(Float, nullable=False, default=0.0)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    positions = relationship(
        "PaperPosition",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    orders = relationship(
        "PaperOrder",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<PaperAccount(id={self.id}, cash={self.cash_balance}, equity={self.total_equity})>"
