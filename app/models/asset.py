"""Asset model for tradable instruments."""

from sqlalchemy import Boolean, Column, Float, String

from app.models.base import Base


class Asset(Base):
    """Instrument reference data. The order engine only reads it."""

    __tablename__ = "assets"

    symbol = Column(
        String(64),
        unique=True,
        nullable=False,
        index=True
    )

    name = Column(
        String(255),
        nullable=False
    )

    current_price = Column(Float, nullable=True)

    is_active = Column(
        Boolean,
        default=True,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Asset(id={self.id}, symbol={self.symbol})>"
