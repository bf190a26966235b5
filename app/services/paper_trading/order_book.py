"""Resting orders: place, update fill bookkeeping, cancel.

These orders are records only. Cash and positions move through the execute
and complex endpoints, never through a status change here.
"""
import logging
from datetime import datetime, UTC

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.paper_order import OrderStatus, PaperOrder
from app.services.paper_trading.errors import BusinessRuleViolation, ErrorCode, ValidationFailed
from app.services.paper_trading.lookups import get_account, get_asset, get_order
from app.services.paper_trading.schemas import OrderUpdateRequest, PendingOrderRequest

logger = logging.getLogger(__name__)

OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PARTIAL)


class OrderBookService:
    async def place(self, db: AsyncSession, request: PendingOrderRequest) -> PaperOrder:
        account = await get_account(db, request.paper_account_id, require_active=True)
        asset = await get_asset(db, request.asset_id)

        order = PaperOrder(
            paper_account_id=account.id,
            asset_id=asset.id,
            order_type=request.order_type,
            side=request.side,
            quantity=request.quantity,
            limit_price=request.limit_price,
            stop_price=request.stop_price,
            status=OrderStatus.PENDING,
            filled_quantity=0,
        )
        db.add(order)
        await db.flush()

        logger.info(
            f"Order placed: id={order.id} account={account.id} {request.side.value} "
            f"{request.quantity} {asset.symbol} {request.order_type.value}"
        )
        return order

    async def update(self, db: AsyncSession, order_id: int, changes: OrderUpdateRequest) -> PaperOrder:
        """Apply the fields the caller sent. Filled, canceled and rejected orders are final."""
        order = await get_order(db, order_id, for_update=True)
        if order.status not in OPEN_STATUSES:
            raise BusinessRuleViolation(
                ErrorCode.ORDER_NOT_OPEN,
                f"Order {order_id} is {order.status.value} and can no longer be modified",
            )

        provided = changes.model_fields_set
        if "filled_quantity" in provided and changes.filled_quantity > order.quantity:
            raise ValidationFailed(
                ErrorCode.FILLED_QUANTITY_EXCEEDS_QUANTITY,
                "filledQuantity cannot exceed order quantity",
            )

        for name in ("status", "filled_quantity", "filled_price", "filled_at", "limit_price", "stop_price"):
            if name in provided:
                setattr(order, name, getattr(changes, name))

        if order.status == OrderStatus.FILLED and order.filled_at is None:
            order.filled_at = datetime.now(UTC)
        order.updated_at = datetime.now(UTC)
        await db.flush()

        logger.info(f"Order updated: id={order.id} status={order.status.value} filled={order.filled_quantity}")
        return order

    async def cancel(self, db: AsyncSession, order_id: int) -> PaperOrder:
        order = await get_order(db, order_id, for_update=True)
        if order.status not in OPEN_STATUSES:
            raise BusinessRuleViolation(
                ErrorCode.ORDER_NOT_OPEN,
                f"Order {order_id} is {order.status.value} and cannot be canceled",
            )

        order.status = OrderStatus.CANCELED
        order.updated_at = datetime.now(UTC)
        await db.flush()

        logger.info(f"Order canceled: id={order.id} account={order.paper_account_id}")
        return order
