"""Validated input types for paper-trading orders.

Raw JSON bodies are checked field by field so each failure maps to its own
error code, then parsed into strict Pydantic models before any business logic
runs.
"""
import enum
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.models.paper_order import OrderSide, OrderStatus, OrderType
from app.services.paper_trading.errors import ErrorCode, ValidationFailed


class SpreadType(str, enum.Enum):
    STRADDLE = "straddle"
    STRANGLE = "strangle"
    CALENDAR = "calendar"
    IRON_CONDOR = "iron_condor"
    BUTTERFLY = "butterfly"
    VERTICAL = "vertical"


class OptionType(str, enum.Enum):
    CALL = "call"
    PUT = "put"


class SpreadLegRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    asset_id: int = Field(..., alias="assetId", gt=0)
    side: OrderSide
    quantity: int = Field(..., gt=0)
    strike_price: Optional[float] = Field(None, alias="strikePrice", gt=0, allow_inf_nan=False)
    expiration_date: Optional[date] = Field(None, alias="expirationDate")
    option_type: Optional[OptionType] = Field(None, alias="optionType")

    @field_validator("expiration_date", mode="before")
    @classmethod
    def expiration_to_date(cls, value: Any) -> Any:
        """Accept full ISO timestamps (e.g. ``2026-11-18T19:41:30.535Z``) and keep the day."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            try:
                return datetime.fromisoformat(value).date()
            except ValueError:
                return value
        return value


class ComplexOrderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    paper_account_id: int = Field(..., alias="paperAccountId", gt=0)
    spread_type: SpreadType = Field(..., alias="spreadType")
    underlying_symbol: str = Field(..., alias="underlyingSymbol", min_length=1)
    legs: List[SpreadLegRequest] = Field(..., min_length=1)
    market_price: Optional[float] = Field(None, alias="marketPrice", gt=0, allow_inf_nan=False)


class PendingOrderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    paper_account_id: int = Field(..., alias="paperAccountId", gt=0)
    asset_id: int = Field(..., alias="assetId", gt=0)
    order_type: OrderType = Field(..., alias="orderType")
    side: OrderSide
    quantity: int = Field(..., gt=0)
    limit_price: Optional[float] = Field(None, alias="limitPrice", gt=0)
    stop_price: Optional[float] = Field(None, alias="stopPrice", gt=0)


class ExecuteOrderRequest(PendingOrderRequest):
    market_price: float = Field(..., alias="marketPrice", gt=0)


class OrderUpdateRequest(BaseModel):
    """Status and fill bookkeeping for a resting order; unset fields are left alone."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status: Optional[OrderStatus] = None
    filled_quantity: Optional[int] = Field(None, alias="filledQuantity", ge=0)
    filled_price: Optional[float] = Field(None, alias="filledPrice", gt=0, allow_inf_nan=False)
    filled_at: Optional[datetime] = Field(None, alias="filledAt")
    limit_price: Optional[float] = Field(None, alias="limitPrice", gt=0, allow_inf_nan=False)
    stop_price: Optional[float] = Field(None, alias="stopPrice", gt=0, allow_inf_nan=False)


class PositionCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    paper_account_id: int = Field(..., alias="paperAccountId", gt=0)
    asset_id: int = Field(..., alias="assetId", gt=0)
    quantity: int
    average_cost: float = Field(..., alias="averageCost", gt=0, allow_inf_nan=False)
    current_price: Optional[float] = Field(None, alias="currentPrice", gt=0, allow_inf_nan=False)
    multiplier: int = Field(1, ge=1)


class PositionUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    quantity: Optional[int] = None
    average_cost: Optional[float] = Field(None, alias="averageCost", gt=0, allow_inf_nan=False)
    current_price: Optional[float] = Field(None, alias="currentPrice", gt=0, allow_inf_nan=False)
    unrealized_pnl: Optional[float] = Field(None, alias="unrealizedPnl", allow_inf_nan=False)
    realized_pnl: Optional[float] = Field(None, alias="realizedPnl", allow_inf_nan=False)


COMPLEX_ORDER_FIELDS = {"paperAccountId", "spreadType", "underlyingSymbol", "legs", "marketPrice"}
ORDER_REQUIRED_FIELDS = ("paperAccountId", "assetId", "orderType", "side", "quantity")
PENDING_ORDER_FIELDS = set(ORDER_REQUIRED_FIELDS) | {"limitPrice", "stopPrice"}
EXECUTE_ORDER_FIELDS = PENDING_ORDER_FIELDS | {"marketPrice"}
ORDER_UPDATE_FIELDS = {"status", "filledQuantity", "filledPrice", "filledAt", "limitPrice", "stopPrice"}
POSITION_FIELDS = {"paperAccountId", "assetId", "quantity", "averageCost", "currentPrice", "multiplier"}
POSITION_UPDATE_FIELDS = {"quantity", "averageCost", "currentPrice", "unrealizedPnl", "realizedPnl"}


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value is False


def parse_positive_int(value: Any) -> Optional[int]:
    """Integer > 0 from an int, an integral float or a digit string; else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and value > 0:
            return int(value)
        return None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def parse_int(value: Any) -> Optional[int]:
    """Signed integer from an int, an integral float or an integer string; else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def parse_non_negative_int(value: Any) -> Optional[int]:
    parsed = parse_int(value)
    return parsed if parsed is not None and parsed >= 0 else None


def parse_positive_number(value: Any) -> Optional[float]:
    """Finite number > 0 from a number or numeric string; else None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed) or parsed <= 0:
        return None
    return parsed


def _reject_unknown_fields(body: Dict[str, Any], allowed: set) -> None:
    unknown = sorted(set(body) - allowed)
    if unknown:
        raise ValidationFailed(
            ErrorCode.INVALID_REQUEST_BODY,
            f"Unknown fields: {', '.join(unknown)}",
        )


def parse_complex_order(body: Dict[str, Any]) -> ComplexOrderRequest:
    """Validate a multi-leg order body in the order the checks are documented."""
    if not isinstance(body, dict):
        raise ValidationFailed(ErrorCode.INVALID_REQUEST_BODY, "Request body must be a JSON object")

    legs = body.get("legs")
    if (
        _is_blank(body.get("paperAccountId"))
        or _is_blank(body.get("spreadType"))
        or _is_blank(body.get("underlyingSymbol"))
        or not isinstance(legs, list)
        or len(legs) == 0
    ):
        raise ValidationFailed(
            ErrorCode.MISSING_REQUIRED_FIELDS,
            "Missing required fields: paperAccountId, spreadType, underlyingSymbol, legs (array)",
        )

    account_id = parse_positive_int(body["paperAccountId"])
    if account_id is None:
        raise ValidationFailed(ErrorCode.INVALID_ACCOUNT_ID, "paperAccountId must be a valid positive integer")

    valid_spreads = [spread.value for spread in SpreadType]
    if body["spreadType"] not in valid_spreads:
        raise ValidationFailed(
            ErrorCode.INVALID_SPREAD_TYPE,
            f"spreadType must be one of: {', '.join(valid_spreads)}",
        )

    _reject_unknown_fields(body, COMPLEX_ORDER_FIELDS)

    for leg in legs:
        if not isinstance(leg, dict) or any(_is_blank(leg.get(key)) for key in ("assetId", "side", "quantity")):
            raise ValidationFailed(ErrorCode.INVALID_LEG_DATA, "Each leg must have assetId, side, and quantity")

    try:
        return ComplexOrderRequest.model_validate({**body, "paperAccountId": account_id})
    except ValidationError as e:
        error = e.errors()[0]
        location = error["loc"][0] if error["loc"] else None
        if location == "legs":
            raise ValidationFailed(ErrorCode.INVALID_LEG_DATA, f"Invalid leg: {error['msg']}") from e
        if location == "marketPrice":
            raise ValidationFailed(ErrorCode.INVALID_MARKET_PRICE, "marketPrice must be a positive number") from e
        raise ValidationFailed(ErrorCode.INVALID_REQUEST_BODY, f"Invalid {location}: {error['msg']}") from e


def _parse_order_fields(body: Dict[str, Any], with_market_price: bool) -> Dict[str, Any]:
    """Shared checks for order bodies; returns parsed keyword arguments."""
    if not isinstance(body, dict):
        raise ValidationFailed(ErrorCode.INVALID_REQUEST_BODY, "Request body must be a JSON object")

    required = ORDER_REQUIRED_FIELDS + (("marketPrice",) if with_market_price else ())
    if any(_is_blank(body.get(key)) for key in required):
        raise ValidationFailed(
            ErrorCode.MISSING_REQUIRED_FIELDS,
            f"Missing required fields: {', '.join(required)}",
        )

    _reject_unknown_fields(body, EXECUTE_ORDER_FIELDS if with_market_price else PENDING_ORDER_FIELDS)

    account_id = parse_positive_int(body["paperAccountId"])
    if account_id is None:
        raise ValidationFailed(ErrorCode.INVALID_ACCOUNT_ID, "paperAccountId must be a valid positive integer")

    asset_id = parse_positive_int(body["assetId"])
    if asset_id is None:
        raise ValidationFailed(ErrorCode.INVALID_ASSET_ID, "assetId must be a valid positive integer")

    order_types = [order_type.value for order_type in OrderType]
    if body["orderType"] not in order_types:
        raise ValidationFailed(ErrorCode.INVALID_ORDER_TYPE, f"orderType must be one of: {', '.join(order_types)}")

    if body["side"] not in (OrderSide.BUY.value, OrderSide.SELL.value):
        raise ValidationFailed(ErrorCode.INVALID_SIDE, "side must be 'buy' or 'sell'")

    quantity = parse_positive_int(body["quantity"])
    if quantity is None:
        raise ValidationFailed(ErrorCode.INVALID_QUANTITY, "quantity must be a positive integer")

    fields: Dict[str, Any] = {
        "paper_account_id": account_id,
        "asset_id": asset_id,
        "order_type": OrderType(body["orderType"]),
        "side": OrderSide(body["side"]),
        "quantity": quantity,
    }

    if with_market_price:
        market_price = parse_positive_number(body["marketPrice"])
        if market_price is None:
            raise ValidationFailed(ErrorCode.INVALID_MARKET_PRICE, "marketPrice must be a positive number")
        fields["market_price"] = market_price

    fields["limit_price"] = None
    if body["orderType"] == OrderType.LIMIT.value:
        if _is_blank(body.get("limitPrice")):
            raise ValidationFailed(ErrorCode.MISSING_LIMIT_PRICE, "limitPrice is required for limit orders")
        fields["limit_price"] = parse_positive_number(body["limitPrice"])
        if fields["limit_price"] is None:
            raise ValidationFailed(ErrorCode.INVALID_LIMIT_PRICE, "limitPrice must be a positive number")

    fields["stop_price"] = None
    if body["orderType"] == OrderType.STOP.value:
        if _is_blank(body.get("stopPrice")):
            raise ValidationFailed(ErrorCode.MISSING_STOP_PRICE, "stopPrice is required for stop orders")
        fields["stop_price"] = parse_positive_number(body["stopPrice"])
        if fields["stop_price"] is None:
            raise ValidationFailed(ErrorCode.INVALID_STOP_PRICE, "stopPrice must be a positive number")

    return fields


def parse_execute_order(body: Dict[str, Any]) -> ExecuteOrderRequest:
    """Validate a single-asset order body."""
    return ExecuteOrderRequest(**_parse_order_fields(body, with_market_price=True))


def parse_pending_order(body: Dict[str, Any]) -> PendingOrderRequest:
    """Validate a resting order body. No market price: nothing is filled yet."""
    return PendingOrderRequest(**_parse_order_fields(body, with_market_price=False))


def _validate(model: type[BaseModel], data: Dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        location = error["loc"][0] if error["loc"] else "request"
        raise ValidationFailed(ErrorCode.INVALID_REQUEST_BODY, f"Invalid {location}: {error['msg']}") from e


def parse_order_update(body: Dict[str, Any]) -> OrderUpdateRequest:
    if not isinstance(body, dict):
        raise ValidationFailed(ErrorCode.INVALID_REQUEST_BODY, "Request body must be a JSON object")

    _reject_unknown_fields(body, ORDER_UPDATE_FIELDS)

    statuses = [s.value for s in OrderStatus]
    if "status" in body and body["status"] not in statuses:
        raise ValidationFailed(ErrorCode.INVALID_STATUS, f"Invalid status. Must be one of: {', '.join(statuses)}")

    data = dict(body)
    if "filledQuantity" in body:
        filled = parse_non_negative_int(body["filledQuantity"])
        if filled is None:
            raise ValidationFailed(
                ErrorCode.INVALID_FILLED_QUANTITY,
                "filledQuantity must be a non-negative integer",
            )
        data["filledQuantity"] = filled

    return _validate(OrderUpdateRequest, data)


def _parse_position_quantity(value: Any) -> int:
    quantity = parse_int(value)
    if quantity is None:
        raise ValidationFailed(ErrorCode.INVALID_QUANTITY, "quantity must be a valid integer")
    if quantity == 0:
        raise ValidationFailed(ErrorCode.QUANTITY_ZERO, "quantity must be non-zero")
    return quantity


def _parse_average_cost(value: Any) -> float:
    average_cost = parse_positive_number(value)
    if average_cost is None:
        raise ValidationFailed(ErrorCode.INVALID_AVERAGE_COST, "averageCost must be a positive number")
    return average_cost


def parse_position_create(body: Dict[str, Any]) -> PositionCreateRequest:
    """Validate a manually entered position. Quantity is signed: negative is short."""
    if not isinstance(body, dict):
        raise ValidationFailed(ErrorCode.INVALID_REQUEST_BODY, "Request body must be a JSON object")

    required = ("paperAccountId", "assetId", "quantity", "averageCost")
    if any(_is_blank(body.get(key)) for key in required):
        raise ValidationFailed(
            ErrorCode.MISSING_REQUIRED_FIELDS,
            f"Missing required fields: {', '.join(required)}",
        )

    _reject_unknown_fields(body, POSITION_FIELDS)

    account_id = parse_positive_int(body["paperAccountId"])
    if account_id is None:
        raise ValidationFailed(ErrorCode.INVALID_ACCOUNT_ID, "paperAccountId must be a valid positive integer")

    asset_id = parse_positive_int(body["assetId"])
    if asset_id is None:
        raise ValidationFailed(ErrorCode.INVALID_ASSET_ID, "assetId must be a valid positive integer")

    data = {
        **body,
        "paperAccountId": account_id,
        "assetId": asset_id,
        "quantity": _parse_position_quantity(body["quantity"]),
        "averageCost": _parse_average_cost(body["averageCost"]),
    }
    return _validate(PositionCreateRequest, data)


def parse_position_update(body: Dict[str, Any]) -> PositionUpdateRequest:
    if not isinstance(body, dict):
        raise ValidationFailed(ErrorCode.INVALID_REQUEST_BODY, "Request body must be a JSON object")

    _reject_unknown_fields(body, POSITION_UPDATE_FIELDS)

    data = dict(body)
    if body.get("quantity") is not None:
        data["quantity"] = _parse_position_quantity(body["quantity"])
    if body.get("averageCost") is not None:
        data["averageCost"] = _parse_average_cost(body["averageCost"])

    return _validate(PositionUpdateRequest, data)


def parse_status_filter(value: Optional[str]) -> Optional[OrderStatus]:
    if value is None:
        return None
    statuses = [s.value for s in OrderStatus]
    if value not in statuses:
        raise ValidationFailed(ErrorCode.INVALID_STATUS, f"Invalid status. Must be one of: {', '.join(statuses)}")
    return OrderStatus(value)


def parse_side_filter(value: Optional[str]) -> Optional[OrderSide]:
    if value is None:
        return None
    if value not in (OrderSide.BUY.value, OrderSide.SELL.value):
        raise ValidationFailed(ErrorCode.INVALID_SIDE, "side must be 'buy' or 'sell'")
    return OrderSide(value)
