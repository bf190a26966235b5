"""Typed failures for the paper-trading engine.

Every failure the engine can report carries a stable machine-readable
``ErrorCode`` and the HTTP status it maps to. The API layer renders them as
``{"error": message, "code": code, **extra}``.
"""
import enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorCode(str, enum.Enum):
    # Request validation
    MISSING_REQUIRED_FIELDS = "MISSING_REQUIRED_FIELDS"
    INVALID_REQUEST_BODY = "INVALID_REQUEST_BODY"
    INVALID_ACCOUNT_ID = "INVALID_ACCOUNT_ID"
    INVALID_ASSET_ID = "INVALID_ASSET_ID"
    INVALID_SPREAD_TYPE = "INVALID_SPREAD_TYPE"
    INVALID_LEG_DATA = "INVALID_LEG_DATA"
    INVALID_ORDER_TYPE = "INVALID_ORDER_TYPE"
    INVALID_SIDE = "INVALID_SIDE"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_MARKET_PRICE = "INVALID_MARKET_PRICE"
    MISSING_LIMIT_PRICE = "MISSING_LIMIT_PRICE"
    INVALID_LIMIT_PRICE = "INVALID_LIMIT_PRICE"
    MISSING_STOP_PRICE = "MISSING_STOP_PRICE"
    INVALID_STOP_PRICE = "INVALID_STOP_PRICE"
    INVALID_INITIAL_BALANCE = "INVALID_INITIAL_BALANCE"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_PARAMETER = "INVALID_PARAMETER"
    INVALID_FILLED_QUANTITY = "INVALID_FILLED_QUANTITY"
    FILLED_QUANTITY_EXCEEDS_QUANTITY = "FILLED_QUANTITY_EXCEEDS_QUANTITY"
    INVALID_AVERAGE_COST = "INVALID_AVERAGE_COST"
    QUANTITY_ZERO = "QUANTITY_ZERO"

    # Lookups
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ASSET_NOT_FOUND = "ASSET_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    POSITION_NOT_FOUND = "POSITION_NOT_FOUND"

    # Business rules
    ACCOUNT_NOT_ACTIVE = "ACCOUNT_NOT_ACTIVE"
    ACCOUNT_ALREADY_EXISTS = "ACCOUNT_ALREADY_EXISTS"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INSUFFICIENT_POSITION = "INSUFFICIENT_POSITION"
    LIMIT_NOT_MET = "LIMIT_NOT_MET"
    STOP_NOT_TRIGGERED = "STOP_NOT_TRIGGERED"
    DUPLICATE_SYMBOL = "DUPLICATE_SYMBOL"
    POSITION_EXISTS = "POSITION_EXISTS"
    ORDER_NOT_OPEN = "ORDER_NOT_OPEN"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class PaperTradingError(Exception):
    """Base class for failures reported to the caller."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, code: ErrorCode, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code.value, **self.extra}


class ValidationFailed(PaperTradingError):
    """Malformed or missing request fields. Raised before any write."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(PaperTradingError):
    status_code = status.HTTP_404_NOT_FOUND


class BusinessRuleViolation(PaperTradingError):
    """Inactive account, insufficient funds, unmet price conditions."""
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(PaperTradingError):
    status_code = status.HTTP_409_CONFLICT
