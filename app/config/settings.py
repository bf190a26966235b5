from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    APP_NAME: str = "Options Desk"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    DATABASE_URL: Optional[str] = None
    AUTO_CREATE_TABLES: bool = False

    CORS_ORIGINS: str = "*"

    # Option pricing assumptions
    CONTRACT_MULTIPLIER: int = 100
    DEFAULT_UNDERLYING_PRICE: float = 100.0
    DEFAULT_DAYS_TO_EXPIRY: int = 30
    DEFAULT_VOLATILITY: float = 0.30
    TIME_VALUE_FACTOR: float = 0.4

    # Fill simulation
    OPTION_SLIPPAGE: float = 0.01
    MARKET_SLIPPAGE: float = 0.001
    STOP_SLIPPAGE: float = 0.0015

    # Account rules
    ALLOW_SHORT_OPEN: bool = False
    MIN_INITIAL_BALANCE: float = 1_000.0
    MAX_INITIAL_BALANCE: float = 10_000_000.0
    COMMISSION_PER_TRADE: float = 0.50


@lru_cache()
def get_settings() -> Settings:
    return Settings()
