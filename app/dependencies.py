"""Application dependencies for dependency injection."""

import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from app.config.settings import Settings
from app.monitoring.logger import BusinessLogger


@dataclass
class AppContext:
    """Per-process collaborators, built once at startup and stored on app.state."""
    settings: Settings
    engine: Optional[AsyncEngine] = None
    session_factory: Optional[async_sessionmaker] = None
    loggers: Dict[str, object] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)

    @property
    def business_logger(self) -> BusinessLogger:
        logger = self.loggers.get("business")
        if logger is None:
            logger = BusinessLogger()
            self.loggers["business"] = logger
        return logger


def get_context(request: Request) -> AppContext:
    """Get the application context."""
    return request.app.state.context
