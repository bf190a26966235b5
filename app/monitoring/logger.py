"""Logging configuration with structured JSON output and domain loggers."""

import logging
import logging.config
import sys
from datetime import datetime, UTC
from typing import Dict, Any, Optional
from pathlib import Path

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "options-desk"
SERVICE_VERSION = "0.1.0"


class StructuredFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(UTC).isoformat()
        log_record['service'] = SERVICE_NAME
        log_record['version'] = SERVICE_VERSION

        # Request context if available
        if hasattr(record, 'request_id'):
            log_record['request_id'] = record.request_id
        if hasattr(record, 'account_id'):
            log_record['account_id'] = record.account_id

        if hasattr(record, 'duration'):
            log_record['duration'] = record.duration
        if hasattr(record, 'status_code'):
            log_record['status_code'] = record.status_code


class PerformanceLogger:
    """Logger for request timing."""

    def __init__(self, logger_name: str = "performance"):
        self.logger = logging.getLogger(logger_name)

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration: float,
        request_id: Optional[str] = None,
        **extra_fields
    ):
        """Log request performance metrics."""
        extra = {
            'event_type': 'request',
            'method': method,
            'path': path,
            'status_code': status_code,
            'duration': duration,
            'request_id': request_id,
            **extra_fields
        }

        # Level follows latency
        if duration > 5.0:
            level = logging.ERROR
            message = f"Very slow request: {method} {path} took {duration:.2f}s"
        elif duration > 2.0:
            level = logging.WARNING
            message = f"Slow request: {method} {path} took {duration:.2f}s"
        elif duration > 1.0:
            level = logging.INFO
            message = f"Request: {method} {path} took {duration:.2f}s"
        else:
            level = logging.DEBUG
            message = f"Request: {method} {path} took {duration:.2f}s"

        self.logger.log(level, message, extra=extra)


class BusinessLogger:
    """Logger for paper-trading business events."""

    def __init__(self, logger_name: str = "business"):
        self.logger = logging.getLogger(logger_name)

    def log_order_fill(
        self,
        account_id: int,
        order_id: int,
        symbol: str,
        side: str,
        quantity: int,
        price: float,
        multiplier: int = 1,
        **extra_fields
    ):
        """Log a simulated fill."""
        extra = {
            'event_type': 'order_fill',
            'account_id': account_id,
            'order_id': order_id,
            'symbol': symbol,
            'side': side,
            'quantity': quantity,
            'price': price,
            'fill_value': quantity * price * multiplier,
            **extra_fields
        }

        message = f"Order {order_id} filled: {side} {quantity} {symbol} @ {price:.4f} for account {account_id}"
        self.logger.info(message, extra=extra)

    def log_spread_execution(
        self,
        account_id: int,
        spread_type: str,
        underlying_symbol: str,
        leg_count: int,
        net_cost: float,
        is_debit: bool,
        **extra_fields
    ):
        """Log a completed multi-leg order."""
        extra = {
            'event_type': 'spread_execution',
            'account_id': account_id,
            'spread_type': spread_type,
            'underlying_symbol': underlying_symbol,
            'leg_count': leg_count,
            'net_cost': net_cost,
            'is_debit': is_debit,
            **extra_fields
        }

        kind = "debit" if is_debit else "credit"
        message = (
            f"{spread_type} on {underlying_symbol} executed for account {account_id}: "
            f"{leg_count} legs, net {kind} {abs(net_cost):.2f}"
        )
        self.logger.info(message, extra=extra)

    def log_order_rejected(
        self,
        account_id: int,
        code: str,
        reason: str,
        **extra_fields
    ):
        """Log an order refused by a business rule."""
        extra = {
            'event_type': 'order_rejected',
            'account_id': account_id,
            'code': code,
            **extra_fields
        }

        self.logger.warning(f"Order rejected for account {account_id} ({code}): {reason}", extra=extra)

    def log_account_update(
        self,
        account_id: int,
        cash_balance: float,
        total_equity: float,
        total_pnl: float,
        **extra_fields
    ):
        """Log account balance recomputation."""
        extra = {
            'event_type': 'account_update',
            'account_id': account_id,
            'cash_balance': cash_balance,
            'total_equity': total_equity,
            'total_pnl': total_pnl,
            **extra_fields
        }

        message = f"Account {account_id} updated: cash={cash_balance:.2f}, equity={total_equity:.2f}, pnl={total_pnl:.2f}"
        self.logger.info(message, extra=extra)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_json_logging: bool = True
) -> Dict[str, Any]:
    """Setup logging configuration."""

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'json': {
                '()': StructuredFormatter,
                'format': '%(asctime)s %(name)s %(levelname)s %(message)s'
            }
        },
        'handlers': {
            'console': {
                'level': log_level,
                'class': 'logging.StreamHandler',
                'stream': sys.stdout,
                'formatter': 'json' if enable_json_logging else 'standard'
            }
        },
        'loggers': {
            '': {  # Root logger
                'handlers': ['console'],
                'level': log_level,
                'propagate': False
            },
            'uvicorn': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False
            },
            'sqlalchemy': {
                'handlers': ['console'],
                'level': 'WARNING',
                'propagate': False
            },
            'performance': {
                'handlers': ['console'],
                'level': 'DEBUG',
                'propagate': False
            },
            'business': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False
            }
        }
    }

    if log_file:
        config['handlers']['file'] = {
            'level': log_level,
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': log_file,
            'maxBytes': 10 * 1024 * 1024,  # 10MB
            'backupCount': 5,
            'formatter': 'json' if enable_json_logging else 'standard'
        }

        for logger_config in config['loggers'].values():
            logger_config['handlers'].append('file')

    logging.config.dictConfig(config)

    return {
        'performance': PerformanceLogger(),
        'business': BusinessLogger(),
        'main': logging.getLogger('options_desk')
    }


def get_performance_logger() -> PerformanceLogger:
    """Get performance logger."""
    return PerformanceLogger()
