"""
Structured Logging Configuration
=================================
JSON-formatted logging for API fetches and series reconciliation.

All logs include:
- Timestamp (ISO 8601)
- Log level
- Logger name
- Message
- Extra context (when provided)

Security: bearer tokens are masked before any record is emitted.
"""

import os
import re
import sys
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger


class BearerTokenFilter(logging.Filter):
    """
    Filter that masks credential values in log messages.

    Oura and Withings access tokens travel in Authorization headers and
    query strings, both of which can end up in exception text.
    """

    _BEARER = re.compile(r'(?i)(bearer\s+)([A-Za-z0-9\-_.~+/]+=*)')
    _QUERY_TOKEN = re.compile(r'(?i)(access_token=)([^&\s]+)')
    _OPAQUE = re.compile(r'([A-Za-z0-9]{32,})')

    def filter(self, record: logging.LogRecord) -> bool:
        """Mask sensitive data in log record."""
        if hasattr(record, 'msg') and record.msg:
            record.msg = self.mask(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self.mask(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self.mask(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    @classmethod
    def mask(cls, text: str) -> str:
        """Mask any credential found in text: token_*****xyz"""
        text = cls._BEARER.sub(lambda m: f"{m.group(1)}token_*****{m.group(2)[-3:]}", text)
        text = cls._QUERY_TOKEN.sub(lambda m: f"{m.group(1)}token_*****{m.group(2)[-3:]}", text)
        return cls._OPAQUE.sub(lambda m: f"token_*****{m.group(1)[-3:]}", text)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    Custom JSON formatter with additional context fields.
    """

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ):
        """Add custom fields to each log record."""
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['service'] = 'oura-trends'
        log_record['environment'] = os.getenv('ENVIRONMENT', 'production')

        log_record.pop('levelname', None)
        log_record.pop('name', None)


def setup_logging(
    level: Optional[str] = None,
    json_format: bool = True
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO.
        json_format: Whether to use JSON format. Ignored when ENVIRONMENT=development.
    """
    log_level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    environment = os.getenv('ENVIRONMENT', 'production')
    use_json = json_format and environment != 'development'

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))
    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level, logging.INFO))

    if use_json:
        formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(logger)s %(message)s'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    handler.addFilter(BearerTokenFilter())
    root_logger.addHandler(handler)

    # httpx logs every request URL at INFO, next_token included
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)

    logging.info(
        f"Logging configured: level={log_level}, format={'json' if use_json else 'text'}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the token masking filter.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, BearerTokenFilter) for f in logger.filters):
        logger.addFilter(BearerTokenFilter())

    return logger


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context
) -> None:
    """
    Log a message with additional context fields.

    Example:
        log_with_context(
            logger,
            'info',
            'Collection fetched',
            collection='sleep',
            records=92
        )
    """
    log_method = getattr(logger, level.lower(), logger.info)

    if context:
        context_str = ' '.join(f'{k}={v}' for k, v in context.items())
        full_message = f"{message} | {context_str}"
    else:
        full_message = message

    log_method(full_message, extra=context)
