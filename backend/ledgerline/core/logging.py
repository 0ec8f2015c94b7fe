"""Logging setup with contextual dimensions.

Every log line can carry structured dimensions (``user_id``,
``idempotency_key``, ``operation`` ...). Outside local environments lines are
emitted as JSON so the log pipeline can index the dimensions directly.

Usage:
    from ledgerline.core.logging import logger

    log = logger.with_context(user_id=str(user_id), operation="topup")
    log.info("Applied topup")
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional

from ledgerline.core.config import settings

_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__.keys()) | {"message"}


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key != "dimensions" and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _DimensionFormatter(logging.Formatter):
    """Human-readable formatter that appends dimensions as ``k=v`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        dims = getattr(record, "dimensions", None)
        if dims:
            pairs = " ".join(f"{k}={v}" for k, v in dims.items())
            return f"{base} [{pairs}]"
        return base


class ContextualLogger(logging.LoggerAdapter):
    """LoggerAdapter that merges bound dimensions into every record."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[Dict[str, Any]] = None):
        """Bind a base logger to a set of dimensions."""
        super().__init__(logger, dict(dimensions or {}))

    @property
    def dimensions(self) -> Dict[str, Any]:
        """Dimensions attached to every record emitted by this adapter."""
        return dict(self.extra)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("dimensions", self.dimensions)
        for key, value in self.extra.items():
            if key not in _RESERVED_ATTRS:
                extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a child logger carrying the current dimensions plus ``dimensions``."""
        merged = {**self.extra, **{k: v for k, v in dimensions.items() if v is not None}}
        return ContextualLogger(self.logger, merged)


class LoggerConfigurator:
    """Configures the process-wide handler once and hands out contextual loggers."""

    _configured = False

    @classmethod
    def _configure_root(cls) -> None:
        if cls._configured:
            return
        handler = logging.StreamHandler(sys.stdout)
        if settings.is_local:
            handler.setFormatter(
                _DimensionFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        else:
            handler.setFormatter(JSONFormatter())

        root = logging.getLogger("ledgerline")
        root.handlers = [handler]
        root.setLevel(settings.LOG_LEVEL.upper())
        root.propagate = False

        # Quiet chatty libraries
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("aiosqlite").setLevel(logging.WARNING)
        logging.getLogger("stripe").setLevel(logging.WARNING)
        cls._configured = True

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Get a contextual logger under the ``ledgerline`` hierarchy.

        Args:
            name: Logger name, usually ``__name__``.
            dimensions: Dimensions bound to every line from this logger.

        Returns:
            A configured ContextualLogger.
        """
        cls._configure_root()
        if not name.startswith("ledgerline"):
            name = f"ledgerline.{name}"
        return ContextualLogger(logging.getLogger(name), dimensions)


logger = LoggerConfigurator.configure_logger(
    "ledgerline", dimensions={"environment": settings.ENVIRONMENT.value}
)
