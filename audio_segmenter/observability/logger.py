"""Structured JSON logging for services embedding the segmenter.

Every record becomes one JSON object per line. Any attribute passed via
``extra`` (or bound with bind()) is copied into the object, so callers
can attach operation, stage, or count fields without a fixed schema.
"""

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came from ``extra``
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class StructuredJsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        entry: dict[str, object] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS and value is not None:
                entry[key] = value

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
            entry["exception_type"] = type(record.exc_info[1]).__name__

        return json.dumps(entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges bound context with per-call ``extra``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def bind(logger: logging.Logger, **context: object) -> ContextAdapter:
    """Return an adapter that adds ``context`` to every record it emits."""
    return ContextAdapter(logger, context)


def get_logger(name: str, level: int | str = logging.DEBUG) -> logging.Logger:
    """Return a logger that writes structured JSON to stdout.

    Repeated calls with the same name reuse the existing handler.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredJsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger


def setup_logging(level: int | str = logging.INFO) -> None:
    """Install a JSON stdout handler on the root logger once."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h.formatter, StructuredJsonFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    root.addHandler(handler)
