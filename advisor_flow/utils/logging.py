"""
Logging setup for advisor-flow.

``configure_logging(config)`` is called once by the CLI before any request is
handled. Library modules only ever do ``logging.getLogger(__name__)``.

Request context
---------------
The Progress API logs with ``extra={"user_id": ..., "advisor_id": ...}``.
With ``json_format = true`` those keys appear as top-level fields, so a log
aggregator can follow one consultation::

    {"ts": "2024-09-15T12:00:00Z", "level": "INFO",
     "logger": "advisor_flow.service.progress",
     "msg": "advance alice/budget_planner option=none -> 25%",
     "user_id": "alice", "advisor_id": "budget_planner"}

The plain-text format ignores extras.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from advisor_flow.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
TS_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_STANDARD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg`` + extras."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict = {
            "ts": ts.strftime(TS_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (k, v) for k, v in record.__dict__.items()
            if k not in _STANDARD_KEYS and not k.startswith("_")
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return _JsonFormatter()
    formatter = logging.Formatter(TEXT_FORMAT, datefmt=TS_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def configure_logging(config: "LoggingConfig") -> None:
    """Install handlers on the root logger according to ``config``.

    Always logs to stdout; also appends to ``config.log_file`` when it is a
    non-empty path (parent directories are created). Replaces any handlers
    installed by an earlier call.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    formatter = _formatter(config.json_format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.getLogger("pyarrow").setLevel(logging.WARNING)
