"""
Logging setup for the Energy Forecaster CLI.

``configure_logging(config)`` is called once per CLI invocation, after the
config has been resolved. Library modules only ever do
``log = logging.getLogger(__name__)``.

statsmodels reports convergence problems through the ``warnings`` module.
Warnings raised while a candidate fits are logged by
``backtest.stat_models.logged_fit_warnings`` with the candidate name; any
other warning is captured into the ``py.warnings`` logger, so both land in
the same handlers (and the log file) as everything else.

With ``json_format = true`` each line is one JSON object::

    {"ts": "2024-01-15T01:00:00Z", "level": "WARNING", "logger": "energy_forecaster.backtest.evaluator",
     "msg": "...", "series": "Import", "model": "mstl_arima"}

Keys passed through ``extra=`` (e.g. ``series`` and ``model`` on candidate failures) are
added to the object.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from energy_forecaster.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Chatty at INFO; kept at WARNING whatever the configured level.
NOISY_LOGGERS = ("pyarrow", "lightgbm", "statsmodels", "matplotlib", "numexpr")

_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict = {
            "ts": created.strftime(TIMESTAMP_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(config: "LoggingConfig") -> None:
    """Point the root logger at stdout and, if set, ``config.log_file``.

    Replaces any handlers installed by an earlier call, so commands run
    back to back in one process (``run-all``, tests) do not double-log.

    Args:
        config: The ``[logging]`` section of ``AppConfig``.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = (
        _JsonFormatter()
        if config.json_format
        else logging.Formatter(TEXT_FORMAT, datefmt=TIMESTAMP_FORMAT)
    )
    handlers = [_handler(logging.StreamHandler(sys.stdout), level, formatter)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _handler(logging.FileHandler(log_path, encoding="utf-8"), level, formatter)
        )

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
