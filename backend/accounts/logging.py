"""Logging setup for the accounts service.

structlog events are handed to the stdlib root logger, so uvicorn, urllib3
and the service share one set of handlers and one format. Credentials are
blanked by ``redact_secrets`` before any handler renders them.

LOG_FORMAT picks "console" (default) or "json" rendering; LOG_LEVEL sets the
root level (default INFO).
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FORMATS = ("console", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# The minio client logs every request through urllib3.
QUIET_LOGGERS = ("urllib3",)

# Event keys whose values must never reach a log sink.
SENSITIVE_KEYS = frozenset({"password", "password_hash", "token", "session_token", "token_secret"})
REDACTED = "[redacted]"


def redact_secrets(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Replace credential-bearing values with a placeholder."""
    for key in event_dict.keys() & SENSITIVE_KEYS:
        event_dict[key] = REDACTED
    return event_dict


# Event processors shared by setup_logging and the test configuration.
SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    redact_secrets,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def configure_structlog() -> None:
    """Route structlog events into stdlib logging; rendering happens per handler."""
    structlog.configure(
        processors=[*SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def _running_under_pytest() -> bool:
    return "pytest" in sys.modules


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = os.environ.get(name, "").strip() or default
    for choice in choices:
        if raw.casefold() == choice.casefold():
            return choice
    msg = f"Invalid {name}={raw!r}. Expected one of: {', '.join(choices)}."
    raise ValueError(msg)


def _handler(handler: logging.Handler, *, json_mode: bool, colors: bool) -> logging.Handler:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        ),
    )
    return handler


def setup_logging(log_dir: Path | str | None = None, level: int | None = None) -> Path | None:
    """Configure logging to stdout and, outside tests, to a timestamped file in ``log_dir``.

    Returns the log file path when one was opened.
    """
    json_mode = _env_choice("LOG_FORMAT", LOG_FORMATS, "console") == "json"
    if level is None:
        level = logging.getLevelNamesMapping()[_env_choice("LOG_LEVEL", LOG_LEVELS, "INFO")]

    configure_structlog()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.addHandler(_handler(logging.StreamHandler(sys.stdout), json_mode=json_mode, colors=sys.stdout.isatty()))

    if log_dir is None or _running_under_pytest():
        return None
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / f"{datetime.now(tz=UTC):%Y-%m-%d_%H-%M-%S}.log"
    root.addHandler(_handler(logging.FileHandler(log_file), json_mode=json_mode, colors=False))
    return log_file
