"""Process-wide logging for the API server and the ingest runner.

Console lines are coloured on request (``logger.info(..., color="green")``),
the log file under ``$ROOT_DIR/logs`` always gets plain text. Timestamps are
rendered in ``TIMEZONE``.
"""

import logging
import logging.config
import os
from datetime import datetime
from logging import Logger

from pytz import timezone

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}

_LEVEL_PREFIXES: dict[int, str] = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
}

# library loggers and their level outside of debug mode
_NOISY_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "pypdf": logging.ERROR,
    "psycopg": logging.WARNING,
}


def _debug_mode() -> bool:
    return os.getenv("LOG_LEVEL", "info").lower() == "debug"


def _level_prefix(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return _LEVEL_PREFIXES[logging.ERROR]
    return _LEVEL_PREFIXES.get(levelno, "")


class CustomFormatter(logging.Formatter):
    """Formats timestamps in a pytz timezone and prefixes warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # a library passed args that do not fit its template
            message = str(record.msg)

        # each handler formats the same record, so never touch the original
        rendered = logging.makeLogRecord(record.__dict__)
        rendered.msg = _level_prefix(record.levelno) + message
        rendered.args = ()
        return super().format(rendered)


class ColoredFormatter(CustomFormatter):
    """Console formatter that wraps a line in ANSI colour when the record carries ``color``.

    Unknown colour names are ignored. Setting ``NO_COLOR`` disables colouring.
    """

    def __init__(self, tz_name, *args, use_color: bool | None = None, **kwargs):
        super().__init__(tz_name, *args, **kwargs)
        self.use_color = ("NO_COLOR" not in os.environ) if use_color is None else use_color

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "")
        if not self.use_color or not ansi or not line:
            return line
        return f"{ansi}{line}{_ANSI_RESET}"


class ColorLogger:
    """Wraps a :class:`logging.Logger` and adds an optional ``color=`` keyword to the log methods.

    Usage::

        logger.info("OK      %s: %d chunk(s)", path, count, color="green")

    Everything else (``setLevel``, ``handlers``, ...) is passed through to the wrapped logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        # keep the caller's frame as the record origin
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.CRITICAL, msg, args, color, kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._log(level, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def _formatter(factory: type[CustomFormatter], tz_name: str) -> dict:
    return {"()": factory, "format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}


def setup_logging() -> ColorLogger:
    """Configure the root logger and return the application logger.

    Reads ``LOG_LEVEL`` (``debug`` or anything else for INFO), ``TIMEZONE`` and ``ROOT_DIR``.
    """
    debug_mode = _debug_mode()
    level = logging.DEBUG if debug_mode else logging.INFO
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": _formatter(CustomFormatter, tz_name),
                "colored": _formatter(ColoredFormatter, tz_name),
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "colored",
                    "level": level,
                    "stream": "ext://sys.stdout",
                },
                "file": {
                    "class": "logging.FileHandler",
                    "formatter": "standard",
                    "level": level,
                    "filename": os.path.join(log_dir, "app.log"),
                    "encoding": "utf-8",
                },
            },
            "root": {"handlers": ["console", "file"], "level": level},
        }
    )

    for name, quiet_level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(logging.DEBUG if debug_mode else quiet_level)

    return ColorLogger(logging.getLogger("doc_rag_bridge"))
