"""Logging setup, verbosity options and metric help text."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any

# Verbosity levels, as used with V(n).
DEFAULT = 2
VERBOSE = 3
DEBUG = 4
TRACE = 5

ZAP_LOG_LEVEL_FLAG_NAME = "zap-log-level"

# Levels are numbered as verbosity-style levels: 0 info, 1 warn, 2 error,
# and -n for V(n). They map onto the standard library as INFO - n below
# info and INFO + 10 * level above it.
_NAMED_LEVELS = {0: "info", 1: "warn", 2: "error", 3: "dpanic", 4: "panic", 5: "fatal"}
_FLAG_LEVELS = {"debug": -1, "info": 0, "error": 2, "panic": 4}

_STANDARD_RECORD_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

_setup_handler: logging.Handler | None = None


def level_name(level: int) -> str:
    """Return the name written for a level: info, warn, ..., debug or trace."""
    if level >= 0:
        return _NAMED_LEVELS.get(level, f"Level({level})")
    if level == -DEBUG:
        return "debug"
    if level == -TRACE:
        return "trace"
    return "info" if level >= -VERBOSE else "trace"


def _to_python_level(level: int) -> int:
    return logging.INFO + 10 * level if level >= 0 else logging.INFO + level


def _from_python_level(levelno: int) -> int:
    if levelno >= logging.INFO:
        return (levelno - logging.INFO) // 10
    return levelno - logging.INFO


def _int8(value: int) -> int:
    return (value + 128) % 256 - 128


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": level_name(_from_python_level(record.levelno)),
            "ts": record.created,
            "logger": record.name,
            "caller": f"{record.filename}:{record.lineno}",
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_FIELDS:
                entry[key] = value
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def init_setup_logging() -> None:
    """Install a JSON handler on the root logger at info level."""
    global _setup_handler
    root = logging.getLogger()
    if _setup_handler is not None:
        root.removeHandler(_setup_handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root.addHandler(handler)
    root.setLevel(_to_python_level(0))
    _setup_handler = handler


def init_logging(options: LoggingOptions) -> None:
    """Apply the level chosen on the command line to the root logger."""
    if options.zap_level is not None:
        logging.getLogger().setLevel(_to_python_level(options.zap_level))


def help_msg_with_stability(msg: str, stability: Any) -> str:
    """Prefix a metric help message with its stability level."""
    return f"[{stability}] {msg}"


def _parse_zap_level(text: str) -> int:
    lowered = text.lower()
    if lowered in _FLAG_LEVELS:
        return _FLAG_LEVELS[lowered]
    try:
        value = int(lowered)
    except ValueError:
        raise argparse.ArgumentTypeError(f'invalid log level "{text}"') from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f'invalid log level "{text}"')
    return _int8(-value)


@dataclass
class LoggingOptions:
    """Logging settings taken from command-line flags."""

    log_verbosity: int = DEFAULT
    development: bool = True
    zap_level: int | None = None

    def add_flags(self, parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
        """Add -v, --zap-log-level and --zap-devel to the parser."""
        parser.add_argument(
            "-v", "--v", dest="v", type=int, default=self.log_verbosity,
            help="Number for the log level verbosity.",
        )
        parser.add_argument(
            f"--{ZAP_LOG_LEVEL_FLAG_NAME}", dest="zap_log_level", type=_parse_zap_level, default=None,
            help="Log level: 'debug', 'info', 'error', 'panic' or an integer > 0 for more verbosity.",
        )
        parser.add_argument(
            "--zap-devel", dest="zap_devel", action=argparse.BooleanOptionalAction,
            default=self.development, help="Development mode defaults.",
        )
        return parser

    def complete(self, namespace: argparse.Namespace) -> None:
        """Take the parsed flags; derive the level from -v unless it was given explicitly."""
        self.log_verbosity = namespace.v
        self.development = namespace.zap_devel
        if namespace.zap_log_level is None:
            self.zap_level = _int8(-self.log_verbosity)
            namespace.zap_log_level = self.zap_level
        else:
            self.zap_level = namespace.zap_log_level

    def validate(self) -> None:
        """Reset a negative verbosity to the default."""
        if self.log_verbosity < 0:
            self.log_verbosity = DEFAULT