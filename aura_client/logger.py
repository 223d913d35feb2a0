"""
Leveled logger used by the Aura API client

Any object with debugf/infof/warnf/errorf methods can be passed in as a
custom logging sink through ClientConfig.logger.
"""

import json
import os
import sys
from typing import Any, Protocol, TextIO

DEBUG_ENV_VAR = "AURA_CLIENT_DEBUG"
SPECIFIERS = ("%+v", "%s", "%v", "%d")


class LogSink(Protocol):
    def debugf(self, format_str: str, *args: Any) -> None: ...

    def infof(self, format_str: str, *args: Any) -> None: ...

    def warnf(self, format_str: str, *args: Any) -> None: ...

    def errorf(self, format_str: str, *args: Any) -> None: ...


class Logger:
    """Logger with debug, info, warn, and error levels"""

    def __init__(
        self,
        debug: bool | None = None,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        if debug is None:
            debug = os.environ.get(DEBUG_ENV_VAR, "").lower() == "true"
        self._debug_enabled = debug
        self._out = out
        self._err = err

    def debugf(self, format_str: str, *args: Any) -> None:
        """Log debug message if debug logging is enabled"""
        if self._debug_enabled:
            self._write(self._out or sys.stdout, "DEBUG", format_str, args)

    def infof(self, format_str: str, *args: Any) -> None:
        self._write(self._out or sys.stdout, "INFO", format_str, args)

    def warnf(self, format_str: str, *args: Any) -> None:
        self._write(self._err or sys.stderr, "WARN", format_str, args)

    def errorf(self, format_str: str, *args: Any) -> None:
        self._write(self._err or sys.stderr, "ERROR", format_str, args)

    def _write(self, stream: TextIO, level: str, format_str: str, args: tuple[Any, ...]) -> None:
        print(f"[{level}] {format_message(format_str, *args)}", file=stream)


def format_message(format_str: str, *args: Any) -> str:
    """Substitute Go-style specifiers (%s, %v, %d, %+v) in order of appearance"""
    message = format_str
    start = 0
    for arg in args:
        if isinstance(arg, (dict, list)):
            try:
                value = json.dumps(arg)
            except (TypeError, ValueError):
                value = json.dumps(arg, default=str)
        else:
            value = str(arg)

        # The earliest specifier after the previous substitution gets the next argument
        positions = [(message.find(specifier, start), specifier) for specifier in SPECIFIERS]
        positions = [(pos, specifier) for pos, specifier in positions if pos >= 0]
        if not positions:
            break
        pos, specifier = min(positions)
        message = message[:pos] + value + message[pos + len(specifier) :]
        start = pos + len(value)

    return message


def new_logger() -> Logger:
    """Create a new Logger instance"""
    return Logger()
