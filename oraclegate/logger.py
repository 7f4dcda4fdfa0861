"""
OracleGate Logging
==================

All package loggers hang below the ``oraclegate`` logger, which is set up
once by the `LogManager` singleton: a rich console handler on stderr and,
when enabled, a size-rotated log file.

Proposal ids and calldata come from arbitrary callers, so every record is
passed through `TerminalSafeFormatter` before it is written anywhere.

Usage:
    >>> from oraclegate.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Module set up")
"""

import logging
import logging.handlers
import os
import re
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FILE_OUTPUT,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)

PACKAGE_LOGGER = "oraclegate"

LOG_FILE_PATH = Path.cwd() / "logs" / "oraclegate.log"

CONSOLE_THEME = Theme({
    "oraclegate.level_critical": "bold red reverse",
    "oraclegate.level_error":    "bold red",
    "oraclegate.level_warning":  "bold yellow",
    "oraclegate.level_info":     "bold green",
    "oraclegate.level_debug":    "bold dim",
    "oraclegate.logger_name":    "magenta",
    "oraclegate.word":           "cyan",
    "oraclegate.address":        "bold cyan",
    "oraclegate.quoted":         "bold magenta",
    "oraclegate.arrow":          "bold yellow",
    "oraclegate.timestamp":      "dim cyan",
})


def _numeric_level(level: Optional[str]) -> int:
    return getattr(logging, str(level or LOG_LEVEL).upper(), logging.INFO)


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that drops ANSI escapes and control characters (CWE-117).

    Tabs and newlines survive; everything else below 0x20, DEL and
    carriage returns is removed so a crafted proposal id cannot forge
    extra log lines or repaint the terminal.
    """

    _escape_re = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
    _control_re = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        return cls._control_re.sub("", cls._escape_re.sub("", text))

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class ModuleLogHighlighter(RegexHighlighter):
    """Colours levels, 32-byte words, addresses and quoted proposal ids."""

    base_style = "oraclegate."
    highlights = [
        r"(?P<timestamp>^\S+ UTC)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"- (?P<logger_name>oraclegate[\w.]*) -",
        r"(?P<word>\b0x[0-9a-fA-F]{64}\b)",
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<quoted>'[^']*')",
        r"(?P<arrow>→)",
    ]


class LogManager:
    """
    Process-wide owner of the ``oraclegate`` logger configuration.

    The first instance is shared by every caller; ``configure`` only has an
    effect the first time it runs. Use ``set_level`` and ``add_file_output``
    to change it afterwards.
    """

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._configured = False
                    cls._instance = instance
        return cls._instance

    @staticmethod
    def _checked_format(log_format: str) -> str:
        """Return *log_format* if a sample record formats cleanly, else the default."""
        fallback = str(LOG_FORMAT.default())
        if not log_format:
            return fallback
        sample = logging.LogRecord(PACKAGE_LOGGER, logging.INFO, "", 0, "sample", (), None)
        try:
            logging.Formatter(fmt=str(log_format)).format(sample)
        except (ValueError, KeyError, TypeError) as e:
            sys.stderr.write(f"oraclegate.logger: bad LOG_FORMAT ({e}), using default\n")
            return fallback
        return str(log_format)

    def _formatter(self) -> TerminalSafeFormatter:
        date_format = str(LOG_DATE_FORMAT) or str(LOG_DATE_FORMAT.default())
        formatter = TerminalSafeFormatter(
            fmt=self._checked_format(LOG_FORMAT),
            datefmt=f"{date_format} UTC",
        )
        formatter.converter = time.gmtime
        return formatter

    @staticmethod
    def _console_handler(highlight: bool) -> logging.Handler:
        if not highlight:
            return logging.StreamHandler(sys.stderr)
        return RichHandler(
            console=Console(theme=CONSOLE_THEME, highlight=False, stderr=True),
            highlighter=ModuleLogHighlighter(),
            keywords=[],
            markup=False,
            rich_tracebacks=True,
            show_time=False,
            show_level=False,
            show_path=False,
        )

    @staticmethod
    def _file_handler(path: Path) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            filename=str(path),
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Attach handlers to the package logger.

        Args:
            log_level: Level name; defaults to LOG_LEVEL from `.env`
            log_file: Rotating log file; defaults to ``logs/oraclegate.log``
            console_output: Log to stderr through rich
            file_output: Log to *log_file*; defaults to LOG_FILE_OUTPUT
        """
        with self._lock:
            if self._configured:
                return

            level = _numeric_level(log_level)
            handlers: List[logging.Handler] = []
            if console_output:
                handlers.append(self._console_handler(bool(LOG_CONSOLE_HIGHLIGHTING)))
            if LOG_FILE_OUTPUT if file_output is None else file_output:
                handlers.append(self._file_handler(log_file or LOG_FILE_PATH))

            package_logger = logging.getLogger(PACKAGE_LOGGER)
            package_logger.handlers.clear()
            package_logger.setLevel(level)
            formatter = self._formatter()
            for handler in handlers:
                handler.setLevel(level)
                handler.setFormatter(formatter)
                package_logger.addHandler(handler)

            self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    def set_level(self, log_level: str) -> None:
        """Change the level of the package logger and all of its handlers."""
        level = _numeric_level(log_level)
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(level)
        for handler in package_logger.handlers:
            handler.setLevel(level)

    def add_file_output(self, log_file: Optional[Path] = None) -> None:
        """Attach a rotating file handler after configuration, once per path."""
        path = Path(os.path.abspath(log_file or LOG_FILE_PATH))
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        with self._lock:
            for handler in package_logger.handlers:
                if isinstance(handler, logging.FileHandler) and handler.baseFilename == str(path):
                    return
            handler = self._file_handler(path)
            handler.setLevel(package_logger.level)
            handler.setFormatter(self._formatter())
            package_logger.addHandler(handler)

    @property
    def is_configured(self) -> bool:
        return self._configured


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Logger for *name*, configuring the package logging on first use."""
    return _manager.get_logger(name)
