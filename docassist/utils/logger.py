"""
Logging setup for the document assistant.

Console output is colored (or JSON when structured logging is requested); file
output goes to a rotating ``app.log`` with errors duplicated into ``error.log``.
``setup_logging`` is called once when the application starts; modules obtain
their logger with ``get_logger(__name__)``.
"""

import copy
import json
import logging
import logging.handlers
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'message',
}

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m'
    }

    def format(self, record):
        # other handlers share the record
        record = copy.copy(record)
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, extra fields included."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, ensure_ascii=False, default=str)


@dataclass
class LogOptions:
    level: int = logging.INFO
    console: bool = True
    file: bool = False
    json_format: bool = False
    log_file: str = 'app.log'
    error_file: str = 'error.log'
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 5


class LoggerConfig:
    """Holds the active logging configuration for the process."""

    def __init__(self, log_dir: str = "logs"):
        self.log_dir = Path(log_dir)
        self.options = LogOptions()

    def _formatter(self, with_location: bool = False, colored: bool = False) -> logging.Formatter:
        if self.options.json_format:
            return JSONFormatter()
        fmt = DEFAULT_FORMAT + ('\n%(pathname)s:%(lineno)d' if with_location else '')
        cls = ColoredFormatter if colored else logging.Formatter
        return cls(fmt, datefmt=DATE_FORMAT)

    def _rotating(self, file_name: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / file_name,
            maxBytes=self.options.max_file_size,
            backupCount=self.options.backup_count,
        )
        handler.setLevel(level)
        return handler

    def configure(self, level: str = 'INFO', console: bool = True, file: bool = True,
                  json_format: bool = False, log_file: Optional[str] = None,
                  error_file: Optional[str] = None, max_file_size: int = 10 * 1024 * 1024,
                  backup_count: int = 5) -> None:
        """
        Configure the root logger.

        Args:
            level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            console: Log to stdout
            file: Also log to rotating files under ``logs/``
            json_format: Emit JSON lines instead of plain text
            log_file: Name of the main log file
            error_file: Name of the error-only log file
            max_file_size: Bytes before a file is rotated
            backup_count: Rotated files kept per log
        """
        defaults = LogOptions()
        self.options = LogOptions(
            level=getattr(logging, level.upper()),
            console=console,
            file=file,
            json_format=json_format,
            log_file=log_file or defaults.log_file,
            error_file=error_file or defaults.error_file,
            max_file_size=max_file_size,
            backup_count=backup_count,
        )

        handlers = []
        if console:
            stream = logging.StreamHandler(sys.stdout)
            stream.setLevel(self.options.level)
            stream.setFormatter(self._formatter(colored=True))
            handlers.append(stream)

        if file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            main_log = self._rotating(self.options.log_file, self.options.level)
            main_log.setFormatter(self._formatter())
            error_log = self._rotating(self.options.error_file, logging.ERROR)
            error_log.setFormatter(self._formatter(with_location=True))
            handlers.extend([main_log, error_log])

        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(self.options.level)
        for handler in handlers:
            root.addHandler(handler)

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)


logger_config = LoggerConfig()


def setup_logging(level: str = 'INFO', console: bool = True, file: bool = True,
                  json_format: bool = False, **kwargs) -> None:
    logger_config.configure(level=level, console=console, file=file,
                            json_format=json_format, **kwargs)


def get_logger(name: str) -> logging.Logger:
    return logger_config.get_logger(name)


def log_database_operation(logger: logging.Logger, operation: str, table: str,
                           record_id: str = None, **extra):
    """Log database operations at debug level."""
    message = f"DB {operation} on {table}"
    if record_id:
        message += f" (ID: {record_id})"
    logger.debug(message, extra=extra)


def log_embedding_operation(logger: logging.Logger, operation: str,
                            document_id: str, chunk_index: int = None, **extra):
    """Log embedding operations."""
    message = f"Embedding {operation} for document {document_id}"
    if chunk_index is not None:
        message += f" (chunk {chunk_index})"
    logger.debug(message, extra=extra)


def log_upstream_call(logger: logging.Logger, service: str, status_code: int,
                      elapsed_ms: float, **extra):
    """Log a call to an external AI service."""
    logger.info(f"Upstream {service} responded {status_code} in {elapsed_ms:.1f}ms", extra=extra)
