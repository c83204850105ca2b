import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Generator, Optional, Union

# Name of the form currently being built/rendered, for log correlation
current_form: ContextVar[Optional[str]] = ContextVar("current_form", default=None)


class TraceFormatter(logging.Formatter):
    """
    Formatter that tags records with the form being processed and enforces UTC.
    """

    def __init__(self, fmt: str | None = None, datefmt: str | None = None):
        super().__init__(fmt, datefmt)
        self.converter = time.gmtime

    def formatTime(self, record, datefmt=None):  # noqa: N802
        """ISO-8601 UTC timestamps."""
        ct = self.converter(record.created)
        if datefmt:
            return time.strftime(datefmt, ct)
        t = time.strftime("%Y-%m-%d %H:%M:%S", ct)
        return "%s.%03dZ" % (t, record.msecs)

    def format(self, record: logging.LogRecord) -> str:
        form_name = current_form.get()
        record.form_str = f"[form:{form_name}] " if form_name else ""
        return super().format(record)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 10_485_760,  # 10MB
    backup_count: int = 10,
    capture_roots: bool = False,
    module_name: str = "flash_forms",
) -> logging.Logger:
    """
    Configure logging for the plugin.

    Args:
        level: Logging level (INFO, DEBUG, etc.)
        log_file: Optional path of a rotating log file.
        capture_roots: If True, configures the root logger.
                       If False, only configures 'flash_forms.*' loggers.

    Returns:
        The configured logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    target_logger = (
        logging.getLogger() if capture_roots else logging.getLogger(module_name)
    )

    # Reset handlers so reconfiguration (tests, reloads) does not duplicate output
    target_logger.handlers.clear()
    target_logger.setLevel(level)

    log_format = "%(asctime)s %(levelname)-8s %(form_str)s%(name)s: %(message)s"
    formatter = TraceFormatter(log_format)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    target_logger.addHandler(console)

    if log_file:
        file_path = Path(log_file).resolve()
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            target_logger.addHandler(file_handler)
        except OSError as e:
            # Read-only file systems are common in containers
            sys.stderr.write(f"Failed to setup log file: {e}\n")

    if not capture_roots:
        target_logger.propagate = False

    return target_logger


@contextmanager
def scoped_form_name(value: str) -> Generator[None, None, None]:
    """
    Tag every log record emitted inside the block with ``value``.

    The previous name is restored on exit, so nested renders (a form whose
    template embeds another form) keep correct tags.

    >>> with scoped_form_name("contact"):
    ...     logger.info("Building form")
    """
    token = current_form.set(value)
    try:
        yield
    finally:
        current_form.reset(token)
