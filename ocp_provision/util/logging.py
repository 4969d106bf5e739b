"""
Logging configuration.

Console output for users goes through rich (see util.progress); this module
configures the standard logging tree used for diagnostics and log files.
"""

import logging
from datetime import datetime
from pathlib import Path

from rich.logging import RichHandler

from ocp_provision.util.files import ensure_dir
from ocp_provision.util.redact import redact_sensitive

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class RedactingFormatter(logging.Formatter):
    """Formatter that strips secrets from rendered records."""

    def format(self, record: logging.LogRecord) -> str:
        return redact_sensitive(super().format(record))


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """
    Configure the root ocp_provision logger.

    Args:
        verbose: Emit DEBUG records to stderr instead of WARNING and above
        log_file: Optional file that receives every DEBUG record
    """
    logger = logging.getLogger("ocp_provision")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = RichHandler(show_path=False, rich_tracebacks=False)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stream_handler.setFormatter(RedactingFormatter("%(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        ensure_dir(Path(log_file).parent)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(RedactingFormatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def command_log_file(logs_dir: str | Path, command: str) -> Path:
    """Return logs/<command>-<YYYYmmdd-HHMMSS>.log."""
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return Path(logs_dir) / f"{command}-{timestamp}.log"
