"""
wabot Status Log - Timestamped status lines to file and stdout

Every status line goes to logs/status.log and is mirrored on standard output.
The !logs command reads the tail of the same file back.
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

from config import STATUS_LOG_FILE, LOG_LEVEL, LOG_TAIL_LINES

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_configured = False


def setup_logging(log_file: Union[str, Path] = STATUS_LOG_FILE, level: str = LOG_LEVEL) -> Path:
    """Attach the status-log file handler and the stdout mirror to the root logger.

    Safe to call more than once; only the first call installs handlers.
    Returns the path of the status log.
    """
    global _configured
    log_file = Path(log_file)
    if _configured:
        return log_file

    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    _configured = True
    return log_file


def read_recent_lines(log_file: Union[str, Path] = STATUS_LOG_FILE, count: int = LOG_TAIL_LINES) -> Optional[str]:
    """Return the last `count` lines of the log, or None if it can't be read."""
    try:
        data = Path(log_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None

    lines = data.strip().split("\n")
    return "\n".join(lines[-count:])
