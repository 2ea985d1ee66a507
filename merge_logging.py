"""File logging for the merge resolver (the TUI owns the terminal, so nothing goes to stderr)."""

import logging
from pathlib import Path

LOGGER_NAME = "merge_resolver"
LOG_FILE_NAME = "merge_resolver.log"

_log_file: Path | None = None


def setup_logging(log_dir: Path, level: str = "INFO") -> Path:
    """Attach a single file handler to the ``merge_resolver`` logger tree.

    Calling it again replaces the previous handler, so tests and re-entry
    never stack duplicate handlers.
    """
    global _log_file
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    _log_file = log_dir / LOG_FILE_NAME

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    handler = logging.FileHandler(_log_file, mode='a')
    handler.setLevel(logging.DEBUG)
    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)-7s | %(message)s',
        datefmt='%H:%M:%S'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return _log_file


def get_logger(name: str) -> logging.Logger:
    """Child logger, e.g. ``get_logger("sync")`` -> ``merge_resolver.sync``."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def read_log(tail_lines: int = 100) -> str:
    """Read last N lines from the log file."""
    if _log_file is None or not _log_file.exists():
        return "No logs yet."
    try:
        lines = _log_file.read_text().splitlines()
    except OSError:
        return "Error reading log file."
    if tail_lines and len(lines) > tail_lines:
        lines = lines[-tail_lines:]
    return "\n".join(lines)
