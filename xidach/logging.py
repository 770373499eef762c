"""Root logger setup for the score API: console output plus an optional log file per run."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
LOG_FILE_PREFIX = "xidach"

# SQL echo is only wanted when debugging the storage layer
QUIET_LOGGERS = ("sqlalchemy.engine",)


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | str = logging.INFO,
) -> Path | None:
    """Route session, match and settlement logs to stdout and, optionally, a file.

    Handlers from an earlier call are closed and replaced. When ``log_dir`` is
    set, each run writes to its own ``xidach-<UTC timestamp>.log`` there and
    the path is returned.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    quiet_level = logging.DEBUG if root_logger.level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    if log_dir is None:
        return None

    run_dir = Path(log_dir)
    run_dir.mkdir(parents=True, exist_ok=True)
    started = datetime.now(tz=timezone.utc).strftime(LOG_FILE_TIMESTAMP_FORMAT)
    log_file = run_dir / f"{LOG_FILE_PREFIX}-{started}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)
    return log_file
