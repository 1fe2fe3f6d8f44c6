from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = ".bundlekeeper/bundlekeeper.log"
FALLBACK_LOG_NAME = "bundlekeeper.log"


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure root logging: a log file plus an optional console handler.

    If the requested log file cannot be opened, a file in the working
    directory is used instead. Calling this again is a no-op.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    if getattr(logger, "_bundlekeeper_configured", False):
        return getattr(logger, "_bundlekeeper_log_path", log_path)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    chosen_path = log_path
    file_handler: Optional[logging.Handler] = None
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        chosen_path = str(Path.cwd() / FALLBACK_LOG_NAME)
        file_handler = logging.FileHandler(chosen_path, encoding="utf-8")
    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        logger.addHandler(console)

    setattr(logger, "_bundlekeeper_configured", True)
    setattr(logger, "_bundlekeeper_log_path", chosen_path)

    logging.getLogger(__name__).debug(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
