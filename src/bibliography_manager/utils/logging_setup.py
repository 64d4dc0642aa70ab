"""Logging configuration."""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_dir: Optional[str] = None) -> Optional[Path]:
    """Set up logging configuration.

    Console output is always enabled. When ``log_dir`` is given a timestamped
    log file is created there as well.

    Returns:
        Path of the log file, or None when logging to the console only.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers = [logging.StreamHandler()]
    log_file = None
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"bibliography_{timestamp}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    logging.debug("Logging initialized")
    if log_file:
        logging.info(f"Log file: {log_file}")
    return log_file


def log_operation(operation: str, details: str, level: int = logging.INFO) -> None:
    """Log an operation with details."""
    logging.log(level, f"{operation}: {details}")


def log_api_call(api: str, method: str, params: dict) -> None:
    """Log an API call."""
    logging.debug(f"API Call - {api}.{method}({params})")
