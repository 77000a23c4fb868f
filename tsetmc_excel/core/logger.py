import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str,
    log_dir: Optional[str] = None,
    level=logging.INFO,
    log_to_file: bool = True,
) -> logging.Logger:
    """
    Setup a logger with console and file handlers

    Args:
        name: Logger name (the package name configures every module)
        log_dir: Directory to store log files (default: project logs/)
        level: Logging level, int or name
        log_to_file: Whether to create file handler

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_to_file:
        if log_dir is None:
            log_dir = LOG_DIR

        os.makedirs(log_dir, exist_ok=True)

        module_name = name.split(".")[-1]
        log_filename = f"{module_name}_{datetime.now().strftime('%Y%m%d')}.log"
        log_filepath = os.path.join(log_dir, log_filename)

        file_handler = logging.FileHandler(log_filepath, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_filepath}")

    return logger


def log_exception_chain(logger: logging.Logger, message: str, exc: BaseException) -> None:
    """Log an error followed by every exception it was raised from."""
    logger.error(f"{message}: {exc}")

    seen = {id(exc)}
    cause = exc.__cause__ or exc.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        logger.error(f"Caused by {type(cause).__name__}: {cause}")
        cause = cause.__cause__ or cause.__context__
