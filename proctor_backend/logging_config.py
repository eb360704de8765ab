"""
Central logging setup plus the [PROCTOR] event line helper
"""
import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(service_name="proctor", level="INFO", log_dir=None):
    """
    Configure the root logger.

    Args:
        service_name: used in the log file name
        level: DEBUG, INFO, WARNING or ERROR
        log_dir: when set, also write a rotating log file there
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path / f"{service_name}.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(service_name)
    logger.info(f"Log level: {level}")
    return logger


def log_proctor_event(logger, session_id, event_type, level=logging.INFO, **details):
    message = f"[PROCTOR] session={session_id} event={event_type}"
    if details:
        message += " " + " ".join(f"{k}={v}" for k, v in details.items())
    logger.log(level, message)
