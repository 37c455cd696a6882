import logging
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "[%(levelname)s] %(name)s - %(message)s"

# The OpenAI SDK and its HTTP client log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure basic logging for bulkproc.

    Parameters
    ----------
    level:
        Logging level name (e.g., "INFO", "DEBUG").
    log_file:
        Optional path to log output. When not provided, logs go to stderr.
    quiet_loggers:
        Third-party logger names capped at WARNING unless ``level`` is DEBUG.
    """

    logging_level = getattr(logging, level.upper(), logging.INFO)
    log_kwargs = {
        "level": logging_level,
        "format": LOG_FORMAT,
    }

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        log_kwargs["filename"] = log_file

    logging.basicConfig(**log_kwargs)

    if logging_level > logging.DEBUG:
        for name in quiet_loggers:
            logging.getLogger(name).setLevel(logging.WARNING)
