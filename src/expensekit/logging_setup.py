"""Logging configuration for the command-line front end.

Library modules only create their own loggers with ``logging.getLogger(__name__)``;
handlers are installed here, by whoever runs the application.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SQLAlchemy echoes every statement at INFO
NOISY_LOGGERS = ["sqlalchemy.engine"]


class _StderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach a stderr handler to the ``expensekit`` logger.

    Args:
        verbose: DEBUG when True, otherwise INFO

    Returns:
        The configured ``expensekit`` logger
    """
    logger = logging.getLogger("expensekit")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not any(isinstance(h, _StderrHandler) for h in logger.handlers):
        handler = _StderrHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
