import logging
import os
import sys

LOGGER_NAME = 'tweetgate'
LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


def setup_logger(level=None) -> logging.Logger:
    """Configure the package logger once; later calls only adjust the level."""
    log = logging.getLogger(LOGGER_NAME)
    level = level or os.getenv('LOG_LEVEL', 'INFO')
    log.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    return log


logger = setup_logger()
