import logging
import os
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Chatty on every download; only their warnings are worth keeping.
NOISY_LOGGERS = ("yfinance", "urllib3", "peewee")


def setup_logger(name="SMZ", log_level=logging.INFO, log_file=None, quiet_third_party=True):
    """
    Configure the root "SMZ" logger that SMZ.Engine, SMZ.Data, SMZ.Detectors
    and the other module loggers propagate to.

    `log_level` accepts a level number or a name from config.yaml ("DEBUG", "info").
    The log file's directory is created if needed. Calling twice re-applies
    the level but does not stack handlers.
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    if quiet_third_party:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
