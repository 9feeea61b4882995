"""
Library containing logging helper functionality
"""

import logging
import logging.config
from typing import Optional

from ..schemas import config


def configure_logging(logging_config: config.LoggingConfig, debug_sql: bool = False):
    """
    Apply the logging configuration of the settings to the ``logging`` module

    :param logging_config: configuration understood by ``logging.config.dictConfig``
    :param debug_sql: switch to let the sqlalchemy engine log every statement at INFO level
    """

    logging.config.dictConfig(logging_config.model_dump())
    if debug_sql:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)


def enforce_logger(logger: Optional[logging.Logger] = None) -> logging.Logger:
    """
    Enforce availability of a working logger
    """

    if logger is not None and isinstance(logger, logging.Logger):
        return logger
    elif logger is not None:
        raise TypeError(f"Expected 'logging.Logger', got {type(logger)}")
    return logging.getLogger("crud_core")
