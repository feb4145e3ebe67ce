"""
Logging Configuration
Sets up the `georecon` logger. Library modules only create their loggers;
handlers are added here, by the application that embeds the engine.
"""
import logging
import sys
from typing import Optional, Union

LOGGER_NAME = "georecon"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%H:%M:%S'


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the logger for the 'georecon' namespace.

    Reconstruction diagnostics (repaired gaps, removed fillets, mesh fallbacks) are
    emitted as WARNING and ERROR records, so INFO is enough to see them.

    Args:
        level: Logging level, as a number (logging.DEBUG) or a name ("DEBUG").
        log_file: Optional path of a log file, overwritten on each setup.

    Returns:
        The configured package logger.
    """
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown logging level: {level}")
        level = numeric

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Re-configuration replaces the previous handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.info(f"Logging initialized at level {logging.getLevelName(level)}.")
    return logger
