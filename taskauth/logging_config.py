import logging

from pythonjsonlogger.json import JsonFormatter

LOGGER_NAME = "taskauth"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Structured JSON logging for the taskauth package.

    Safe to call more than once; the handler is only installed the first time.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    if not any(getattr(h, "_taskauth", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        handler._taskauth = True
        logger.addHandler(handler)

    return logger
