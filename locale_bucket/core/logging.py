import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
PACKAGE_LOGGER = "locale_bucket"


def configure_logging(level_name: str) -> logging.Logger:
    """Apply ``level_name`` to the bucket's loggers, leaving third-party loggers alone."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    if not logging.getLogger().handlers:
        logging.basicConfig(format=LOG_FORMAT)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    return package_logger
