import logging

from settings import settings


def setup_logging(level: str = None) -> None:
    """
    Configure the root logger with a single console handler.
    Safe to call more than once; previous handlers are replaced.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level or settings.log_level, logging.INFO))

    # Clear existing handlers
    root_logger.handlers = []

    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    # SQL echo goes through sqlalchemy's own logger
    if settings.sql_echo:
        logging.getLogger('sqlalchemy.engine').setLevel(logging.INFO)
    else:
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
