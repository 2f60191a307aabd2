import logging

from rich.logging import RichHandler

from storefront.config import settings


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Return a logger that writes through a RichHandler.

    The level comes from ``settings.LOG_LEVEL``. Handlers are attached once per
    logger name, so repeated calls from the same module are cheap.
    """
    logger = logging.getLogger(name or "storefront")
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(logging.Formatter("[%(name)s]  %(message)s"))
        handler.setLevel(level)
        logger.addHandler(handler)
        logger.propagate = False

    return logger
