"""
Logging configuration

Console plus daily rotating files under settings.log_dir. Every record carries
the shop domain, so logs from several stores can share one sink.
"""
from loguru import logger
import sys
from maldify.config import get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[shop]}</magenta> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[shop]} | {name}:{function}:{line} - {message}"


def setup_logger(settings=None):
    """Replace loguru's default handler with the Maldify sinks"""
    settings = settings or get_settings()

    logger.remove()
    logger.configure(extra={"shop": settings.shopify_shop_url or "-"})

    logger.add(
        sys.stdout,
        colorize=not settings.is_production,
        format=CONSOLE_FORMAT,
        level=settings.log_level
    )

    logger.add(
        f"{settings.log_dir}/maldify_{{time:YYYY-MM-DD}}.log",
        format=FILE_FORMAT,
        rotation="00:00",
        retention="30 days",
        compression="zip",
        level="INFO",
        delay=True
    )

    # Errors are kept longer and include variable values outside production
    logger.add(
        f"{settings.log_dir}/errors_{{time:YYYY-MM-DD}}.log",
        format=FILE_FORMAT,
        rotation="00:00",
        retention="90 days",
        level="ERROR",
        backtrace=True,
        diagnose=not settings.is_production,
        delay=True
    )

    return logger


log = setup_logger()
