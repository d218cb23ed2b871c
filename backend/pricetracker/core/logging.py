import logging
import sys
from pathlib import Path

from loguru import logger

from pricetracker.core.config import Settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def configure_logging(settings: Settings):
    """
    Configure loguru for the tracker with console and optional file logging.
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stdout,
        level=settings.LOG_LEVEL,
        format=CONSOLE_FORMAT,
        colorize=True
    )

    if not settings.LOG_TO_FILE:
        return

    logs_dir = Path(settings.LOG_DIR)
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Main application log file - auto-rotating
    logger.add(
        logs_dir / "pricetracker.log",
        level="DEBUG",
        format=FILE_FORMAT,
        rotation="50 MB",
        retention="7 days",
        compression="zip",
        enqueue=True,
        catch=True
    )

    # Error-only log file
    logger.add(
        logs_dir / "errors.log",
        level="ERROR",
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        enqueue=True
    )

    logger.info(f"Log level: {settings.LOG_LEVEL}")
    logger.info(f"Logs directory: {logs_dir.absolute()}")


def get_market_logger(symbol: str):
    """
    Get a logger bound with the symbol an upstream market call is made for.

    Args:
        symbol: Exchange symbol (e.g., "BTCUSDT"), or "*" for bulk calls

    Returns:
        Loguru logger with symbol context
    """
    return logger.bind(symbol=symbol, component="market")


class InterceptHandler(logging.Handler):
    """
    Intercept standard logging messages and redirect them to loguru.
    """
    def emit(self, record):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where the logged message originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_standard_logging_intercept():
    """
    Setup interception of standard Python logging to redirect to loguru.
    """
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(logging.INFO)

    # Loggers used by our dependencies
    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "sqlalchemy", "ccxt"]:
        logging_logger = logging.getLogger(logger_name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False
