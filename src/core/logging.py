import sys
from loguru import logger
import os

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(debug_mode: bool = False, log_dir: str = "logs", file_logging: bool = True):
    """
    Configures Loguru logger.

    Args:
        debug_mode: Console shows DEBUG records when True, INFO otherwise
        log_dir: Directory for rotating log files
        file_logging: Disable to log to stderr only
    """
    logger.remove()

    level = "DEBUG" if debug_mode else "INFO"
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        logger.add(os.path.join(log_dir, "photocat_{time}.log"), rotation="10 MB", retention="1 week", level="DEBUG")

    logger.info("Logging initialized.")
