import sys

from loguru import logger

from kobciye.core.settings import settings


def setup_logging(level: str | None = None) -> None:
    """Single stderr sink shared by the backend and the client SDK."""
    logger.remove()
    logger.configure(extra={"request_id": "-"})
    logger.add(
        sys.stderr,
        level=(level or settings.LOG_LEVEL).upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "{extra[request_id]} | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
        ),
        backtrace=False,
        diagnose=False,
    )
