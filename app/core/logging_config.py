import logging
from app.core.config import settings


def setup_logging(level: str | None = None):
    """Configure root logging for the API process."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
