import logging
import sys

from core.config import settings

logger = logging.getLogger("friendgraph")

if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(handler)

logger.setLevel(settings.LOG_LEVEL.upper())
