from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import settings
from core.errors import StorageUnavailable
from utils.logger import logger


@contextmanager
def storage_errors(operation: str):
    """Surface transient database failures as StorageUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Storage failure during {operation}: {e}")
        raise StorageUnavailable("Storage temporarily unavailable, please try again.") from e


def retry_reads(func):
    """Retry an idempotent read when the backend is briefly unavailable."""
    return retry(
        stop=stop_after_attempt(settings.READ_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(StorageUnavailable),
        reraise=True,
    )(func)
