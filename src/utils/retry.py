from typing import Optional

from pymongo.errors import PyMongoError
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from logger import logger
from config.config import settings


def _log_retry(retry_state: RetryCallState):
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"[RETRY] Attempt {retry_state.attempt_number} failed, retrying: {error}")


def store_write_retrying(attempts: Optional[int] = None, wait_seconds: Optional[float] = None) -> Retrying:
    """Retry policy for individual document store writes; the last error is re-raised"""
    return Retrying(
        stop=stop_after_attempt(attempts or settings.Offers.CASCADE_RETRY_ATTEMPTS),
        wait=wait_fixed(settings.Offers.CASCADE_RETRY_WAIT_SECONDS if wait_seconds is None else wait_seconds),
        retry=retry_if_exception_type(PyMongoError),
        before_sleep=_log_retry,
        reraise=True,
    )
