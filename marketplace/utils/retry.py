# marketplace/utils/retry.py
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from marketplace.domain.errors import TransientError
from marketplace.utils.settings import TX_BACKOFF_MAX, TX_BACKOFF_MIN, TX_MAX_ATTEMPTS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _log_retry(retry_state):
    exc = retry_state.outcome.exception()
    logger.warning(
        "Transient storage failure, retrying",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


def db_retry(
    max_attempts: int = TX_MAX_ATTEMPTS,
    backoff_min: float = TX_BACKOFF_MIN,
    backoff_max: float = TX_BACKOFF_MAX,
) -> Retrying:
    # tylko TransientError, bledy biznesowe nigdy nie sa ponawiane
    return Retrying(
        reraise=True,
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=backoff_min, min=backoff_min, max=backoff_max),
        retry=retry_if_exception_type(TransientError),
        before_sleep=_log_retry,
    )
