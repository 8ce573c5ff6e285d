# marketplace/services/transaction.py
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from marketplace.domain.errors import TransientError
from marketplace.utils.retry import db_retry
from marketplace.utils.settings import TX_BACKOFF_MAX, TX_BACKOFF_MIN, TX_MAX_ATTEMPTS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TransactionCoordinator:
    """
    Granica commit/rollback dla jednego requestu (zlozenie zamowienia,
    anulowanie, zmiana koszyka).

    ``run_in_transaction(fn)`` - fn dostaje swiezą sesje; wyjatek z fn cofa
    wszystkie zapisy, inaczej wszystko jest commitowane razem.
    Bledy przejsciowe bazy (OperationalError: lock timeout, deadlock,
    serialization failure, zerwane polaczenie) -> TransientError i retry
    z backoffem (tenacity). Bledy biznesowe przechodza od razu, bez ponawiania.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        max_attempts: int = TX_MAX_ATTEMPTS,
        backoff_min: float = TX_BACKOFF_MIN,
        backoff_max: float = TX_BACKOFF_MAX,
    ):
        self.session_factory = session_factory
        self.max_attempts = max_attempts
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max

    def run_in_transaction(self, fn: Callable[[Session], T]) -> T:
        retrying = db_retry(self.max_attempts, self.backoff_min, self.backoff_max)
        try:
            return retrying(self._attempt, fn)
        except TransientError as e:
            logger.error("Transaction failed after retries", attempts=self.max_attempts, error=str(e))
            raise

    def _attempt(self, fn: Callable[[Session], T]) -> T:
        with self.session_factory() as session:
            try:
                with session.begin():
                    return fn(session)
            except OperationalError as e:
                raise TransientError(str(e.orig)) from e
            except DBAPIError as e:
                if e.connection_invalidated:
                    raise TransientError(str(e.orig)) from e
                raise
