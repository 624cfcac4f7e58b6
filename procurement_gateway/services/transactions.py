"""Transaction boundary with whole-unit retry on conflicts and dropped connections"""

import logging
import time
from typing import Callable, TypeVar
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from procurement_gateway.config import settings
from procurement_gateway.domain.exceptions import PersistenceError
from procurement_gateway.infrastructure.observability.metrics import transaction_retry_counter

T = TypeVar("T")

# Version conflicts on the project row and transient connectivity errors
RETRYABLE_ERRORS = (StaleDataError, OperationalError)


def run_atomic(
    db: Session,
    operation: str,
    unit: Callable[[], T],
    max_retries: int | None = None,
    backoff_base: float | None = None,
) -> T:
    """
    Run `unit` and commit it as a single transaction.

    Any exception rolls back everything the unit wrote. Retryable errors re-run the
    unit from the start (never a partial replay), with exponential backoff, until
    max_retries attempts have been made; then PersistenceError is raised.
    """
    max_retries = settings.transaction_max_retries if max_retries is None else max_retries
    backoff_base = settings.transaction_backoff_base if backoff_base is None else backoff_base

    attempt = 0
    while True:
        try:
            result = unit()
            db.commit()
            return result

        except RETRYABLE_ERRORS as e:
            db.rollback()
            attempt += 1
            transaction_retry_counter.labels(operation=operation).inc()

            if attempt >= max_retries:
                raise PersistenceError(f"{operation} failed after {attempt} attempts") from e

            logging.warning(
                f"Retrying {operation} after {type(e).__name__}",
                extra={"operation": operation, "attempt": attempt},
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))

        except Exception:
            db.rollback()
            raise
