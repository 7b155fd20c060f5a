# -*- coding: utf-8 -*-
"""
Unit-of-work helpers.

All engine writes go through ``unit_of_work`` so a computation either
commits as a whole or leaves no trace.
"""
from contextlib import contextmanager
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from trustnet.infra.log import get_logger
from trustnet.services.errors import ConflictError, StorageError

logger = get_logger("trustnet.storage")

T = TypeVar("T")


@contextmanager
def unit_of_work(session, commit: bool = True):
    """
    Run a block of writes atomically.

    With ``commit=False`` the block only flushes, leaving the commit to an
    enclosing unit of work; failures still roll the session back.
    """
    try:
        yield session
        if commit:
            session.commit()
        else:
            session.flush()
    except (StaleDataError, IntegrityError) as e:
        session.rollback()
        logger.warning("Concurrent write rejected", error=str(e))
        raise ConflictError("Concurrent modification detected, retry the operation") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Storage operation failed", error=str(e))
        raise StorageError("Storage operation failed") from e
    except Exception:
        session.rollback()
        raise


def retry_on_conflict(operation: Callable[[], T], attempts: int = 3) -> T:
    """Call ``operation`` again when it loses an optimistic-concurrency race."""
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConflictError:
            if attempt == attempts:
                raise
            logger.info("Retrying after conflict", attempt=attempt)
