"""Atomic unit of work over an explicitly passed SQLAlchemy session."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .errors import ConcurrentModification, ConflictError, EngineError, PersistenceFailure

LOGGER = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, *, operation: str) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back.

    Any exception leaves the session rolled back. Storage errors are
    translated into the engine taxonomy so callers never see SQLAlchemy types.
    """

    try:
        yield db
        db.commit()
    except EngineError:
        db.rollback()
        raise
    except StaleDataError as exc:
        db.rollback()
        LOGGER.warning("%s lost a concurrent update race: %s", operation, exc)
        raise ConcurrentModification(
            f"{operation} conflicted with a concurrent update; retry the request"
        ) from exc
    except IntegrityError as exc:
        db.rollback()
        LOGGER.warning("%s violated a database constraint: %s", operation, exc.orig)
        raise ConflictError(f"{operation} violates a data integrity constraint") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        LOGGER.exception("%s failed in the backing store", operation)
        raise PersistenceFailure(f"{operation} could not be persisted at this time") from exc
    except Exception:
        db.rollback()
        raise
