"""
Database engine, session factory and Unit of Work.

Every state-changing operation of the booking engine runs inside one
``UnitOfWork``: the session commits when the block exits cleanly and rolls
back on any exception. Callbacks registered with ``on_commit`` (email
notifications) run only after the commit succeeded and can never undo it.
"""

import logging
from typing import Callable, List

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from airline_booking.config import settings

logger = logging.getLogger(__name__)

engine = create_engine(settings.database_url, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a request-scoped session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class UnitOfWork:
    """
    Transaction scope around a SQLAlchemy session

    Usage:
        with UnitOfWork(db) as uow:
            seat = db.get(FlightSeat, seat_id)
            seat.is_booked = True
            uow.on_commit(lambda: notifier.notify(message))
        # committed here, callbacks run afterwards
    """

    def __init__(self, db: Session):
        self.db = db
        self._callbacks: List[Callable[[], None]] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.rollback()
            return False

        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

        self._run_callbacks()
        return False

    def commit(self):
        logger.debug(f"Committing unit of work with {len(self._callbacks)} callbacks")
        self.db.commit()

    def rollback(self):
        logger.warning(f"Rolling back unit of work, discarding {len(self._callbacks)} callbacks")
        self._callbacks.clear()
        self.db.rollback()

    def on_commit(self, callback: Callable[[], None]):
        """Schedule a callback to run once the transaction has committed"""
        self._callbacks.append(callback)

    def _run_callbacks(self):
        callbacks = self._callbacks.copy()
        self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                # The transaction is already committed
                logger.error(f"Error in after-commit callback: {e}", exc_info=True)
