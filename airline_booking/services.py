import logging
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from airline_booking.database import UnitOfWork
from airline_booking.errors import BookingError, OperationResult, TransientFailure
from airline_booking.notifications import EmailMessage, Notifier, NullNotifier

logger = logging.getLogger(__name__)


class TransactionalService:
    """
    Base class for services whose operations each run in one unit of work.

    ``_execute`` turns the outcome of an operation into an ``OperationResult``:
    typed ``BookingError`` failures and storage errors both roll the unit of
    work back, and neither escapes to the caller.
    """

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or NullNotifier()

    def _execute(self, operation: str, work: Callable[[UnitOfWork], Any]) -> OperationResult:
        try:
            with UnitOfWork(self.db) as uow:
                data = work(uow)
        except BookingError as e:
            logger.info(f"{operation} rejected ({e.kind.value}): {e.message}")
            return OperationResult.fail(e)
        except SQLAlchemyError:
            logger.exception(f"{operation} failed with a storage error")
            return OperationResult.fail(TransientFailure())

        return OperationResult.ok(data)

    def _notify_after_commit(self, uow: UnitOfWork, messages: Iterable[EmailMessage]):
        """Queue notifications; they are dispatched only if the transaction commits"""
        pending = list(messages)
        if pending:
            uow.on_commit(lambda: self._dispatch(pending))

    def _dispatch(self, messages: Iterable[EmailMessage]):
        for message in messages:
            try:
                self.notifier.notify(message)
            except Exception as e:
                logger.error(f"Failed to dispatch notification '{message.subject}' to {message.to}: {e}", exc_info=True)
