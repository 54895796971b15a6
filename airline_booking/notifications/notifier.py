import logging
from abc import ABC, abstractmethod

from fastapi import BackgroundTasks

from airline_booking.notifications.email_service import EmailSender
from airline_booking.notifications.schemas import EmailMessage

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Fire-and-forget notification channel used after a committed transaction"""

    @abstractmethod
    def notify(self, message: EmailMessage):
        pass


class NullNotifier(Notifier):
    """Discards notifications (scripts, tests, callers without a mail channel)"""

    def notify(self, message: EmailMessage):
        logger.debug(f"Dropping notification '{message.subject}' to {message.to}")


class BackgroundTaskNotifier(Notifier):
    """Delivers emails after the HTTP response has been sent"""

    def __init__(self, background_tasks: BackgroundTasks, sender: EmailSender = None):
        self.background_tasks = background_tasks
        self.sender = sender or EmailSender()

    def notify(self, message: EmailMessage):
        self.background_tasks.add_task(
            self.sender.send_email, message.to, message.subject, message.html
        )
