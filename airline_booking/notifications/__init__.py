from .email_service import EmailSender
from .notifier import BackgroundTaskNotifier, NullNotifier, Notifier
from .schemas import EmailMessage

__all__ = [
    "EmailSender",
    "BackgroundTaskNotifier",
    "NullNotifier",
    "Notifier",
    "EmailMessage",
]
