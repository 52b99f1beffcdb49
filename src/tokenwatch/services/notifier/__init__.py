"""Notification dispatch and sinks."""

from tokenwatch.services.notifier.dispatcher import NotificationDispatcher, format_message
from tokenwatch.services.notifier.telegram import LogSink, NotifierSink, TelegramSink

__all__ = [
    "LogSink",
    "NotificationDispatcher",
    "NotifierSink",
    "TelegramSink",
    "format_message",
]
