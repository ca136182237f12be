"""
Notification 模組

事件到期時呈現給使用者的通知介面。
"""

from .sinks import (
    CallbackNotificationSink,
    ConsoleNotificationSink,
    LogNotificationSink,
    NotificationSink,
    create_sink,
    format_notification,
)

__all__ = [
    'NotificationSink',
    'ConsoleNotificationSink',
    'LogNotificationSink',
    'CallbackNotificationSink',
    'create_sink',
    'format_notification',
]
