"""
通知介面

排程器在事件到期時呼叫 present(location, description)，取得刪除或保留的決定。
"""

import asyncio
import inspect
import logging
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, TextIO

import pytz

from schemas.config_types import AppConfig
from schemas.event_types import Decision

logger = logging.getLogger(__name__)

DELETE_ANSWERS = ("d", "delete")


class NotificationSink(Protocol):
    """通知介面協定"""

    def present(self, location: str, description: str) -> Decision:
        ...


def format_notification(location: str, description: str, timestamp: Optional[datetime] = None) -> str:
    """產生提醒對話框的文字內容"""
    lines = [
        "Event Notification",
        "------------------",
    ]
    if timestamp is not None:
        lines.append(f"When:\t{timestamp.strftime('%Y-%m-%d %H:%M:%S %Z')}")
    lines.append(f"Where:\t{location}")
    lines.append(f"What:\t\t{description}")
    return "\n".join(lines)


class ConsoleNotificationSink:
    """在終端機顯示提醒並詢問 Delete / Keep"""

    def __init__(
        self,
        timezone: str = "UTC",
        input_func: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
    ):
        """
        Args:
            timezone: 顯示觸發時間用的時區
            input_func: 讀取使用者回覆的函數
            output: 輸出位置，預設為 stdout
        """
        try:
            self.timezone = pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"未知的時區 {timezone}，改用 UTC")
            self.timezone = pytz.utc
        self.input_func = input_func
        self.output = output

    def present(self, location: str, description: str) -> Decision:
        now = datetime.now(self.timezone)
        print(format_notification(location, description, now), file=self.output)
        try:
            answer = self.input_func("[D]elete / [K]eep: ")
        except EOFError:
            return Decision.KEEP
        if answer.strip().lower() in DELETE_ANSWERS:
            return Decision.DELETE
        return Decision.KEEP


class LogNotificationSink:
    """只寫入日誌，固定回覆預設處置（背景服務使用）"""

    def __init__(self, default_decision: Decision = Decision.KEEP):
        self.default_decision = default_decision

    def present(self, location: str, description: str) -> Decision:
        logger.info(f"🔔 提醒觸發！地點：{location or '（無）'}，內容：{description or '（無）'}")
        return self.default_decision


class CallbackNotificationSink:
    """包裝任意同步或異步函數的通知介面"""

    def __init__(self, callback: Callable[[str, str], Any]):
        self.callback = callback

    async def present(self, location: str, description: str) -> Decision:
        if inspect.iscoroutinefunction(self.callback):
            result = await self.callback(location, description)
        else:
            result = await asyncio.to_thread(self.callback, location, description)

        if result is None:
            return Decision.KEEP
        if isinstance(result, Decision):
            return result
        return Decision(str(result).lower())


def create_sink(config: AppConfig):
    """
    依配置建立通知介面

    Args:
        config: 應用程式配置

    Returns:
        通知介面實例
    """
    notification_cfg = config.notification
    if notification_cfg.sink == "log":
        return LogNotificationSink(Decision(notification_cfg.default_decision))
    return ConsoleNotificationSink(timezone=config.system.timezone)
