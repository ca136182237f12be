"""
測試通知介面
"""

import io
import logging
from unittest.mock import MagicMock

import pytest

from notification.sinks import (
    CallbackNotificationSink,
    ConsoleNotificationSink,
    LogNotificationSink,
    create_sink,
    format_notification,
)
from schemas.config_types import AppConfig
from schemas.event_types import Decision


class TestFormatNotification:
    """測試提醒文字格式"""

    def test_format(self):
        text = format_notification("Office", "Standup")

        assert text.splitlines() == [
            "Event Notification",
            "------------------",
            "Where:\tOffice",
            "What:\t\tStandup",
        ]


class TestConsoleNotificationSink:
    """測試終端機通知"""

    @pytest.mark.parametrize("answer,expected", [
        ("d", Decision.DELETE),
        ("Delete", Decision.DELETE),
        (" D ", Decision.DELETE),
        ("k", Decision.KEEP),
        ("", Decision.KEEP),
        ("whatever", Decision.KEEP),
    ])
    def test_answers(self, answer, expected):
        """測試使用者回覆對應的處置"""
        output = io.StringIO()
        sink = ConsoleNotificationSink(input_func=lambda prompt: answer, output=output)

        assert sink.present("Park", "Run") is expected
        assert "Where:\tPark" in output.getvalue()
        assert "When:\t" in output.getvalue()

    def test_eof_keeps_event(self):
        """測試無法讀取輸入時保留事件"""
        def no_input(prompt):
            raise EOFError

        sink = ConsoleNotificationSink(input_func=no_input, output=io.StringIO())

        assert sink.present("Park", "Run") is Decision.KEEP

    def test_unknown_timezone_falls_back_to_utc(self):
        """測試未知時區改用 UTC"""
        sink = ConsoleNotificationSink(timezone="Mars/Olympus_Mons")

        assert sink.timezone.zone == "UTC"


class TestLogNotificationSink:
    """測試日誌通知"""

    def test_logs_and_returns_default(self, caplog):
        sink = LogNotificationSink(Decision.DELETE)

        with caplog.at_level(logging.INFO):
            decision = sink.present("Lab", "Collect samples")

        assert decision is Decision.DELETE
        assert "Collect samples" in caplog.text


class TestCallbackNotificationSink:
    """測試回調通知"""

    @pytest.mark.asyncio
    async def test_async_callback(self):
        async def callback(location, description):
            return "delete"

        sink = CallbackNotificationSink(callback)

        assert await sink.present("a", "b") is Decision.DELETE

    @pytest.mark.asyncio
    async def test_sync_callback_returning_none(self):
        callback = MagicMock(return_value=None)
        sink = CallbackNotificationSink(callback)

        assert await sink.present("a", "b") is Decision.KEEP
        callback.assert_called_once_with("a", "b")


class TestCreateSink:
    """測試依配置建立通知介面"""

    def test_console_by_default(self, monkeypatch):
        monkeypatch.delenv("REMEMBER_EVENTS_DIR", raising=False)

        assert isinstance(create_sink(AppConfig()), ConsoleNotificationSink)

    def test_log_sink(self):
        config = AppConfig.from_dict({
            "notification": {"sink": "log", "default_decision": "delete"},
        })

        sink = create_sink(config)

        assert isinstance(sink, LogNotificationSink)
        assert sink.default_decision is Decision.DELETE


if __name__ == "__main__":
    pytest.main([__file__])
