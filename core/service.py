"""
Remember 服務

在啟動時建立一次，持有事件儲存區、目錄監聽器與排程器，負責整體生命週期。
"""

import logging
import time
from typing import Any, Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from event_scheduler import ChangeListener, EventScheduler, EventStore
from notification.sinks import create_sink
from schemas.config_types import AppConfig
from storage.records import RecordStore
from storage.watcher import DirectoryWatcher

logger = logging.getLogger(__name__)


class RememberService:
    """提醒服務"""

    def __init__(
        self,
        config: AppConfig,
        sink: Optional[Any] = None,
        base_dir: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        初始化服務

        Args:
            config: 應用程式配置
            sink: 通知介面，為 None 時依配置建立
            base_dir: 解析相對事件目錄的基準目錄
            clock: 取得目前 epoch 秒數的函數
        """
        self.config = config
        self.events_directory = config.resolve_events_directory(base_dir)

        self.store = EventStore(clock=clock)
        self.records = RecordStore(self.events_directory, include_hidden=config.watcher.include_hidden)
        self.watcher = DirectoryWatcher(
            self.events_directory,
            poll_interval=config.watcher.poll_interval,
            include_hidden=config.watcher.include_hidden,
        )
        self.sink = sink or create_sink(config)
        self.scheduler = EventScheduler(
            self.store,
            self.sink,
            delete_record=self.records.delete,
            clock=clock,
        )
        self.listener = ChangeListener(
            self.store,
            self.records,
            self.watcher,
            wakeup=self.scheduler.notify,
            rearm_on_change=config.reminder.rearm_on_change,
        )

        # 目錄輪詢在 executor 執行緒中執行，與排程迴圈分屬不同執行緒
        self.job_scheduler = AsyncIOScheduler(
            jobstores={'default': MemoryJobStore()},
            executors={'default': AsyncIOExecutor()},
            job_defaults={'coalesce': True, 'max_instances': 1},
        )
        self.job_scheduler.add_listener(self._job_error, EVENT_JOB_ERROR)

    async def start(self):
        """啟動排程迴圈、目錄輪詢，並載入現有事件"""
        await self.scheduler.start()
        self.job_scheduler.start()
        self.listener.start(self.job_scheduler)
        logger.info(f"Remember 服務已啟動，事件目錄：{self.events_directory}")

    async def stop(self, timeout: Optional[float] = None):
        """
        停止監看、等待排程迴圈結束，最後釋放所有事件

        Args:
            timeout: 等待排程迴圈結束的最長秒數
        """
        self.listener.stop()
        if self.job_scheduler.running:
            self.job_scheduler.shutdown(wait=False)
        await self.scheduler.shutdown(timeout)
        self.store.clear()
        logger.info("Remember 服務已停止")

    async def __aenter__(self) -> 'RememberService':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def _job_error(self, event):
        """工作執行錯誤事件監聽器"""
        logger.error(f"工作執行錯誤：{event.job_id}, 錯誤：{event.exception}")
