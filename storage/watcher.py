"""
事件目錄監看器

以 APScheduler 的 interval job 定期掃描事件目錄，比對前後快照後產生
RecordCreated / RecordRemoved / RecordRenamed / RecordAttributeChanged 通知。
目錄層級的訂閱者收到建立、刪除、改名通知；欄位變更只送給以 watch_record 訂閱的紀錄。
"""

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.base import BaseScheduler

from schemas.event_types import (
    RecordAttributeChanged,
    RecordCreated,
    RecordNotification,
    RecordRemoved,
    RecordRenamed,
)

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[RecordNotification], None]

WATCH_JOB_ID = "remember-directory-watcher"


@dataclass(frozen=True)
class _EntryState:
    name: str
    mtime_ns: int
    size: int


class DirectoryWatcher:
    """事件目錄的輪詢式變更通知"""

    def __init__(self, directory: Path, poll_interval: float = 1.0, include_hidden: bool = False):
        """
        初始化監看器

        Args:
            directory: 事件目錄
            poll_interval: 輪詢間隔（秒）
            include_hidden: 是否包含以 . 開頭的檔案
        """
        self.directory = Path(directory)
        self.poll_interval = poll_interval
        self.include_hidden = include_hidden

        self._lock = threading.Lock()
        self._snapshot: Dict[int, _EntryState] = {}
        self._directory_handlers: List[NotificationHandler] = []
        self._record_handlers: Dict[int, NotificationHandler] = {}
        self._scheduler: Optional[BaseScheduler] = None

    def subscribe(self, handler: NotificationHandler) -> None:
        """訂閱目錄層級通知（建立、刪除、改名）"""
        with self._lock:
            self._directory_handlers.append(handler)

    def watch_record(self, record_id: int, handler: NotificationHandler) -> None:
        """訂閱單一紀錄的欄位變更通知"""
        with self._lock:
            self._record_handlers[record_id] = handler

    def unwatch_record(self, record_id: int) -> None:
        with self._lock:
            self._record_handlers.pop(record_id, None)

    def is_watching(self, record_id: int) -> bool:
        with self._lock:
            return record_id in self._record_handlers

    def start(self, scheduler: Optional[BaseScheduler] = None) -> None:
        """
        建立初始快照，並在提供 scheduler 時排入定期輪詢

        Args:
            scheduler: APScheduler 實例；為 None 時需自行呼叫 poll()
        """
        with self._lock:
            self._snapshot = self._scan()

        if scheduler is not None:
            scheduler.add_job(
                self.poll,
                trigger='interval',
                seconds=self.poll_interval,
                id=WATCH_JOB_ID,
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )
            self._scheduler = scheduler
        logger.info(f"開始監看事件目錄：{self.directory}")

    def stop(self) -> None:
        """停止輪詢並取消所有訂閱"""
        if self._scheduler is not None:
            try:
                self._scheduler.remove_job(WATCH_JOB_ID)
            except Exception as e:
                logger.debug(f"移除監看工作失敗：{e}")
            self._scheduler = None
        with self._lock:
            self._directory_handlers.clear()
            self._record_handlers.clear()
        logger.info(f"停止監看事件目錄：{self.directory}")

    def poll(self) -> List[RecordNotification]:
        """
        掃描一次目錄並派送變更通知

        Returns:
            本次產生的通知（依派送順序）
        """
        try:
            current = self._scan()
        except FileNotFoundError:
            logger.warning(f"事件目錄已不存在：{self.directory}")
            current = {}

        with self._lock:
            previous = self._snapshot
            self._snapshot = current

        notifications: List[RecordNotification] = []
        for record_id in previous.keys() - current.keys():
            notifications.append(RecordRemoved(record_id))

        for record_id, state in current.items():
            old = previous.get(record_id)
            if old is not None and old.name != state.name:
                notifications.append(RecordRenamed(record_id, str(self.directory), state.name))

        for record_id in current.keys() - previous.keys():
            notifications.append(RecordCreated(record_id, str(self.directory), current[record_id].name))

        for record_id, state in current.items():
            old = previous.get(record_id)
            if old is not None and (old.mtime_ns, old.size) != (state.mtime_ns, state.size):
                notifications.append(RecordAttributeChanged(record_id))

        for notification in notifications:
            self._dispatch(notification)
        return notifications

    def _dispatch(self, notification: RecordNotification) -> None:
        with self._lock:
            if isinstance(notification, RecordAttributeChanged):
                handler = self._record_handlers.get(notification.record_id)
                handlers = [handler] if handler is not None else []
            else:
                handlers = list(self._directory_handlers)

        for handler in handlers:
            try:
                handler(notification)
            except Exception:
                logger.exception(f"處理通知時發生錯誤：{notification}")

    def _scan(self) -> Dict[int, _EntryState]:
        snapshot = {}
        with os.scandir(self.directory) as entries:
            for entry in entries:
                if not self.include_hidden and entry.name.startswith("."):
                    continue
                try:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    stat = entry.stat(follow_symlinks=False)
                except FileNotFoundError:
                    continue
                snapshot[stat.st_ino] = _EntryState(entry.name, stat.st_mtime_ns, stat.st_size)
        return snapshot
