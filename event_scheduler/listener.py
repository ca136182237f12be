"""
事件目錄變更監聽器

把紀錄的建立、刪除、改名、欄位變更通知轉換成 EventStore 的操作，
並在待觸發佇列變動時喚醒排程器。
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from apscheduler.schedulers.base import BaseScheduler

from schemas.event_types import (
    Event,
    RecordAttributeChanged,
    RecordCreated,
    RecordNotification,
    RecordRemoved,
    RecordRenamed,
)
from storage.records import RecordStore
from storage.watcher import DirectoryWatcher
from .store import EventStore

logger = logging.getLogger(__name__)


class ChangeListener:
    """同步事件目錄與 EventStore"""

    def __init__(
        self,
        store: EventStore,
        records: RecordStore,
        watcher: DirectoryWatcher,
        wakeup: Optional[Callable[[], None]] = None,
        rearm_on_change: bool = True,
    ):
        """
        初始化監聽器

        Args:
            store: 事件儲存區
            records: 紀錄讀寫
            watcher: 目錄監看器
            wakeup: 待觸發佇列變動時呼叫，用來喚醒排程器
            rearm_on_change: 欄位變更後若新時間在未來，是否重新加入待觸發佇列
        """
        self.store = store
        self.records = records
        self.watcher = watcher
        self.wakeup = wakeup or (lambda: None)
        self.rearm_on_change = rearm_on_change
        self.started = False

        self._handlers = {
            RecordCreated: self._on_created,
            RecordRemoved: self._on_removed,
            RecordRenamed: self._on_renamed,
            RecordAttributeChanged: self._on_attribute_changed,
        }

    def start(self, scheduler: Optional[BaseScheduler] = None) -> bool:
        """
        先訂閱目錄通知，再列舉現有紀錄

        兩者之間新增的紀錄可能同時被列舉又收到建立通知，以 record_id 去重。

        Args:
            scheduler: 用來排入目錄輪詢的 APScheduler

        Returns:
            事件目錄是否存在並已開始監看
        """
        if not self.records.exists():
            logger.warning(f"找不到事件目錄（\"{self.records.directory}\"），以空事件集繼續")
            return False

        self.watcher.subscribe(self.handle)
        self.watcher.start(scheduler)

        for name in self.records.list_names():
            self._add_record(name)

        self.started = True
        logger.info(f"已載入 {len(self.store)} 個事件，其中 {len(self.store.due_events())} 個待觸發")
        return True

    def stop(self) -> None:
        if self.started:
            self.watcher.stop()
            self.started = False

    def handle(self, notification: RecordNotification) -> None:
        """依通知類型派送到對應的處理函數"""
        handler = self._handlers.get(type(notification))
        if handler is None:
            logger.warning(f"未知的通知類型：{notification!r}")
            return
        handler(notification)

    def _on_created(self, notification: RecordCreated) -> None:
        logger.debug(f"紀錄建立：{notification.name} ({notification.record_id})")
        self._add_record(notification.name)

    def _on_removed(self, notification: RecordRemoved) -> None:
        event = self.store.find_by_id(notification.record_id)
        if event is None:
            return
        self._discard(event)
        logger.info(f"已移除事件：{event.display_name}")

    def _on_renamed(self, notification: RecordRenamed) -> None:
        event = self.store.find_by_id(notification.record_id)

        if not self._in_scope(notification):
            if event is not None:
                self._discard(event)
                logger.info(f"事件已移出事件目錄：{event.display_name}")
            return

        if event is None:
            logger.debug(f"紀錄移入事件目錄：{notification.name}")
            self._add_record(notification.name)
            return

        # 目錄內改名：以新檔名重新讀取，保留原本的待觸發狀態
        was_due = self.store.is_due(event.record_id)
        renamed = self.records.read(notification.name)
        if renamed is None:
            self._discard(event)
            return

        self.store.remove_by_id(event.record_id)
        self.store.upsert_full(renamed)
        if was_due:
            self.store.insert_due(renamed)
            self.wakeup()
        logger.info(f"事件改名：{event.display_name} → {renamed.display_name}")

    def _on_attribute_changed(self, notification: RecordAttributeChanged) -> None:
        event = self.store.find_by_id(notification.record_id)
        if event is None:
            return

        was_due = self.store.is_due(event.record_id)
        self.store.remove_by_id(event.record_id)

        updated = self.records.read(event.display_name)
        if updated is None:
            self.watcher.unwatch_record(event.record_id)
            if was_due:
                self.wakeup()
            return

        self.store.upsert_full(updated)
        queued = self.rearm_on_change and self.store.insert_due(updated)
        if was_due or queued:
            self.wakeup()
        logger.info(f"事件已更新：{updated.display_name}")

    def _add_record(self, name: str) -> Optional[Event]:
        event = self.records.read(name)
        if event is None:
            return None

        was_due = self.store.is_due(event.record_id)
        self.store.remove_by_id(event.record_id)
        self.store.upsert_full(event)
        queued = self.store.insert_due(event)
        self.watcher.watch_record(event.record_id, self.handle)

        if queued or was_due:
            self.wakeup()
        logger.debug(f"已加入事件：{event.display_name} (when={event.due_at}, due={queued})")
        return event

    def _discard(self, event: Event) -> None:
        was_due = self.store.is_due(event.record_id)
        self.store.remove_by_id(event.record_id)
        self.watcher.unwatch_record(event.record_id)
        if was_due:
            self.wakeup()

    def _in_scope(self, notification: RecordRenamed) -> bool:
        try:
            same_directory = Path(notification.directory).resolve() == self.records.directory.resolve()
        except OSError:
            return False
        return same_directory and self.records.is_record_name(notification.name)
