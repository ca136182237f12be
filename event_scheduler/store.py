"""
事件儲存區

保存全部已知事件（full set）以及尚未到期的待觸發佇列（due-queue），
所有操作都在同一把鎖下互斥執行。
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from schemas.event_types import Event

logger = logging.getLogger(__name__)


class EventStore:
    """執行緒安全的事件容器"""

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        初始化事件儲存區

        Args:
            clock: 取得目前 epoch 秒數的函數，測試時可替換
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._events: Dict[int, Event] = {}
        # (序號, 事件)；序號保證相同 due_at 時依插入順序
        self._due: List[Tuple[int, Event]] = []
        self._sequence = 0

    def upsert_full(self, event: Event) -> None:
        """依 record_id 新增或取代 full set 中的事件"""
        with self._lock:
            self._events[event.record_id] = event

    def insert_due(self, event: Event) -> bool:
        """
        將事件加入待觸發佇列

        只有 due_at 晚於目前時間的事件才會加入，已過期的事件直接忽略。
        同一 record_id 已在佇列中時會被取代。

        Args:
            event: 事件

        Returns:
            是否有加入佇列
        """
        with self._lock:
            if event.due_at <= self._clock():
                return False
            self._due = [entry for entry in self._due if entry[1].record_id != event.record_id]
            self._sequence += 1
            self._due.append((self._sequence, event))
            return True

    def remove_by_id(self, record_id: int) -> bool:
        """
        從 full set 和待觸發佇列移除事件

        Returns:
            任一集合中是否有移除
        """
        with self._lock:
            removed = self._events.pop(record_id, None) is not None
            remaining = [entry for entry in self._due if entry[1].record_id != record_id]
            if len(remaining) != len(self._due):
                removed = True
                self._due = remaining
            return removed

    def find_by_id(self, record_id: int) -> Optional[Event]:
        with self._lock:
            return self._events.get(record_id)

    def is_due(self, record_id: int) -> bool:
        """事件是否仍在待觸發佇列中"""
        with self._lock:
            return any(entry[1].record_id == record_id for entry in self._due)

    def pop_due_before(self, now: float) -> List[Event]:
        """
        取出所有 due_at <= now 的事件

        Args:
            now: 目前時間（epoch 秒）

        Returns:
            依 due_at 遞增排序的到期事件
        """
        with self._lock:
            self._sort_due()
            split = 0
            while split < len(self._due) and self._due[split][1].due_at <= now:
                split += 1
            popped = [event for _, event in self._due[:split]]
            del self._due[:split]
            return popped

    def peek_earliest(self) -> Optional[float]:
        """回傳待觸發佇列中最早的 due_at，佇列為空時回傳 None"""
        with self._lock:
            if not self._due:
                return None
            return min(event.due_at for _, event in self._due)

    def all_events(self) -> List[Event]:
        with self._lock:
            return list(self._events.values())

    def due_events(self) -> List[Event]:
        """待觸發佇列的排序快照"""
        with self._lock:
            self._sort_due()
            return [event for _, event in self._due]

    def clear(self) -> None:
        """釋放所有事件"""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            self._due.clear()
        logger.debug(f"已釋放 {count} 個事件")

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def _sort_due(self) -> None:
        # 呼叫端需持有鎖
        self._due.sort(key=lambda entry: (entry[1].due_at, entry[0]))
