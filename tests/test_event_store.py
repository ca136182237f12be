"""
測試 EventStore
"""

import threading
import time

import pytest

from event_scheduler.store import EventStore
from schemas.event_types import Event


class FakeClock:
    """可手動調整的時鐘"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_event(record_id: int, due_at: float, name: str = "") -> Event:
    return Event(record_id=record_id, display_name=name or f"event-{record_id}", due_at=due_at)


class TestEventStore:
    """測試 EventStore 類別"""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return EventStore(clock=clock)

    def test_upsert_full_replaces_by_id(self, store):
        """測試相同 id 會取代舊事件"""
        store.upsert_full(make_event(1, 2000, "old"))
        store.upsert_full(make_event(1, 3000, "new"))

        assert len(store) == 1
        assert store.find_by_id(1).display_name == "new"

    def test_insert_due_future_only(self, store):
        """測試只有未來事件會進入待觸發佇列"""
        future = make_event(1, 1001)
        now = make_event(2, 1000)
        past = make_event(3, 10)

        assert store.insert_due(future) is True
        assert store.insert_due(now) is False
        assert store.insert_due(past) is False

        assert [e.record_id for e in store.due_events()] == [1]

    def test_past_insert_never_popped(self, store, clock):
        """測試過期事件不會出現在之後的 pop 結果中"""
        store.upsert_full(make_event(1, 900))
        store.insert_due(make_event(1, 900))

        clock.now = 5000
        assert store.pop_due_before(clock.now) == []
        # 仍保留在 full set
        assert store.find_by_id(1) is not None

    def test_pop_due_before_order(self, store):
        """測試依 due_at 遞增順序取出"""
        for record_id, due_at in [(1, 1050), (2, 1010), (3, 1030), (4, 1200)]:
            event = make_event(record_id, due_at)
            store.upsert_full(event)
            store.insert_due(event)

        popped = store.pop_due_before(1100)

        assert [e.record_id for e in popped] == [2, 3, 1]
        assert [e.record_id for e in store.due_events()] == [4]

    def test_pop_due_before_stable_for_ties(self, store):
        """測試相同 due_at 時保留插入順序"""
        for record_id in [5, 3, 9]:
            store.insert_due(make_event(record_id, 1100))

        assert [e.record_id for e in store.pop_due_before(1100)] == [5, 3, 9]

    def test_pop_due_before_inclusive(self, store):
        """測試 due_at == now 時會被取出"""
        store.insert_due(make_event(1, 1100))

        assert [e.record_id for e in store.pop_due_before(1100)] == [1]
        assert store.pop_due_before(1100) == []

    def test_peek_earliest(self, store):
        """測試取得最早的到期時間"""
        assert store.peek_earliest() is None

        store.insert_due(make_event(1, 1500))
        store.insert_due(make_event(2, 1200))

        assert store.peek_earliest() == 1200

    def test_remove_by_id(self, store):
        """測試移除後 full set 與佇列都不再包含該事件"""
        event = make_event(1, 1500)
        store.upsert_full(event)
        store.insert_due(event)

        assert store.remove_by_id(1) is True
        assert store.find_by_id(1) is None
        assert store.is_due(1) is False
        assert store.peek_earliest() is None

    def test_remove_missing_id(self, store):
        """測試移除不存在的 id 為無害操作"""
        assert store.remove_by_id(42) is False

    def test_insert_due_replaces_same_id(self, store):
        """測試同一 id 重複加入佇列時只保留最新的"""
        store.insert_due(make_event(1, 1500))
        store.insert_due(make_event(1, 1300))

        assert [e.due_at for e in store.due_events()] == [1300]

    def test_clear(self, store):
        """測試釋放所有事件"""
        event = make_event(1, 1500)
        store.upsert_full(event)
        store.insert_due(event)

        store.clear()

        assert len(store) == 0
        assert store.due_events() == []

    def test_concurrent_access(self):
        """測試多執行緒同時插入與取出不會遺失或重複事件"""
        store = EventStore()
        base = time.time() + 3600
        popped = []

        def writer(offset):
            for i in range(200):
                event = make_event(offset + i, base + i)
                store.upsert_full(event)
                store.insert_due(event)

        threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        popped.extend(store.pop_due_before(base + 10000))

        assert len(popped) == 800
        assert len({e.record_id for e in popped}) == 800
        due_times = [e.due_at for e in popped]
        assert due_times == sorted(due_times)


if __name__ == "__main__":
    pytest.main([__file__])
