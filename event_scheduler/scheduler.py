"""
事件排程器

單一背景 asyncio task：計算距離最早待觸發事件的時間，等待到期或被喚醒，
再依時間順序取出到期事件並交給通知介面處理。
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Optional

from schemas.event_types import Decision, Event, SchedulerState
from .store import EventStore

logger = logging.getLogger(__name__)


class EventScheduler:
    """睡到到期為止的事件迴圈"""

    def __init__(
        self,
        store: EventStore,
        sink: Any,
        delete_record: Optional[Callable[[Event], Any]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        初始化事件排程器

        Args:
            store: 事件儲存區
            sink: 通知介面，需提供 present(location, description)，可為同步或異步
            delete_record: 使用者選擇刪除時呼叫，用來刪除後端紀錄
            clock: 取得目前 epoch 秒數的函數
        """
        self.store = store
        self.sink = sink
        self.delete_record = delete_record
        self.clock = clock

        self.state = SchedulerState.IDLE
        self.delivered_count = 0

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wakeup: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        """啟動排程迴圈"""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name="remember-event-loop")
        logger.info("事件排程器已啟動")

    def notify(self):
        """
        喚醒等待中的排程迴圈

        可從任何執行緒呼叫；非事件迴圈執行緒會透過 call_soon_threadsafe 轉交。
        """
        loop, wakeup = self._loop, self._wakeup
        if loop is None or wakeup is None or loop.is_closed():
            return

        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is loop:
            wakeup.set()
        else:
            loop.call_soon_threadsafe(wakeup.set)

    async def shutdown(self, timeout: Optional[float] = None):
        """
        要求迴圈停止並等待其結束

        Args:
            timeout: 最長等待秒數；逾時會取消 task（例如通知對話框仍未關閉）
        """
        if self._task is None:
            self.state = SchedulerState.STOPPED
            return

        self._stopping = True
        self.notify()
        try:
            await asyncio.wait_for(self._task, timeout)
        except asyncio.TimeoutError:
            logger.warning("事件排程器未在時限內結束，已取消")
        self._task = None
        self.state = SchedulerState.STOPPED
        logger.info("事件排程器已關閉")

    async def _run(self):
        try:
            while not self._stopping:
                self.state = SchedulerState.IDLE
                # 先清除訊號再讀取佇列，期間的喚醒不會遺失
                self._wakeup.clear()

                due_events = self.store.pop_due_before(self.clock())
                if due_events:
                    self.state = SchedulerState.DRAINING
                    for event in due_events:
                        if self._stopping:
                            break
                        await self._deliver(event)
                    continue

                earliest = self.store.peek_earliest()
                timeout = None if earliest is None else max(0.0, earliest - self.clock())
                self.state = SchedulerState.WAITING
                await self._wait(timeout)
        finally:
            self.state = SchedulerState.STOPPED

    async def _wait(self, timeout: Optional[float]):
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout)
        except asyncio.TimeoutError:
            pass

    async def _deliver(self, event: Event):
        """
        觸發單一事件

        任何錯誤只影響此事件，不會中斷排程迴圈。
        """
        try:
            decision = await self._present(event)
            self.delivered_count += 1
            logger.info(f"已觸發事件：{event.display_name} → {decision.value}")

            if decision is Decision.DELETE and self.delete_record is not None:
                try:
                    result = self.delete_record(event)
                    if inspect.isawaitable(result):
                        await result
                except OSError as e:
                    logger.warning(f"刪除紀錄失敗：{event.display_name}, 錯誤：{e}")
        except Exception as e:
            logger.error(f"觸發事件時發生錯誤：{event.display_name}, 錯誤：{e}")

    async def _present(self, event: Event) -> Decision:
        present = self.sink.present

        # 同步的通知介面會阻塞，放到執行緒中執行
        if inspect.iscoroutinefunction(present):
            decision = await present(event.location, event.description)
        else:
            decision = await asyncio.to_thread(present, event.location, event.description)

        if isinstance(decision, Decision):
            return decision
        return Decision(str(decision).lower())
