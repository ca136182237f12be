"""
Event Scheduler 模組

提供事件儲存、事件目錄同步，以及到期觸發的排程迴圈。
"""

from .store import EventStore
from .listener import ChangeListener
from .scheduler import EventScheduler

__all__ = ['EventStore', 'ChangeListener', 'EventScheduler']
