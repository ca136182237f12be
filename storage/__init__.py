"""
Storage 模組

事件目錄的紀錄讀寫與變更通知。
"""

from .records import RecordStore
from .watcher import DirectoryWatcher

__all__ = ['RecordStore', 'DirectoryWatcher']
