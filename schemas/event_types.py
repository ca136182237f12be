"""
提醒事件與紀錄變更通知的資料結構定義

Event 是單一提醒在記憶體中的表示；Record* 系列則是儲存目錄變更通知的封閉集合，
由 DirectoryWatcher 產生、ChangeListener 消費。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass
class Event:
    """單一提醒事件

    Attributes:
        record_id: 後端紀錄的穩定識別碼（檔案 inode，改名後不變）
        display_name: 紀錄目前的檔名
        due_at: 觸發時間（epoch 秒）
        location: 地點
        description: 內容
    """
    record_id: int
    display_name: str
    due_at: float = 0
    location: str = ""
    description: str = ""


class Decision(Enum):
    """使用者對提醒的處置"""
    DELETE = "delete"
    KEEP = "keep"


class SchedulerState(Enum):
    """排程迴圈狀態"""
    IDLE = "idle"
    WAITING = "waiting"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RecordCreated:
    """目錄中出現新紀錄"""
    record_id: int
    directory: str
    name: str


@dataclass(frozen=True)
class RecordRemoved:
    """紀錄被刪除"""
    record_id: int


@dataclass(frozen=True)
class RecordRenamed:
    """紀錄改名或移動；directory 為新的所在目錄"""
    record_id: int
    directory: str
    name: str


@dataclass(frozen=True)
class RecordAttributeChanged:
    """紀錄欄位內容變更"""
    record_id: int


RecordNotification = Union[RecordCreated, RecordRemoved, RecordRenamed, RecordAttributeChanged]
