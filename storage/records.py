"""
檔案紀錄存取

每個提醒對應事件目錄中的一個 YAML 檔案，內含 when / where / what 三個欄位。
紀錄識別碼使用檔案的 inode，改名後仍維持不變。
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml

from schemas.event_types import Event

logger = logging.getLogger(__name__)

WHEN_FIELD = "when"
WHERE_FIELD = "where"
WHAT_FIELD = "what"

# when 欄位為 32 位元無號整數
MAX_WHEN = 2 ** 32 - 1


def _parse_when(value) -> int:
    if isinstance(value, bool):
        return 0
    try:
        when = int(value)
    except (TypeError, ValueError):
        return 0
    if when < 0 or when > MAX_WHEN:
        return 0
    return when


def _parse_text(value) -> str:
    if value is None:
        return ""
    return str(value)


class RecordStore:
    """事件目錄的紀錄讀寫"""

    def __init__(self, directory: Path, include_hidden: bool = False):
        """
        Args:
            directory: 事件目錄
            include_hidden: 是否包含以 . 開頭的檔案
        """
        self.directory = Path(directory)
        self.include_hidden = include_hidden

    def exists(self) -> bool:
        return self.directory.is_dir()

    def is_record_name(self, name: str) -> bool:
        return self.include_hidden or not name.startswith(".")

    def list_names(self) -> List[str]:
        """列出目錄中所有紀錄的檔名"""
        names = []
        with os.scandir(self.directory) as entries:
            for entry in entries:
                if entry.is_file(follow_symlinks=False) and self.is_record_name(entry.name):
                    names.append(entry.name)
        return sorted(names)

    def read(self, name: str) -> Optional[Event]:
        """
        讀取紀錄並轉換為 Event

        缺少或無法解析的欄位以零值代替（時間 0、空字串）。

        Args:
            name: 檔名

        Returns:
            Event，檔案已不存在時回傳 None
        """
        path = self.directory / name
        try:
            stat = path.stat()
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            logger.debug(f"紀錄已不存在：{path}")
            return None
        except OSError as e:
            logger.warning(f"無法讀取紀錄 {path}：{e}")
            return None

        try:
            data = yaml.safe_load(content) if content.strip() else {}
        except yaml.YAMLError as e:
            logger.debug(f"紀錄格式錯誤 {path}：{e}")
            data = {}
        if not isinstance(data, dict):
            data = {}

        return Event(
            record_id=stat.st_ino,
            display_name=name,
            due_at=_parse_when(data.get(WHEN_FIELD)),
            location=_parse_text(data.get(WHERE_FIELD)),
            description=_parse_text(data.get(WHAT_FIELD)),
        )

    def write(self, name: str, when: int, where: str = "", what: str = "") -> Event:
        """
        寫入紀錄；檔案已存在時就地覆寫，保留 inode

        Returns:
            寫入後重新讀回的 Event
        """
        path = self.directory / name
        data = {
            WHEN_FIELD: int(when),
            WHERE_FIELD: where,
            WHAT_FIELD: what,
        }
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
        event = self.read(name)
        if event is None:
            raise FileNotFoundError(path)
        return event

    def delete(self, event: Event) -> bool:
        """
        刪除事件對應的紀錄檔

        若檔名目前指向不同 inode（已被改名或取代）則不刪除。

        Returns:
            是否成功刪除
        """
        path = self.directory / event.display_name
        try:
            if path.stat().st_ino != event.record_id:
                logger.warning(f"紀錄 {path} 已不屬於事件 {event.record_id}，略過刪除")
                return False
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"紀錄已被刪除：{path}")
            return False
        logger.info(f"已刪除紀錄：{path}")
        return True
