"""
測試事件目錄的紀錄讀寫
"""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

from schemas.event_types import Event
from storage.records import RecordStore


class TestRecordStore:
    """測試 RecordStore 類別"""

    @pytest.fixture
    def events_dir(self):
        temp_dir = tempfile.mkdtemp()
        yield Path(temp_dir)
        shutil.rmtree(temp_dir)

    @pytest.fixture
    def records(self, events_dir):
        return RecordStore(events_dir)

    def test_write_read_round_trip(self, records, events_dir):
        """測試寫入的三個欄位可以完整讀回"""
        written = records.write("dentist", when=1893456000, where="Office 3F", what="牙醫回診")

        event = records.read("dentist")

        assert event == written
        assert event.record_id == os.stat(events_dir / "dentist").st_ino
        assert event.display_name == "dentist"
        assert event.due_at == 1893456000
        assert event.location == "Office 3F"
        assert event.description == "牙醫回診"

    def test_missing_fields_default_to_zero(self, records, events_dir):
        """測試缺少欄位時使用零值"""
        (events_dir / "partial").write_text("where: Park\n", encoding="utf-8")

        event = records.read("partial")

        assert event.due_at == 0
        assert event.location == "Park"
        assert event.description == ""

    @pytest.mark.parametrize("content", [
        "",
        "when: [unterminated",
        "- just\n- a list\n",
        "when: soon\nwhat: 42\n",
        "when: -5\n",
    ])
    def test_malformed_records(self, records, events_dir, content):
        """測試格式錯誤的紀錄不會失敗，時間一律為 0"""
        (events_dir / "broken").write_text(content, encoding="utf-8")

        event = records.read("broken")

        assert event is not None
        assert event.due_at == 0

    def test_non_text_fields_are_stringified(self, records, events_dir):
        """測試非字串欄位轉為文字"""
        (events_dir / "numbers").write_text("when: 100\nwhere: 12\nwhat: null\n", encoding="utf-8")

        event = records.read("numbers")

        assert event.location == "12"
        assert event.description == ""

    def test_read_missing_file(self, records):
        """測試讀取不存在的紀錄回傳 None"""
        assert records.read("nothing") is None

    def test_write_keeps_inode(self, records):
        """測試覆寫紀錄後識別碼不變"""
        first = records.write("meeting", when=100, where="A", what="x")
        second = records.write("meeting", when=200, where="B", what="y")

        assert first.record_id == second.record_id
        assert second.due_at == 200

    def test_list_names_skips_hidden_and_directories(self, records, events_dir):
        """測試列舉時略過隱藏檔與子目錄"""
        records.write("b", when=1)
        records.write("a", when=1)
        (events_dir / ".hidden").write_text("when: 1\n", encoding="utf-8")
        (events_dir / "subdir").mkdir()

        assert records.list_names() == ["a", "b"]

    def test_list_names_includes_hidden_when_enabled(self, events_dir):
        """測試 include_hidden 開啟時包含隱藏檔"""
        (events_dir / ".hidden").write_text("when: 1\n", encoding="utf-8")

        assert RecordStore(events_dir, include_hidden=True).list_names() == [".hidden"]

    def test_delete(self, records, events_dir):
        """測試刪除紀錄"""
        event = records.write("gone", when=1)

        assert records.delete(event) is True
        assert not (events_dir / "gone").exists()
        assert records.delete(event) is False

    def test_delete_refuses_other_record(self, records, events_dir):
        """測試檔名指向其他紀錄時不刪除"""
        event = records.write("keep-me", when=1)
        stranger = Event(record_id=event.record_id + 1, display_name="keep-me")

        assert records.delete(stranger) is False
        assert (events_dir / "keep-me").exists()

    def test_exists(self, events_dir):
        """測試目錄存在判斷"""
        assert RecordStore(events_dir).exists() is True
        assert RecordStore(events_dir / "missing").exists() is False


if __name__ == "__main__":
    pytest.main([__file__])
