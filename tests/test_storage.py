"""
Unit Tests for Storage
Tests for: custom pattern persistence, corrupt data recovery, per-user paths
"""
import json
import os
from unittest.mock import MagicMock

from moodscape.patterns import BOX_BREATHING, BreathingPattern, NamedBreathingPattern
from moodscape.storage import (
    JsonFileStore,
    MemoryStore,
    load_custom_patterns,
    save_custom_patterns,
    user_path,
)

MY_CALM = NamedBreathingPattern("My Calm", BreathingPattern(5, 2, 7, 0), is_custom=True)


class TestUserPath:
    """Test per-user file naming"""

    def test_strips_unsafe_characters(self, tmp_path):
        path = user_path("Alice Smith/../x", "custom_patterns", data_dir=str(tmp_path))

        assert path == os.path.join(str(tmp_path), "alicesmithx_custom_patterns.json")

    def test_empty_username_gets_placeholder(self, tmp_path):
        assert user_path("!!", "slot", data_dir=str(tmp_path)).endswith("anonymous_slot.json")


class TestLoadCustomPatterns:
    """Test reading the custom pattern slot"""

    def test_absent_slot_is_empty(self, store):
        assert load_custom_patterns(store) == []

    def test_no_store_is_empty(self):
        assert load_custom_patterns(None) == []

    def test_corrupt_json_is_empty(self):
        assert load_custom_patterns(MemoryStore("{not json")) == []

    def test_non_list_is_empty(self):
        assert load_custom_patterns(MemoryStore('{"name": "x"}')) == []

    def test_read_failure_is_empty(self):
        broken = MagicMock()
        broken.load.side_effect = OSError("disk gone")

        assert load_custom_patterns(broken) == []

    def test_skips_malformed_and_non_custom_entries(self):
        store = MemoryStore(json.dumps([
            MY_CALM.to_dict(),
            {"name": "Broken", "pattern": {"inhale": 1}},
            BOX_BREATHING.to_dict(),
        ]))

        assert load_custom_patterns(store) == [MY_CALM]


class TestSaveCustomPatterns:
    """Test writing the custom pattern slot"""

    def test_only_custom_entries_are_written(self, store):
        assert save_custom_patterns(store, [BOX_BREATHING, MY_CALM]) is True

        assert store.load() == [MY_CALM.to_dict()]

    def test_round_trip_excludes_builtins(self, store):
        save_custom_patterns(store, [BOX_BREATHING, MY_CALM])

        assert [p.name for p in load_custom_patterns(store)] == ["My Calm"]

    def test_overwrites_unconditionally(self, store):
        save_custom_patterns(store, [MY_CALM])
        save_custom_patterns(store, [BOX_BREATHING])

        assert store.load() == []

    def test_write_failure_is_not_raised(self):
        broken = MagicMock()
        broken.save.side_effect = PermissionError("read-only")

        assert save_custom_patterns(broken, [MY_CALM]) is False


class TestJsonFileStore:
    """Test the on-disk store"""

    def test_save_creates_directory_and_loads_back(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "nested" / "alice_custom_patterns.json"))

        save_custom_patterns(store, [MY_CALM])

        assert load_custom_patterns(store) == [MY_CALM]

    def test_missing_file_loads_none_and_clear_is_safe(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "missing.json"))

        assert store.load() is None
        store.clear()

    def test_corrupt_file_recovers(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[{", encoding="utf-8")

        assert load_custom_patterns(JsonFileStore(str(path))) == []
