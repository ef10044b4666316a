"""Tests for device-local storage and preferences."""

import pytest

from pitchperfect.core.local_storage import JsonFileStorage, read_json, write_json
from pitchperfect.core.preferences import (
    DEFAULT_DURATION,
    DURATION_KEY,
    Theme,
    get_preset_info,
    get_stored_duration,
    get_theme,
    is_sound_enabled,
    save_duration,
    save_theme,
    set_sound_enabled,
)


class TestJsonFileStorage:
    def test_roundtrip_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "storage.json"
        JsonFileStorage(path).set_item("k", "v")

        assert JsonFileStorage(path).get_item("k") == "v"

    def test_missing_file_reads_empty(self, tmp_path):
        assert JsonFileStorage(tmp_path / "none.json").get_item("k") is None

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{not json", encoding="utf-8")

        storage = JsonFileStorage(path)

        assert storage.get_item("k") is None
        storage.set_item("k", "v")
        assert storage.get_item("k") == "v"

    def test_remove(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "storage.json")
        storage.set_item("k", "v")

        storage.remove_item("k")
        storage.remove_item("absent")

        assert storage.get_item("k") is None


def test_read_json_ignores_corrupt_value(storage):
    storage.set_item("blob", "{oops")
    write_json(storage, "ok", {"a": 1})

    assert read_json(storage, "blob") is None
    assert read_json(storage, "ok") == {"a": 1}
    assert read_json(storage, "missing") is None


class TestDuration:
    def test_default(self, storage):
        assert get_stored_duration(storage) == DEFAULT_DURATION

    @pytest.mark.parametrize("raw", ["abc", "-2", "0"])
    def test_invalid_stored_value(self, storage, raw):
        storage.set_item(DURATION_KEY, raw)

        assert get_stored_duration(storage) == DEFAULT_DURATION

    def test_save(self, storage):
        save_duration(storage, 0.5)

        assert storage.get_item(DURATION_KEY) == "0.5"
        assert get_stored_duration(storage) == 0.5

    def test_save_rejects_non_positive(self, storage):
        with pytest.raises(ValueError):
            save_duration(storage, 0)

    def test_preset_info(self):
        assert get_preset_info(5).description == "Demo Day"
        custom = get_preset_info(7)
        assert custom.label == "7 min"
        assert custom.description == "Custom"
        assert get_preset_info(0.75).label == "45s"


class TestThemeAndSound:
    def test_theme(self, storage):
        assert get_theme(storage) == Theme.SYSTEM
        save_theme(storage, Theme.DARK)
        assert get_theme(storage) == Theme.DARK

        storage.set_item("pitchperfect-theme", "neon")
        assert get_theme(storage) == Theme.SYSTEM

    def test_sound_defaults_on(self, storage):
        assert is_sound_enabled(storage) is True
        set_sound_enabled(storage, False)
        assert is_sound_enabled(storage) is False
        storage.set_item("pitchperfect_sound_enabled", "garbage")
        assert is_sound_enabled(storage) is True
