"""Tests for device id persistence."""

import json

from journale.core.device import (
    DEVICE_ID_KEY,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    resolve_device_id,
)


class TestResolveDeviceId:
    def test_override_is_not_persisted(self):
        store = InMemoryKeyValueStore()
        assert resolve_device_id("fixed-device", store) == "fixed-device"
        assert store.get(DEVICE_ID_KEY) is None

    def test_stored_id_is_reused(self):
        store = InMemoryKeyValueStore({DEVICE_ID_KEY: "stored-device"})
        assert resolve_device_id("", store) == "stored-device"

    def test_generated_id_is_stored(self):
        store = InMemoryKeyValueStore()
        device_id = resolve_device_id("", store)
        assert len(device_id) == 32
        int(device_id, 16)
        assert store.get(DEVICE_ID_KEY) == device_id
        assert resolve_device_id("", store) == device_id


class TestJsonFileKeyValueStore:
    def test_missing_file_reads_empty(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "device.json")
        assert store.get(DEVICE_ID_KEY) is None

    def test_set_creates_parent_dirs_and_persists(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "device.json"
        JsonFileKeyValueStore(path).set(DEVICE_ID_KEY, "abc")

        assert json.loads(path.read_text()) == {DEVICE_ID_KEY: "abc"}
        assert JsonFileKeyValueStore(path).get(DEVICE_ID_KEY) == "abc"

    def test_set_keeps_other_keys(self, tmp_path):
        path = tmp_path / "device.json"
        path.write_text(json.dumps({"other": "value"}))

        JsonFileKeyValueStore(path).set(DEVICE_ID_KEY, "abc")

        assert json.loads(path.read_text()) == {"other": "value", DEVICE_ID_KEY: "abc"}
        assert [p.name for p in tmp_path.iterdir()] == ["device.json"]

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "device.json"
        path.write_text("{not json")
        store = JsonFileKeyValueStore(path)

        assert store.get(DEVICE_ID_KEY) is None
        store.set(DEVICE_ID_KEY, "fresh")
        assert store.get(DEVICE_ID_KEY) == "fresh"

    def test_non_string_value_ignored(self, tmp_path):
        path = tmp_path / "device.json"
        path.write_text(json.dumps({DEVICE_ID_KEY: 42}))
        assert JsonFileKeyValueStore(path).get(DEVICE_ID_KEY) is None

    def test_survives_restart_through_resolver(self, tmp_path):
        path = tmp_path / "device.json"
        first = resolve_device_id("", JsonFileKeyValueStore(path))
        second = resolve_device_id("", JsonFileKeyValueStore(path))
        assert first == second
