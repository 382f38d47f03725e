"""Unit tests for preset storage."""

import json
from datetime import datetime, timezone

import pytest

from src.core.models import DisplayMode, Preset, PresetConfig
from src.utils.preset_storage import PresetStore


def make_preset(preset_id, user_id="u1", mode=DisplayMode.MODEL, style="", name=None, description=None, use_count=0):
    return Preset(
        id=preset_id,
        name=name or f"Preset {preset_id}",
        description=description,
        user_id=user_id,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        use_count=use_count,
        config=PresetConfig(type=mode, style=style),
    )


@pytest.fixture
def store(tmp_path):
    """Return a store backed by a file in a temporary directory."""
    return PresetStore(tmp_path / "data" / "presets.json")


class TestPresetStore:
    """Tests for PresetStore."""

    def test_missing_file_is_empty(self, store):
        """Test that a store without a file has no presets."""
        assert store.get_all() == []

    def test_save_and_get(self, store):
        """Test that a saved preset can be read back."""
        preset = make_preset("p1", style="韩系")

        store.save(preset)

        assert store.get_all() == [preset]
        assert store.get_by_id("p1") == preset
        assert store.get_by_id("missing") is None

    def test_file_uses_camel_case(self, store):
        """Test the on-disk format uses the camelCase field names."""
        store.save(make_preset("p1"))

        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert data[0]["userId"] == "u1"
        assert data[0]["useCount"] == 0
        assert data[0]["config"]["type"] == "MODEL"

    def test_save_replaces_same_id(self, store):
        """Test that saving an existing id updates it in place."""
        store.save(make_preset("p1"))
        store.save(make_preset("p2"))
        store.save(make_preset("p1", name="Renamed"))

        presets = store.get_all()
        assert [p.id for p in presets] == ["p1", "p2"]
        assert presets[0].name == "Renamed"

    def test_delete(self, store):
        """Test deleting existing and unknown presets."""
        store.save(make_preset("p1"))

        assert store.delete("p1") is True
        assert store.delete("p1") is False
        assert store.get_all() == []

    def test_corrupt_file_reads_empty(self, store):
        """Test that an unreadable file is treated as empty."""
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")

        assert store.get_all() == []

    def test_increment_use_count(self, store):
        """Test that using a preset bumps its count and update time."""
        store.save(make_preset("p1", use_count=2))

        updated = store.increment_use_count("p1")

        assert updated.use_count == 3
        assert updated.updated_at > datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert store.get_by_id("p1").use_count == 3

    def test_increment_use_count_unknown(self, store):
        """Test incrementing an unknown preset returns None."""
        assert store.increment_use_count("missing") is None

    def test_filter(self, store):
        """Test combined filter criteria."""
        store.save(make_preset("p1", user_id="u1", mode=DisplayMode.MODEL, style="韩系", name="Spring Park"))
        store.save(make_preset("p2", user_id="u1", mode=DisplayMode.PRODUCT, style="简约", description="white flat lay"))
        store.save(make_preset("p3", user_id="u2", mode=DisplayMode.MODEL, style="韩系"))

        assert [p.id for p in store.filter(user_id="u1")] == ["p1", "p2"]
        assert [p.id for p in store.filter(type=DisplayMode.MODEL)] == ["p1", "p3"]
        assert [p.id for p in store.filter(style="韩系", user_id="u2")] == ["p3"]
        assert [p.id for p in store.filter(search="PARK")] == ["p1"]
        assert [p.id for p in store.filter(search="flat")] == ["p2"]
        assert [p.id for p in store.get_user_presets("u2")] == ["p3"]

    def test_get_most_used(self, store):
        """Test most used presets come first and respect the limit."""
        for i, count in enumerate([1, 9, 4]):
            store.save(make_preset(f"p{i}", use_count=count))

        assert [p.id for p in store.get_most_used(limit=2)] == ["p1", "p2"]

    def test_invalid_record_skipped_on_read(self, store):
        """Test that one invalid record does not hide the valid ones."""
        valid = make_preset("a").model_dump(mode="json", by_alias=True)
        invalid = dict(make_preset("b").model_dump(mode="json", by_alias=True), useCount=-1)
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps([valid, invalid]), encoding="utf-8")

        assert [p.id for p in store.get_all()] == ["a"]

    def test_save_keeps_existing_records_next_to_invalid_one(self, store):
        """Test that saving after an invalid record keeps every record on disk."""
        valid = make_preset("a").model_dump(mode="json", by_alias=True)
        invalid = dict(make_preset("b").model_dump(mode="json", by_alias=True), useCount=-1)
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps([valid, invalid]), encoding="utf-8")

        store.save(make_preset("c"))

        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert [r["id"] for r in data] == ["a", "b", "c"]
        assert data[1]["useCount"] == -1
        assert [p.id for p in store.get_all()] == ["a", "c"]

    def test_delete_keeps_invalid_records(self, store):
        """Test that deleting one preset leaves unrelated records alone."""
        valid = make_preset("a").model_dump(mode="json", by_alias=True)
        invalid = dict(make_preset("b").model_dump(mode="json", by_alias=True), useCount=-1)
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps([valid, invalid]), encoding="utf-8")

        assert store.delete("a") is True

        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert [r["id"] for r in data] == ["b"]

    def test_save_refuses_unparseable_file(self, store):
        """Test that writes fail instead of overwriting an unreadable file."""
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError):
            store.save(make_preset("c"))
        with pytest.raises(ValueError):
            store.delete("c")

        assert store.path.read_text(encoding="utf-8") == "{not json"
