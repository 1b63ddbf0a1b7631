"""
List entry classification and FeatureData validation.
"""
import pytest

from scratchkit.models import FeatureData, LegacyEntry, V2Entry, parse_entry, serialize_entries


@pytest.mark.parametrize("raw", [
    {"title": "Old", "file": "old"},
    {"version": 1, "file": "old"},
    {"version": 2},
    ["not", "an", "object"],
    None,
])
def test_non_v2_entries_are_legacy_and_round_trip(raw):
    entry = parse_entry(raw)

    assert isinstance(entry, LegacyEntry)
    assert serialize_entries([entry]) == [raw]


def test_v2_entry_keeps_unknown_keys():
    raw = {"version": 2, "id": "feat", "versionAdded": "1.0", "hidden": True}

    entry = parse_entry(raw)

    assert isinstance(entry, V2Entry)
    assert entry.to_dict() == raw


def test_v2_entry_serializes_as_read():
    raw = {"id": 7, "version": 2}

    entry = parse_entry(raw)

    assert entry.identifier == "7"
    assert entry.version_added == "..."
    assert list(entry.to_dict().items()) == [("id", 7), ("version", 2)]
    assert V2Entry(id="new").to_dict() == {"version": 2, "id": "new", "versionAdded": "..."}


def test_legacy_identifier_prefers_id():
    assert LegacyEntry({"id": "explicit", "file": "other"}).identifier == "explicit"
    assert LegacyEntry({"file": "other", "id": ""}).identifier == "other"
    assert LegacyEntry({"title": "only"}).identifier is None


def test_feature_data_rejects_non_object():
    with pytest.raises(ValueError):
        FeatureData.from_dict(["title"])


def test_feature_data_preserves_unknown_keys():
    raw = {"title": "T", "scripts": [{"file": "a.js", "runOn": "/", "module": True}], "manifest": 3}

    data = FeatureData.from_dict(raw)

    assert data.extra == {"manifest": 3}
    assert data.to_dict()["scripts"] == [{"file": "a.js", "runOn": "/", "module": True}]
    assert data.to_dict()["manifest"] == 3
