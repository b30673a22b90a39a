"""Tests for hotspot modification validation and merging."""

import pytest

from pyagscrm.format import Hotspot, HotspotModification, apply_modifications, validate_modifications
from pyagscrm.format.edits import (
    validate_hotspot_id,
    validate_hotspots,
    validate_interaction,
    validate_walk_to,
)


@pytest.fixture
def hotspots():
    """A small hotspot set as read from a room."""
    return [
        Hotspot(id=1, name="Staff Door", script_name="hStaffDoor"),
        Hotspot(id=2, name="Lock", script_name="hLock", properties={"color": "red"}),
    ]


class TestModificationParsing:
    """Test building modifications from external data."""

    def test_from_dict_camel_case(self):
        """Test camelCase keys and a walk-to object."""
        mod = HotspotModification.from_dict(
            {"id": 1, "scriptName": "hMain", "walkTo": {"x": 150, "y": 200}}
        )
        assert mod.script_name == "hMain"
        assert mod.walk_to == (150, 200)
        assert mod.changed_fields() == ["script_name", "walk_to"]

    def test_from_dict_walk_to_list(self):
        """Test a walk-to given as a pair."""
        mod = HotspotModification.from_dict({"id": 1, "walk_to": [3, 4]})
        assert mod.walk_to == (3, 4)

    def test_missing_id(self):
        """Test that a modification needs an id."""
        with pytest.raises(KeyError):
            HotspotModification.from_dict({"name": "Door"})


class TestValidation:
    """Test validation rules."""

    @pytest.mark.parametrize("hotspot_id", [0, 1, 49])
    def test_valid_ids(self, hotspot_id):
        """Test the id range ends."""
        assert validate_hotspot_id(hotspot_id) == []

    @pytest.mark.parametrize("hotspot_id", [-1, 50, 100, "3", None, True])
    def test_invalid_ids(self, hotspot_id):
        """Test ids outside the range or of the wrong type."""
        errors = validate_hotspot_id(hotspot_id)
        assert errors == [f"Invalid hotspot ID: {hotspot_id} (must be 0-49)"]

    def test_walk_to_range(self):
        """Test coordinate bounds."""
        assert validate_walk_to(1, (0, 9999)) == []
        assert validate_walk_to(1, (-1, 5))
        assert validate_walk_to(1, (5, 10000))
        assert validate_walk_to(1, (5.5, 3))
        assert validate_walk_to(1, (1,))

    def test_script_name_grammar(self):
        """Test that script names must be identifiers."""
        assert validate_modifications([HotspotModification(id=1, script_name="hDoor_2")]) == []
        errors = validate_modifications([HotspotModification(id=1, script_name="2Door")])
        assert any("must be valid identifier" in e for e in errors)
        errors = validate_modifications([HotspotModification(id=1, script_name="h Door")])
        assert any("must be valid identifier" in e for e in errors)

    def test_name_length(self):
        """Test display name length limits."""
        assert validate_modifications([HotspotModification(id=1, name="x" * 50)]) == []
        assert validate_modifications([HotspotModification(id=1, name="x" * 51)])
        assert validate_modifications([HotspotModification(id=1, name="")])

    def test_name_length_counts_bytes(self):
        """Test that non-ASCII names are limited by their UTF-8 size."""
        assert validate_modifications([HotspotModification(id=1, name="é" * 25)]) == []
        errors = validate_modifications([HotspotModification(id=1, name="é" * 30)])
        assert errors == ["Invalid name for hotspot 1: length must be 1-50 bytes"]

    def test_collects_all_errors(self):
        """Test that every problem is reported."""
        errors = validate_modifications([
            HotspotModification(id=60),
            HotspotModification(id=1, walk_to=(10000, 0)),
        ])
        assert len(errors) == 2
        assert "Invalid walk-to coordinates" in errors[1]

    def test_duplicate_ids(self):
        """Test that a hotspot set may not repeat an id."""
        errors = validate_hotspots([
            Hotspot(id=1, name="A", script_name="hA"),
            Hotspot(id=1, name="B", script_name="hB"),
        ])
        assert errors == ["Duplicate hotspot ID: 1"]

    def test_interaction(self):
        """Test interaction edit validation."""
        assert validate_interaction(1, "Look", "hDoor_Look") == []
        assert validate_interaction(1, "Any") == []
        assert validate_interaction(1, "Dance")
        assert validate_interaction(1, "Look", "")
        assert validate_interaction(1, "Look", "not valid")
        assert validate_interaction(1, "Look", "f" * 101)
        assert validate_interaction(50, "Look")


class TestApplyModifications:
    """Test overlay merging."""

    def test_updates_fields(self, hotspots):
        """Test changing fields of an existing hotspot."""
        merged = apply_modifications(
            hotspots,
            [HotspotModification(id=1, name="Main Entrance", script_name="hMainEntrance", walk_to=(150, 200))],
        )
        assert merged[0].name == "Main Entrance"
        assert merged[0].script_name == "hMainEntrance"
        assert merged[0].walk_to == (150, 200)
        assert merged[1] == hotspots[1]

    def test_input_not_mutated(self, hotspots):
        """Test that the read set stays unchanged."""
        apply_modifications(hotspots, [HotspotModification(id=1, name="Other")])
        assert hotspots[0].name == "Staff Door"

    def test_new_hotspot(self, hotspots):
        """Test that an unknown id adds a placeholder hotspot."""
        merged = apply_modifications(hotspots, [HotspotModification(id=0, name="Main Entrance")])
        assert [h.id for h in merged] == [0, 1, 2]
        assert merged[0].name == "Main Entrance"
        assert merged[0].script_name == "hHotspot0"

    def test_properties_merge(self, hotspots):
        """Test that properties are merged key by key."""
        merged = apply_modifications(
            hotspots, [HotspotModification(id=2, properties={"size": 3}, enabled=False)]
        )
        assert merged[1].properties == {"color": "red", "size": 3}
        assert not merged[1].enabled
        assert hotspots[1].properties == {"color": "red"}
