"""Tests for the byte-level codec functions."""

import struct

import pytest

from pyagscrm import codec
from pyagscrm.format import (
    BlockNotFoundError,
    HotspotModification,
    InvalidLengthError,
    RoomRevision,
    TooSmallError,
    apply_modifications,
)

from conftest import DEFAULT_HANDLERS, SAMPLE_ROOM, block, build_room, legacy_table_file, string_block


class TestBlocks:
    """Test block listing and payload access."""

    def test_detect_revision(self, room_bytes):
        """Test revision detection through the codec."""
        assert codec.detect_revision(room_bytes) == RoomRevision.V360
        with pytest.raises(TooSmallError):
            codec.detect_revision(b"")

    def test_list_blocks(self, room_bytes):
        """Test listing blocks."""
        listing = codec.list_blocks(room_bytes)
        assert [b.name for b in listing.blocks] == ["Main", "CompScript3", "Properties"]

    @pytest.mark.parametrize("block_id", [7, "7", "CompScript3"])
    def test_extract(self, room_bytes, block_id):
        """Test extracting a payload by id or name."""
        assert codec.extract_block_payload(room_bytes, block_id) == DEFAULT_HANDLERS

    def test_extract_missing(self, room_bytes):
        """Test that an absent block gives None."""
        assert codec.extract_block_payload(room_bytes, 5) is None

    def test_replace_identity(self, room_bytes):
        """Test that replacing a payload with itself changes nothing."""
        for block in codec.list_blocks(room_bytes).blocks:
            payload = codec.extract_block_payload(room_bytes, block.id)
            assert codec.replace_block_payload(room_bytes, block.id, payload) == room_bytes

    def test_replace_same_size(self, room_bytes):
        """Test replacing a payload with new bytes of the same size."""
        new = b"\x02" * 64
        patched = codec.replace_block_payload(room_bytes, "Properties", new)
        assert len(patched) == len(room_bytes)
        assert codec.extract_block_payload(patched, 8) == new

    @pytest.mark.parametrize("revision", [24, 33])
    def test_replace_resized(self, revision):
        """Test that a resized payload updates the length and keeps later blocks."""
        data = build_room(revision=revision)
        patched = codec.replace_block_payload(data, "CompScript3", b"short")
        assert len(patched) == len(data) - len(DEFAULT_HANDLERS) + 5

        listing = codec.list_blocks(patched)
        assert listing.method == "sequential"
        assert [b.name for b in listing.blocks] == ["Main", "CompScript3", "Properties"]
        assert codec.extract_block_payload(patched, 7) == b"short"
        assert codec.extract_block_payload(patched, 8) == b"\x01" * 64

    def test_replace_resized_new_style_block(self):
        """Test growing a block with a string id."""
        data = struct.pack("<H", 33) + string_block("ext_data", b"xyz") + block(8, b"\x01" * 4) + b"\xff"
        patched = codec.replace_block_payload(data, "ext_data", b"longer payload")
        assert codec.extract_block_payload(patched, "ext_data") == b"longer payload"
        assert codec.extract_block_payload(patched, 8) == b"\x01" * 4

    def test_replace_resized_legacy_directory(self):
        """Test that a legacy table directory only takes same-size payloads."""
        data = legacy_table_file()
        assert codec.list_blocks(data).method == "legacy"
        with pytest.raises(InvalidLengthError):
            codec.replace_block_payload(data, 7, b"short")
        assert codec.replace_block_payload(data, 7, b"8 bytes!") == data[:72] + b"8 bytes!" + data[80:]

    def test_replace_missing(self, room_bytes):
        """Test replacing an absent block."""
        with pytest.raises(BlockNotFoundError):
            codec.replace_block_payload(room_bytes, "ObjNames", b"")


class TestHotspots:
    """Test hotspot read and write through the codec."""

    def test_read(self, room_bytes):
        """Test reading hotspots."""
        table = codec.read_hotspots(room_bytes)
        assert [h.name for h in table.hotspots] == ["Staff Door", "Lock", "Window"]

    def test_write_and_reread(self, room_file, room_bytes):
        """Test a write followed by a read of the same file."""
        table = codec.read_hotspots(room_bytes)
        hotspots = apply_modifications(
            table.hotspots,
            [HotspotModification(id=1, name="Main Entrance", script_name="hMainEntrance", walk_to=(150, 200))],
        )
        result = codec.write_hotspots(room_bytes, hotspots, room_file)
        assert result.success

        data = room_file.read_bytes()
        assert len(data) == len(room_bytes)
        reread = codec.read_hotspots(data).get(1)
        assert reread.name == "Main Entrance"
        assert reread.script_name == "hMainEntrance"


@pytest.mark.skipif(not SAMPLE_ROOM.exists(), reason="sample room file not available")
class TestSampleRoom:
    """Checks against a real compiled room."""

    @pytest.fixture
    def sample(self):
        return SAMPLE_ROOM.read_bytes()

    def test_staff_door(self, sample):
        """Test the cleaned Staff Door name."""
        table = codec.read_hotspots(sample)
        assert table.success
        doors = [h for h in table.hotspots if h.name == "Staff Door"]
        assert len(doors) == 1
        assert doors[0].script_name.startswith("h")

    def test_blocks(self, sample):
        """Test the Main and CompScript3 blocks."""
        listing = codec.list_blocks(sample)
        main = listing.find("Main")
        assert main is not None
        assert main.length > 100000
        assert listing.find("CompScript3") is not None

    def test_replace_identity(self, sample):
        """Test extract then replace leaves the file unchanged."""
        payload = codec.extract_block_payload(sample, "CompScript3")
        assert codec.replace_block_payload(sample, "CompScript3", payload) == sample

    def test_read_twice(self, sample):
        """Test reads do not depend on earlier reads."""
        assert codec.read_hotspots(sample).hotspots == codec.read_hotspots(sample).hotspots
