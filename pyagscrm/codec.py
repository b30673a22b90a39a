"""Byte-level room file operations used by the manager, tools and CLI.

Every function takes the whole file as ``bytes`` and returns a fresh result;
nothing is cached between calls.
"""

import struct
from pathlib import Path

from pyagscrm.config import FormatConfig
from pyagscrm.format.blocks import BlockListing, length_field_size, read_block_directory
from pyagscrm.format.errors import BlockNotFoundError, InvalidLengthError
from pyagscrm.format.hotspots import Hotspot, HotspotTable, HotspotTableReader
from pyagscrm.format.version import RoomRevision, detect
from pyagscrm.format.writer import RoomPatchWriter, WriteOptions, WriteResult


def detect_revision(data: bytes) -> RoomRevision:
    """Read the room file revision. Raises on short or unknown input."""
    return detect(data)


def list_blocks(data: bytes) -> BlockListing:
    """List the block directory (best effort, never raises for bad input)."""
    return read_block_directory(data)


def extract_block_payload(data: bytes, block_id) -> bytes | None:
    """Copy a block's payload, or None if the block is absent.

    ``block_id`` may be the numeric id, its string form, or the block name.
    """
    block = read_block_directory(data).find(block_id)
    if block is None:
        return None
    return block.payload(data)


def replace_block_payload(data: bytes, block_id, payload: bytes) -> bytes:
    """Splice a new payload in place of a block's payload.

    In a sequential stream the block's length field is rewritten to the new
    size, so every later block stays reachable. A legacy table directory
    records the offsets of the blocks after it, so there only a payload of
    the same size is accepted.

    Raises:
        BlockNotFoundError: If no block matches ``block_id``
        InvalidLengthError: If the new size cannot be recorded
    """
    listing = read_block_directory(data)
    block = listing.find(block_id)
    if block is None:
        raise BlockNotFoundError(block_id)

    payload = bytes(payload)
    head = bytearray(data[:block.offset])
    if len(payload) != block.length:
        if listing.method != "sequential":
            raise InvalidLengthError(
                f"Block {block.name} is {block.length} bytes; a {listing.method} directory "
                f"cannot record a {len(payload)}-byte replacement"
            )
        size = length_field_size(block.id, listing.revision)
        if size == 4 and len(payload) > 0xFFFFFFFF:
            raise InvalidLengthError(f"{len(payload)} bytes do not fit a 32-bit block length")
        struct.pack_into("<Q" if size == 8 else "<I", head, block.offset - size, len(payload))

    return bytes(head) + payload + bytes(data[block.end:])


def read_hotspots(data: bytes, format_config: FormatConfig | None = None) -> HotspotTable:
    """Read hotspot names and script names (never raises)."""
    return HotspotTableReader(data, format_config).parse()


def write_hotspots(
    original: bytes,
    hotspots: list[Hotspot],
    target_path: str | Path,
    options: WriteOptions | None = None,
    format_config: FormatConfig | None = None,
) -> WriteResult:
    """Rewrite the hotspot tables of ``original`` and save to ``target_path``."""
    return RoomPatchWriter(original, format_config).write(hotspots, target_path, options)
