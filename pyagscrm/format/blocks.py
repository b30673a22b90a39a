"""Room file block directory.

After the two-byte revision the file is a stream of blocks::

    [uint8 id][uint32|uint64 length][payload]        old style, id 1..254
    [uint8 0][16-byte name][uint64 length][payload]   new style
    [uint8 0xFF]                                      end of stream

The length width of old-style blocks depends on the revision. Payloads are
never copied while walking; a ``Block`` only records where its payload lives.
"""

import logging
import struct
from dataclasses import dataclass, field

from pyagscrm.format.cursor import ByteCursor
from pyagscrm.format.errors import OutOfBoundsError, RoomFormatError
from pyagscrm.format.version import (
    BLOCK_END,
    BLOCK_STRING_ID,
    STRING_ID_LENGTH,
    RoomRevision,
    block_name,
    capabilities,
    detect,
)

logger = logging.getLogger(__name__)


@dataclass
class Block:
    """One directory entry."""

    id: int
    name: str
    offset: int  # Absolute payload start
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def payload(self, data: bytes) -> bytes:
        """Copy this block's payload out of the file buffer."""
        return bytes(data[self.offset:self.end])

    def matches(self, block_id) -> bool:
        """Check a caller-supplied id (int, numeric string or name)."""
        if isinstance(block_id, int):
            return self.id == block_id
        key = str(block_id).strip()
        return key == str(self.id) or key == self.name

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "offset": f"0x{self.offset:x}",
            "size": f"{self.length} bytes",
            "rawOffset": self.offset,
            "rawSize": self.length,
        }


class BlockDirectoryReader:
    """Walks the sequential block stream."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.revision = detect(data)
        self.caps = capabilities(self.revision)

    def parse(self) -> list[Block]:
        """Read every block up to the end marker or end of buffer.

        Raises:
            OutOfBoundsError: A block header or payload runs past the buffer
        """
        cursor = ByteCursor(self.data, self.caps)
        cursor.seek(2)
        blocks: list[Block] = []

        while not cursor.at_end():
            block_id = cursor.read_uint8()
            if block_id == BLOCK_END:
                break

            if block_id == BLOCK_STRING_ID:
                raw_name = cursor.read_bytes(STRING_ID_LENGTH)
                name = raw_name.split(b"\0", 1)[0].decode("utf-8", errors="replace").strip()
                length = cursor.read_uint64()
            else:
                if length_field_size(block_id, self.revision) == 8:
                    length = cursor.read_uint64()
                else:
                    length = cursor.read_uint32()
                name = block_name(block_id)

            offset = cursor.position
            if offset + length > len(self.data):
                raise OutOfBoundsError(
                    f"Block {block_id} ({name}) extends beyond file bounds: "
                    f"0x{offset:x} + {length} > {len(self.data)}"
                )

            blocks.append(Block(id=block_id, name=name, offset=offset, length=length))
            cursor.skip(length)

        return blocks


def length_field_size(block_id: int, revision: RoomRevision) -> int:
    """Width of the length field stored just before a block's payload."""
    if block_id == BLOCK_STRING_ID or capabilities(revision).uses_64bit_offsets:
        return 8
    return 4


class LegacyDirectoryScanner:
    """Best-effort search for an old table-style block directory.

    Looks for ``[uint32 count]`` followed by ``count`` entries of
    ``[uint32 id][uint32 size][uint32 offset]``.
    """

    SCAN_START = 16
    SCAN_LIMIT = 1000
    MAX_BLOCKS = 20
    MAX_BLOCK_ID = 50
    ENTRY_SIZE = 12

    @classmethod
    def parse(cls, data: bytes) -> list[Block]:
        """Return the first directory whose entries all validate, else []."""
        end = min(len(data) - 32, cls.SCAN_LIMIT)

        for scan in range(cls.SCAN_START, end, 4):
            (count,) = struct.unpack_from("<I", data, scan)
            if not 0 < count <= cls.MAX_BLOCKS:
                continue

            found = cls._read_entries(data, scan + 4, count)
            if len(found) == count:
                logger.debug(f"Legacy directory with {count} blocks at 0x{scan:x}")
                return found

        return []

    @classmethod
    def _read_entries(cls, data: bytes, pos: int, count: int) -> list[Block]:
        found: list[Block] = []
        for _ in range(count):
            if pos + cls.ENTRY_SIZE > len(data):
                break
            block_id, size, offset = struct.unpack_from("<III", data, pos)
            if block_id > cls.MAX_BLOCK_ID or size == 0 or offset + size > len(data):
                break
            found.append(Block(id=block_id, name=f"Block{block_id}", offset=offset, length=size))
            pos += cls.ENTRY_SIZE
        return found


@dataclass
class BlockListing:
    """Outcome of a best-effort directory read."""

    blocks: list[Block]
    success: bool
    method: str  # "sequential", "legacy" or "none"
    revision: RoomRevision | None = None
    diagnostics: list[str] = field(default_factory=list)

    def find(self, block_id) -> Block | None:
        for block in self.blocks:
            if block.matches(block_id):
                return block
        return None

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "blocks": [b.to_dict() for b in self.blocks],
            "success": self.success,
            "method": self.method,
            "version": int(self.revision) if self.revision is not None else None,
            "diagnostics": list(self.diagnostics),
        }


def read_block_directory(data: bytes) -> BlockListing:
    """Read the directory, falling back to the legacy scanner.

    Format errors never escape; they become diagnostics on the listing.
    """
    diagnostics: list[str] = []
    revision = None

    try:
        reader = BlockDirectoryReader(data)
        revision = reader.revision
        blocks = reader.parse()
        if blocks:
            return BlockListing(blocks, True, "sequential", revision, diagnostics)
        diagnostics.append("Sequential parsing found no blocks")
    except RoomFormatError as e:
        diagnostics.append(f"Sequential parsing failed: {e}")

    # The scanner only makes sense once there is a header to skip
    if len(data) < 2:
        return BlockListing([], False, "none", revision, diagnostics)

    logger.warning(f"{diagnostics[-1]}; trying legacy directory scan")
    blocks = LegacyDirectoryScanner.parse(data)
    if blocks:
        return BlockListing(blocks, True, "legacy", revision, diagnostics)

    diagnostics.append("No valid blocks found using legacy parser")
    return BlockListing([], False, "none", revision, diagnostics)
