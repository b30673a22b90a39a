"""Position-tracking reader over a room file buffer.

Strings come in two encodings:

- length-prefixed: ``[uint32 length][bytes]``; a length of zero marks the end
  of a string sequence
- fixed-width: ``length`` bytes, null padded (revisions before 3.0.3a)

Primitive reads raise on failure and leave the position unchanged. ``seek``
and ``skip`` clamp instead of raising so heuristic scans can overshoot safely.
"""

import logging
import re
import struct

from pyagscrm.format.errors import (
    InvalidLengthError,
    OutOfBoundsError,
    RoomFormatError,
)
from pyagscrm.format.version import MAX_NAME_LENGTH, MAX_ROOM_HOTSPOTS, Capabilities

logger = logging.getLogger(__name__)

# C0 and C1 control characters
_CONTROL_CHARS = re.compile("[\u0000-\u001f\u007f-\u009f]")


def clean_text(raw: bytes) -> str:
    """Decode string bytes, dropping control characters and outer whitespace."""
    text = raw.decode("utf-8", errors="replace")
    return _CONTROL_CHARS.sub("", text).strip()


def encode_length_prefixed(value: str) -> bytes:
    """Encode a string as ``[uint32 length][utf-8 bytes]``."""
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


class ByteCursor:
    """Reads primitives and strings from an immutable buffer."""

    def __init__(self, data: bytes, caps: Capabilities | None = None) -> None:
        self.data = data
        self.caps = caps
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return max(0, len(self.data) - self._pos)

    def at_end(self) -> bool:
        return self._pos >= len(self.data)

    def seek(self, pos: int) -> None:
        """Move to an absolute offset, clamped to the buffer."""
        self._pos = max(0, min(pos, len(self.data)))

    def skip(self, count: int) -> None:
        """Move forward, clamped to the buffer end."""
        self.seek(self._pos + count)

    def _require(self, size: int, pos: int | None = None) -> int:
        start = self._pos if pos is None else pos
        if start < 0 or start + size > len(self.data):
            raise OutOfBoundsError(
                f"Cannot read {size} bytes at offset 0x{start:x} (size {len(self.data)})"
            )
        return start

    def _unpack(self, fmt: str, size: int) -> int:
        start = self._require(size)
        (value,) = struct.unpack_from(fmt, self.data, start)
        self._pos = start + size
        return value

    def read_uint8(self) -> int:
        return self._unpack("<B", 1)

    def read_uint16(self) -> int:
        return self._unpack("<H", 2)

    def read_uint32(self) -> int:
        return self._unpack("<I", 4)

    def read_uint64(self) -> int:
        return self._unpack("<Q", 8)

    def peek_uint32(self, pos: int | None = None) -> int:
        """Read a uint32 without moving the cursor."""
        start = self._require(4, pos)
        return struct.unpack_from("<I", self.data, start)[0]

    def read_bytes(self, count: int) -> bytes:
        start = self._require(count)
        self._pos = start + count
        return bytes(self.data[start:start + count])

    def read_length_prefixed_string(self, max_len: int = 200) -> tuple[str, int]:
        """Read a ``[uint32 length][bytes]`` string.

        A zero length returns ``("", 4)``; callers decide whether that is the
        end of a sequence or an ordinary empty string.

        Returns:
            (value, bytes consumed)

        Raises:
            OutOfBoundsError: Length field or payload runs past the buffer
            InvalidLengthError: Declared length exceeds ``max_len``
        """
        length = self.peek_uint32()
        if length == 0:
            self._pos += 4
            return "", 4

        if length > max_len:
            raise InvalidLengthError(
                f"String length {length} at 0x{self._pos:x} exceeds {max_len}"
            )
        start = self._require(4 + length)
        raw = self.data[start + 4:start + 4 + length]
        self._pos = start + 4 + length
        return clean_text(raw), 4 + length

    def read_fixed_string(self, length: int) -> str:
        """Read a null-padded fixed-width string."""
        raw = self.read_bytes(length)
        return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace").strip()

    def read_string(self, max_len: int = 200) -> str:
        """Read a string in the encoding used by this cursor's revision."""
        if self.caps is not None and self.caps.uses_fixed_strings:
            return self.read_fixed_string(self.caps.legacy_string_length)
        return self.read_length_prefixed_string(max_len)[0]

    def read_string_sequence(
        self,
        max_count: int = MAX_ROOM_HOTSPOTS,
        max_len: int = MAX_NAME_LENGTH,
    ) -> list[str]:
        """Read strings until the zero-length sentinel.

        Never raises: a failed entry ends the sequence with the cursor left at
        that entry. The sentinel itself is consumed.
        """
        strings: list[str] = []
        fixed = self.caps is not None and self.caps.uses_fixed_strings

        for _ in range(max_count):
            start = self._pos
            try:
                if fixed:
                    value = self.read_fixed_string(self.caps.legacy_string_length)
                    if not value:
                        break
                else:
                    if self.peek_uint32() == 0:
                        self._pos += 4
                        break
                    value, _ = self.read_length_prefixed_string(max_len)
            except RoomFormatError as e:
                logger.debug(f"String sequence stopped at 0x{start:x}: {e}")
                self._pos = start
                break
            strings.append(value)

        return strings
