"""Exceptions raised by the room file codec."""


class RoomFormatError(Exception):
    """Base exception for room file format problems."""

    pass


class TooSmallError(RoomFormatError):
    """Buffer is shorter than a required fixed header."""

    pass


class UnknownRevisionError(RoomFormatError):
    """Revision number is not one of the known room file revisions."""

    def __init__(self, value: int) -> None:
        super().__init__(f"Unknown room file version: {value}")
        self.value = value


class OutOfBoundsError(RoomFormatError):
    """A read or write would cross the end of the buffer."""

    pass


class InvalidLengthError(RoomFormatError):
    """A declared string or block length is implausible."""

    pass


class InsufficientSpaceError(RoomFormatError):
    """A rewritten table would overrun the data that follows it."""

    pass


class BlockNotFoundError(RoomFormatError):
    """Requested block id has no directory entry."""

    def __init__(self, block_id) -> None:
        super().__init__(f"Block {block_id} not found")
        self.block_id = block_id
