"""Common types and utilities shared across protocol components.

This module contains the byte cursor every decoder reads from and the
wire type tags shared by the decoder and the value encoders.
"""

from __future__ import annotations

from enum import IntEnum

from ..exceptions import TruncatedInputError


class ByteCursor:
    """Forward-only reader over an in-memory byte record.

    A failed read never advances the cursor, so ``position`` always points
    at the first byte that could not be decoded.

    Attributes:
        position: Offset of the next unread byte
    """

    position: int

    _data: bytes

    def __init__(self, data: bytes, position: int = 0) -> None:
        if not 0 <= position <= len(data):
            raise ValueError(f"Cursor position {position} outside data of length {len(data)}")

        self._data = bytes(data)
        self.position = position

    @property
    def remaining(self) -> int:
        """Number of unread bytes."""
        return len(self._data) - self.position

    def read(self, size: int) -> bytes:
        """Read exactly size bytes.

        Raises:
            TruncatedInputError: If fewer than size bytes remain
        """
        if size > self.remaining:
            raise TruncatedInputError(size, self.remaining)

        start = self.position
        self.position += size
        return self._data[start : self.position]

    def read_byte(self) -> int:
        """Read a single byte as an integer."""
        return self.read(1)[0]


class TypeTag(IntEnum):
    """COSEM data type tags understood by the decoder.

    Only the subset pushed by the meter is listed. Tags 1/2 and 10/12 decode
    to the same representation.

    Reference: DLMS UA 1000-1 (Blue Book), 4.1.5 "Common data types"
    """

    NULL_DATA = 0
    ARRAY = 1
    STRUCTURE = 2
    DOUBLE_LONG = 5  # int32
    DOUBLE_LONG_UNSIGNED = 6  # uint32
    OCTET_STRING = 9  # only ever carries OBIS codes in this profile
    VISIBLE_STRING = 10
    UTF8_STRING = 12
    INTEGER = 15  # int8
    LONG = 16  # int16
    UNSIGNED = 17  # uint8
    LONG_UNSIGNED = 18  # uint16
    ENUM = 22


# (width, signed) for each fixed-width integer tag
INTEGER_TAG_FORMATS: dict[TypeTag, tuple[int, bool]] = {
    TypeTag.INTEGER: (1, True),
    TypeTag.LONG: (2, True),
    TypeTag.DOUBLE_LONG: (4, True),
    TypeTag.UNSIGNED: (1, False),
    TypeTag.LONG_UNSIGNED: (2, False),
    TypeTag.DOUBLE_LONG_UNSIGNED: (4, False),
}
