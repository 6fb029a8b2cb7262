"""Scalar decoders for the primitive COSEM types.

Each decoder expects the type tag to have been consumed already and reads
exactly the bytes belonging to one scalar from a ByteCursor.

Functions:
    - decode_length_prefixed_bytes: 1-byte length followed by that many bytes
    - decode_identifier: length-prefixed 6-byte OBIS code
    - decode_fixed_integer: big-endian integer of a given width/signedness
    - decode_unit: enum byte mapped through the Unit table
"""

from __future__ import annotations

from ..exceptions import MalformedIdentifierError
from .common import ByteCursor
from .value import IdentifierValue, IntegerValue, Unit, UnitValue

OBIS_CODE_LENGTH = 6


def decode_length_prefixed_bytes(cursor: ByteCursor) -> bytes:
    """Decode a 1-byte length followed by that many bytes.

    Raises:
        TruncatedInputError: If the length byte or the payload is missing
    """
    length = cursor.read_byte()
    return cursor.read(length)


def decode_identifier(cursor: ByteCursor) -> IdentifierValue:
    """Decode an octet-string holding an OBIS code.

    The declared length is checked before the payload is read, so a malformed
    identifier leaves the cursor just past its length byte.

    Raises:
        MalformedIdentifierError: If the declared length is not 6
        TruncatedInputError: If fewer bytes remain than declared
    """
    length = cursor.read_byte()
    if length != OBIS_CODE_LENGTH:
        raise MalformedIdentifierError(length)

    a, b, c, d, e, f = cursor.read(length)
    return IdentifierValue((a, b, c, d, e, f))


def decode_fixed_integer(cursor: ByteCursor, width: int, signed: bool) -> IntegerValue:
    """Decode a big-endian integer of width bytes.

    Raises:
        TruncatedInputError: If fewer than width bytes remain
    """
    data = cursor.read(width)
    return IntegerValue(int.from_bytes(data, byteorder="big", signed=signed), width, signed)


def decode_unit(cursor: ByteCursor) -> UnitValue:
    """Decode an enum byte as a physical unit.

    Raises:
        TruncatedInputError: If no byte remains
        UnrecognizedUnitError: If the byte is not a known unit code
    """
    return UnitValue(Unit.from_code(cursor.read_byte()))
