"""Recursive decoder for the COSEM data encoding pushed by the meter.

A value starts with one type tag byte. Scalars are handed to the scalar
decoders, arrays and structures read a 1-byte member count and recurse.

The wire format carries no nesting limit of its own, so the decoder caps
recursion at MAXIMUM_NESTING_DEPTH.
"""

from __future__ import annotations

from collections.abc import Callable

from ..exceptions import ExcessiveNestingError, UnrecognizedTypeError
from .common import INTEGER_TAG_FORMATS, ByteCursor, TypeTag
from .scalar import decode_fixed_integer, decode_identifier, decode_length_prefixed_bytes, decode_unit
from .value import NullValue, SequenceValue, TextValue, Value

MAXIMUM_NESTING_DEPTH = 32


def _decode_text(cursor: ByteCursor) -> TextValue:
    return TextValue(decode_length_prefixed_bytes(cursor))


def _integer_decoder(width: int, signed: bool) -> Callable[[ByteCursor], Value]:
    return lambda cursor: decode_fixed_integer(cursor, width, signed)


_SCALAR_DECODERS: dict[TypeTag, Callable[[ByteCursor], Value]] = {
    TypeTag.NULL_DATA: lambda _cursor: NullValue(),
    TypeTag.OCTET_STRING: decode_identifier,
    TypeTag.VISIBLE_STRING: _decode_text,
    TypeTag.UTF8_STRING: _decode_text,
    TypeTag.ENUM: decode_unit,
    **{tag: _integer_decoder(width, signed) for tag, (width, signed) in INTEGER_TAG_FORMATS.items()},
}


def decode_value(cursor: ByteCursor, depth: int = 0) -> Value:
    """Decode one complete value, leaving the cursor right after it.

    Args:
        cursor: Cursor positioned at a type tag
        depth: Nesting level of this value (0 for the top level)

    Returns:
        The decoded value tree

    Raises:
        TruncatedInputError: If the record ends inside the value
        UnrecognizedTypeError: If a tag outside the supported set is found
        ExcessiveNestingError: If sequences nest deeper than MAXIMUM_NESTING_DEPTH
        MalformedIdentifierError, UnrecognizedUnitError: From the scalar decoders
    """
    code = cursor.read_byte()

    try:
        tag = TypeTag(code)
    except ValueError:
        raise UnrecognizedTypeError(code) from None

    if tag in (TypeTag.ARRAY, TypeTag.STRUCTURE):
        if depth >= MAXIMUM_NESTING_DEPTH:
            raise ExcessiveNestingError(f"Sequences nested deeper than {MAXIMUM_NESTING_DEPTH} levels")

        count = cursor.read_byte()
        return SequenceValue(tuple(decode_value(cursor, depth + 1) for _ in range(count)))

    return _SCALAR_DECODERS[tag](cursor)


def decode_record(data: bytes) -> Value:
    """Decode the top-level value of a record.

    Bytes following the first complete value are ignored.
    """
    return decode_value(ByteCursor(data))
