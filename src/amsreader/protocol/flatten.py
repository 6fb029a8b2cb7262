"""Projection of a decoded push message into OBIS code -> value pairs.

The meter pushes an array of register entries, each a structure of the form
``[obis_code, value, scaler_unit...]``. Only the code and the value are kept.

This input data::

    [
        ["1-0:32.7.0.255", 2500, [255, V]],
        ...
    ]

Gives the following output data::

    {"1-0:32.7.0.255": IntegerValue(2500, 2, False), ...}
"""

from __future__ import annotations

from ..exceptions import KeyNotIdentifierError, NotASequenceError, TooFewFieldsError
from .decoder import decode_record
from .value import IdentifierValue, SequenceValue, Value

FlatRecord = dict[str, Value]


def flatten(value: Value) -> FlatRecord:
    """Flatten a decoded push message.

    Raises:
        NotASequenceError: If the message or one of its entries is not a sequence
        TooFewFieldsError: If an entry has fewer than two members
        KeyNotIdentifierError: If an entry does not start with an OBIS code
    """
    if not isinstance(value, SequenceValue):
        raise NotASequenceError("Top-level structure not of array type")

    result: FlatRecord = {}

    for entry in value:
        if not isinstance(entry, SequenceValue):
            raise NotASequenceError("Sub-level data not of array type")

        if len(entry) < 2:
            raise TooFewFieldsError("Sub-level data does not contain at least two entries")

        key = entry[0]
        if not isinstance(key, IdentifierValue):
            raise KeyNotIdentifierError("First entry not an OBIS code; unusable as key")

        result[str(key)] = entry[1]

    return result


def decode_flattened(data: bytes) -> FlatRecord:
    """Decode a record and flatten it in one step."""
    return flatten(decode_record(data))
