"""Protocol layer components for AMS meter telemetry decoding.

This package contains the HDLC deframer and the COSEM value decoder.

Reference: IEC 62056-46 (HDLC), IEC 62056-6-2 (COSEM data types)
"""

from .common import ByteCursor, TypeTag
from .decoder import MAXIMUM_NESTING_DEPTH, decode_record, decode_value
from .flatten import FlatRecord, decode_flattened, flatten
from .hdlc import HDLCDeframer
from .value import (
    IdentifierValue,
    IntegerValue,
    NullValue,
    SequenceValue,
    TextValue,
    Unit,
    UnitValue,
    Value,
    to_metric_value,
)

__all__ = [
    # Common types
    "ByteCursor",
    "TypeTag",
    # Values
    "IdentifierValue",
    "IntegerValue",
    "NullValue",
    "SequenceValue",
    "TextValue",
    "Unit",
    "UnitValue",
    "Value",
    "to_metric_value",
    # Decoding
    "MAXIMUM_NESTING_DEPTH",
    "decode_record",
    "decode_value",
    "FlatRecord",
    "decode_flattened",
    "flatten",
    # Link layer
    "HDLCDeframer",
]
