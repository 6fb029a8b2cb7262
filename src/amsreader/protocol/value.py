"""Decoded COSEM value representation.

This module contains the closed set of value variants produced by the decoder:

Classes:
    - NullValue: null-data
    - IntegerValue: fixed-width integer keeping its wire width and signedness
    - TextValue: visible-string / utf8-string payload
    - IdentifierValue: 6-byte OBIS code
    - UnitValue: enum byte mapped through the Unit table
    - SequenceValue: array or structure

Every variant is a frozen dataclass and can serialize itself back to the wire
format with ``to_bytes()``.

Reference: IEC 62056-6-2 (Blue Book), 4.1.5 and 4.3.2 (scaler_unit)
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

from ..exceptions import UnrecognizedUnitError
from .common import INTEGER_TAG_FORMATS, TypeTag

_OBIS_PATTERN = re.compile(r"^(\d+)-(\d+):(\d+)\.(\d+)\.(\d+)\.(\d+)$")


class Unit(StrEnum):
    """Physical units the meter reports in its scaler_unit structures.

    Each member carries its enum code. Wh and VArh were inferred from observed
    meter output rather than confirmed against the unit table, and are marked
    with ``inferred=True``.
    """

    code: int
    inferred: bool

    def __new__(cls, symbol: str, code: int, inferred: bool = False) -> Unit:
        obj = str.__new__(cls, symbol)
        obj._value_ = symbol
        obj.code = code
        obj.inferred = inferred
        return obj

    W = ("W", 27)  # active power
    VA = ("VA", 28)  # apparent power
    VAR = ("VAr", 29)  # reactive power
    WH = ("Wh", 30, True)  # active energy, guessed from received values
    VARH = ("VArh", 32, True)  # reactive energy, guessed from received values
    A = ("A", 33)  # current
    V = ("V", 35)  # voltage

    @classmethod
    def from_code(cls, code: int) -> Unit:
        """Look up a unit by enum code.

        Raises:
            UnrecognizedUnitError: If code is not in the table
        """
        for unit in cls:
            if unit.code == code:
                return unit

        raise UnrecognizedUnitError(code)


@dataclass(frozen=True, slots=True)
class NullValue:
    def to_bytes(self) -> bytes:
        return bytes([TypeTag.NULL_DATA])


@dataclass(frozen=True, slots=True)
class IntegerValue:
    """Integer decoded from a fixed-width tag.

    Attributes:
        bits: The numeric value
        width: Wire width in bytes (1, 2 or 4)
        signed: True for two's complement encodings
    """

    bits: int
    width: int
    signed: bool

    def __post_init__(self) -> None:
        if self.width not in (1, 2, 4):
            raise ValueError(f"Unsupported integer width: {self.width}")

        if self.signed:
            low, high = -(1 << (self.width * 8 - 1)), (1 << (self.width * 8 - 1)) - 1
        else:
            low, high = 0, (1 << (self.width * 8)) - 1

        if not low <= self.bits <= high:
            raise ValueError(f"Value {self.bits} out of range for {self.width} byte integer")

    def __int__(self) -> int:
        return self.bits

    @property
    def tag(self) -> TypeTag:
        for tag, fmt in INTEGER_TAG_FORMATS.items():
            if fmt == (self.width, self.signed):
                return tag

        raise AssertionError("Integer width/sign validated in __post_init__")

    def to_bytes(self) -> bytes:
        return bytes([self.tag]) + self.bits.to_bytes(self.width, byteorder="big", signed=self.signed)


@dataclass(frozen=True, slots=True)
class TextValue:
    """Length-prefixed string.

    The raw bytes are kept as received; ``text`` decodes them leniently.
    """

    raw: bytes

    @property
    def text(self) -> str:
        return self.raw.decode("utf-8", errors="replace")

    def __str__(self) -> str:
        return self.text

    def to_bytes(self) -> bytes:
        if len(self.raw) > 0xFF:
            raise ValueError("String longer than 255 bytes cannot be encoded")

        return bytes([TypeTag.VISIBLE_STRING, len(self.raw)]) + self.raw


@dataclass(frozen=True, slots=True)
class IdentifierValue:
    """OBIS code naming a meter register.

    Rendered as ``A-B:C.D.E.F``, e.g. ``1-0:32.7.0.255`` for L1 voltage.
    """

    code: tuple[int, int, int, int, int, int]

    def __post_init__(self) -> None:
        if len(self.code) != 6 or not all(0 <= part <= 0xFF for part in self.code):
            raise ValueError(f"OBIS code must be 6 bytes, got {self.code!r}")

    @classmethod
    def from_string(cls, obis: str) -> IdentifierValue:
        match = _OBIS_PATTERN.match(obis)
        if match is None:
            raise ValueError(f"Not an OBIS code: {obis!r}")

        a, b, c, d, e, f = (int(group) for group in match.groups())
        return cls((a, b, c, d, e, f))

    def __str__(self) -> str:
        return "%d-%d:%d.%d.%d.%d" % self.code

    def to_bytes(self) -> bytes:
        return bytes([TypeTag.OCTET_STRING, 6, *self.code])


@dataclass(frozen=True, slots=True)
class UnitValue:
    unit: Unit

    def __str__(self) -> str:
        return str(self.unit)

    def to_bytes(self) -> bytes:
        return bytes([TypeTag.ENUM, self.unit.code])


@dataclass(frozen=True, slots=True)
class SequenceValue:
    """Array or structure; owns its members."""

    items: tuple[Value, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Value]:
        return iter(self.items)

    def __getitem__(self, index: int) -> Value:
        return self.items[index]

    def to_bytes(self) -> bytes:
        if len(self.items) > 0xFF:
            raise ValueError("Sequence longer than 255 members cannot be encoded")

        byte_array = bytearray([TypeTag.STRUCTURE, len(self.items)])

        for item in self.items:
            byte_array.extend(item.to_bytes())

        return bytes(byte_array)


Value = NullValue | IntegerValue | TextValue | IdentifierValue | UnitValue | SequenceValue


def to_metric_value(value: Value) -> int | None:
    """Coerce a decoded value to the number exported as a gauge.

    Only integers carry register readings; every other variant yields None.
    """
    match value:
        case IntegerValue(bits=bits):
            return bits
        case NullValue() | TextValue() | IdentifierValue() | UnitValue() | SequenceValue():
            return None
