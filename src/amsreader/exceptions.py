"""AMS reader exception classes."""

from __future__ import annotations


class AMSError(Exception):
    """Base exception for all AMS reader errors."""


class AMSConnectionError(AMSError):
    """Connection-related errors."""


# =============================================================================
# Link layer (HDLC) events
# =============================================================================


class AMSFramingError(AMSError):
    """Link layer event that produced no usable frame."""


class HDLCResyncedError(AMSFramingError):
    """Deframer discarded bytes before it found the next frame boundary."""


class HDLCAbortError(AMSFramingError):
    """Frame was aborted by the sender or rejected by the deframer."""


class HDLCChecksumError(HDLCAbortError):
    """Frame check sequence did not match the frame contents."""


# =============================================================================
# Record-local decode errors
# =============================================================================


class AMSDecodeError(AMSError):
    """Base class for errors that invalidate a single telemetry record."""


class TruncatedInputError(AMSDecodeError):
    """Fewer bytes available than the encoding declares."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(f"Truncated input: needed {requested} bytes, {available} available")
        self.requested = requested
        self.available = available


class MalformedIdentifierError(AMSDecodeError):
    """OBIS identifier with a length other than 6 bytes."""

    def __init__(self, length: int) -> None:
        super().__init__(f"Identifier must be 6 bytes, got {length}")
        self.length = length


class UnrecognizedUnitError(AMSDecodeError):
    """Enum byte outside the known unit table."""

    def __init__(self, code: int) -> None:
        super().__init__(f"Unknown enum index {code}")
        self.code = code


class UnrecognizedTypeError(AMSDecodeError):
    """Type tag outside the supported tag set."""

    def __init__(self, tag: int) -> None:
        super().__init__(f"Unrecognized datatype: {tag}")
        self.tag = tag


class ExcessiveNestingError(AMSDecodeError):
    """Arrays/structures nested deeper than the decoder allows."""


class NotASequenceError(AMSDecodeError):
    """Value expected to be an array or structure was not."""


class TooFewFieldsError(AMSDecodeError):
    """Register entry holds fewer than two members."""


class KeyNotIdentifierError(AMSDecodeError):
    """First member of a register entry is not an OBIS identifier."""
