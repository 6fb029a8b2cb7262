"""HDLC deframing for the meter's HAN port byte stream.

Frames are delimited by 0x7E flags, with 0x7D escaping any flag or escape
byte inside the frame (next byte XOR 0x20). The last two bytes of a frame are
the FCS-16 (CRC-16/X.25, least significant byte first). A closing flag may
double as the opening flag of the following frame.

Link layer events are reported as exceptions from HDLCDeframer.read_frame():
    - HDLCResyncedError: bytes were discarded to find the next flag
    - HDLCAbortError: the sender aborted the frame (0x7D 0x7E) or it was too long
    - HDLCChecksumError: FCS mismatch or frame too short to hold an FCS

Reference: ISO/IEC 13239, IEC 62056-46
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable

from ..exceptions import HDLCAbortError, HDLCChecksumError, HDLCResyncedError

_LOGGER = logging.getLogger(__name__)

HDLC_FLAG = 0x7E
HDLC_ESCAPE = 0x7D
HDLC_ESCAPE_MASK = 0x20

HDLC_FCS_LENGTH = 2
HDLC_MAXIMUM_FRAME_LENGTH = 2048


def fcs16(data: bytes) -> int:
    """Calculate the HDLC frame check sequence (CRC-16/X.25)."""
    fcs = 0xFFFF
    for byte in data:
        fcs ^= byte
        for _ in range(8):
            fcs = (fcs >> 1) ^ 0x8408 if fcs & 1 else fcs >> 1
    return fcs ^ 0xFFFF


def escape(data: bytes) -> bytes:
    """Byte-stuff flag and escape bytes."""
    byte_array = bytearray()
    for byte in data:
        if byte in (HDLC_FLAG, HDLC_ESCAPE):
            byte_array.extend((HDLC_ESCAPE, byte ^ HDLC_ESCAPE_MASK))
        else:
            byte_array.append(byte)
    return bytes(byte_array)


def frame(payload: bytes) -> bytes:
    """Build a complete flagged frame with FCS around payload."""
    fcs = fcs16(payload).to_bytes(HDLC_FCS_LENGTH, byteorder="little")
    return bytes([HDLC_FLAG]) + escape(payload + fcs) + bytes([HDLC_FLAG])


class HDLCDeframer:
    """Recovers HDLC frames from a byte stream.

    Attributes:
        maximum_frame_length: Frames longer than this (unstuffed) are dropped
        chunk_size: Number of bytes requested from the stream per read
    """

    maximum_frame_length: int
    chunk_size: int

    _read: Callable[[int], Awaitable[bytes]]
    _pending: deque[int]
    _synchronized: bool

    def __init__(
        self,
        read: Callable[[int], Awaitable[bytes]],
        chunk_size: int = 64,
        maximum_frame_length: int = HDLC_MAXIMUM_FRAME_LENGTH,
    ) -> None:
        """Initialize deframer.

        Args:
            read: Async function returning up to n bytes from the stream
                (an empty result means nothing arrived yet)
            chunk_size: Number of bytes requested per read
            maximum_frame_length: Upper bound on unstuffed frame length
        """
        self._read = read
        self.chunk_size = chunk_size
        self.maximum_frame_length = maximum_frame_length

        self._pending = deque()
        self._synchronized = False

    async def _next_byte(self) -> int:
        while not self._pending:
            self._pending.extend(await self._read(self.chunk_size))
        return self._pending.popleft()

    async def _synchronize(self) -> None:
        skipped = 0
        while await self._next_byte() != HDLC_FLAG:
            skipped += 1

        self._synchronized = True

        if skipped:
            raise HDLCResyncedError(f"Discarded {skipped} bytes before frame flag")

    async def read_frame(self) -> bytes:
        """Read the next complete frame.

        Returns:
            Frame contents without flags, escaping or FCS

        Raises:
            HDLCResyncedError: If bytes were discarded while looking for a flag
            HDLCAbortError: If the frame was aborted or exceeded the maximum length
            HDLCChecksumError: If the FCS does not match
            AMSConnectionError: Propagated from the underlying stream
        """
        if not self._synchronized:
            await self._synchronize()

        content = bytearray()

        while True:
            byte = await self._next_byte()

            if byte == HDLC_FLAG:
                if not content:
                    continue  # Back-to-back flags between frames
                break

            if byte == HDLC_ESCAPE:
                byte = await self._next_byte()
                if byte == HDLC_FLAG:
                    # Abort sequence; the flag opens the next frame
                    raise HDLCAbortError(f"Frame aborted by sender after {len(content)} bytes")
                byte ^= HDLC_ESCAPE_MASK

            content.append(byte)

            if len(content) > self.maximum_frame_length:
                self._synchronized = False
                raise HDLCAbortError(f"Frame exceeds {self.maximum_frame_length} bytes")

        if len(content) <= HDLC_FCS_LENGTH:
            raise HDLCChecksumError(f"Frame of {len(content)} bytes too short for FCS")

        payload = bytes(content[:-HDLC_FCS_LENGTH])
        received_fcs = int.from_bytes(content[-HDLC_FCS_LENGTH:], byteorder="little")
        calculated_fcs = fcs16(payload)

        if received_fcs != calculated_fcs:
            raise HDLCChecksumError(f"FCS mismatch: received 0x{received_fcs:04X}, calculated 0x{calculated_fcs:04X}")

        _LOGGER.debug("Received HDLC frame of %d bytes", len(payload))

        return payload
