"""AMS transport layer for handling the HAN port connection and raw reads."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import serial_asyncio_fast

from .exceptions import AMSConnectionError

_LOGGER = logging.getLogger(__name__)


class AMSTransport:
    """Handles connection and raw byte input from the meter's HAN port.

    The HAN port only pushes data, so the transport is read-only.

    Supports multiple connection types:
    - Serial ports: /dev/ttyUSB0, COM3
    - TCP sockets: socket://192.168.1.100:10001
    - RFC2217: rfc2217://192.168.1.100:10001

    All connection types are handled transparently by pyserial-asyncio-fast.

    Default serial parameters follow the HAN port (M-Bus physical layer):
    - 8 data bits
    - Even parity
    - 1 stop bit (8E1 format)
    - 2400 baud (configurable)
    """

    # Public attributes
    url: str
    read_timeout: float
    transmission_multiplier: float
    serial_kwargs: dict[str, Any]

    # Private attributes
    _reader: asyncio.StreamReader | None
    _writer: asyncio.StreamWriter | None
    _connected: bool

    def __init__(
        self,
        url: str,
        baudrate: int = 2400,
        bytesize: int = 8,
        parity: str = "E",
        stopbits: float = 1,
        read_timeout: float = 1.0,
        transmission_multiplier: float = 1.2,
        **kwargs: Any,
    ) -> None:
        """Initialize transport (does not open connection).

        Args:
            url: Connection URL (serial port or socket://host:port or rfc2217://host:port)
            baudrate: Baud rate for serial connections (default 2400 bps, HAN port standard)
            bytesize: Number of data bits (default 8)
            parity: Parity checking - 'N'=None, 'E'=Even, 'O'=Odd (default 'E')
            stopbits: Number of stop bits - 1, 1.5, or 2 (default 1)
            read_timeout: Base time to wait for data before a read returns empty
            transmission_multiplier: Multiplier for transmission time calculation
                                   for slow/problematic devices (default 1.2 = 20% extra time)
            **kwargs: Additional serial parameters (xonxoff, rtscts, dsrdtr, etc.)
        """
        self.url = url
        self.read_timeout = read_timeout
        self.transmission_multiplier = transmission_multiplier

        # Build serial parameters dictionary
        self.serial_kwargs = {
            "baudrate": baudrate,
            "bytesize": bytesize,
            "parity": parity,
            "stopbits": stopbits,
            **kwargs,  # Additional parameters like flow control
        }

        # Initialize connection state
        self._reader = None
        self._writer = None
        self._connected = False

    def _calculate_timeout(self, size: int) -> float:
        """Calculate total timeout for reading data.

        Args:
            size: Number of bytes to read

        Returns:
            Read timeout plus the time needed to transmit size bytes,
            scaled by transmission_multiplier
        """
        bits_per_byte = (
            1 +  # start bit
            int(self.serial_kwargs["bytesize"]) +  # data bits
            (1 if self.serial_kwargs["parity"] != "N" else 0) +  # parity bit
            float(self.serial_kwargs["stopbits"])  # stop bits
        )

        base_transmission_time = (size * bits_per_byte) / int(self.serial_kwargs["baudrate"])

        return self.read_timeout + base_transmission_time * self.transmission_multiplier

    async def open(self) -> None:
        """Open connection to the HAN port.

        Raises:
            AMSConnectionError: If connection fails
        """
        if self._connected:
            return  # Already connected

        _LOGGER.debug("Serial port parameters: %s %s", self.url, self.serial_kwargs)

        try:
            (
                self._reader,
                self._writer,
            ) = await serial_asyncio_fast.open_serial_connection(
                url=self.url, **self.serial_kwargs
            )
            self._connected = True
        except Exception as e:
            raise AMSConnectionError(
                f"Failed to open connection to {self.url}: {e}"
            ) from e

        _LOGGER.info("Serial port %s opened", self.url)

    async def close(self) -> None:
        """Close connection (idempotent - safe to call multiple times)."""
        if not self._connected:
            return  # Already closed

        if self._writer:
            try:
                self._writer.close()
                await self._writer.wait_closed()
            except Exception as e:
                _LOGGER.debug("Ignoring error while closing %s: %s", self.url, e)

        self._reader = None
        self._writer = None
        self._connected = False

    def is_connected(self) -> bool:
        """Check if transport is connected.

        Returns:
            True if connected, False otherwise
        """
        return self._connected

    async def read(self, size: int) -> bytes:
        """Read up to size bytes.

        Args:
            size: Maximum number of bytes to return

        Returns:
            The bytes received, or empty bytes if nothing arrived within the
            calculated timeout

        Raises:
            AMSConnectionError: If not connected, the stream ended or the read failed
        """
        if not self._connected or not self._reader:
            raise AMSConnectionError("Transport is not connected")

        try:
            data = await asyncio.wait_for(
                self._reader.read(size),
                timeout=self._calculate_timeout(size),
            )
        except TimeoutError:
            return b""
        except Exception as e:
            self._connected = False  # Mark as disconnected on error
            raise AMSConnectionError(f"Failed to read data: {e}") from e

        if not data:
            self._connected = False
            raise AMSConnectionError(f"Connection to {self.url} closed")

        return data

    async def __aenter__(self) -> AMSTransport:
        """Async context manager entry."""
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
