"""Unit tests for AMSTransport class."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest

from src.amsreader.exceptions import AMSConnectionError
from src.amsreader.transport import AMSTransport


@pytest.mark.unit
class TestAMSTransportInit:
    """Test AMSTransport initialization."""

    def test_init_with_defaults(self) -> None:
        """Test initialization with default parameters."""
        transport = AMSTransport("/dev/ttyUSB0")

        assert transport.url == "/dev/ttyUSB0"
        assert transport.read_timeout == 1.0
        assert transport.transmission_multiplier == 1.2
        assert transport.serial_kwargs["baudrate"] == 2400
        assert transport.serial_kwargs["bytesize"] == 8
        assert transport.serial_kwargs["parity"] == "E"
        assert transport.serial_kwargs["stopbits"] == 1
        assert not transport.is_connected()

    def test_init_with_custom_parameters(self) -> None:
        """Test initialization with custom parameters."""
        transport = AMSTransport(
            "socket://localhost:5000",
            baudrate=115200,
            parity="N",
            stopbits=2,
            read_timeout=0.25,
        )

        assert transport.url == "socket://localhost:5000"
        assert transport.read_timeout == 0.25
        assert transport.serial_kwargs["baudrate"] == 115200
        assert transport.serial_kwargs["parity"] == "N"
        assert transport.serial_kwargs["stopbits"] == 2

    def test_init_with_kwargs(self) -> None:
        """Test initialization with additional kwargs."""
        transport = AMSTransport("/dev/ttyUSB0", rtscts=True, xonxoff=False)

        assert transport.serial_kwargs["rtscts"] is True
        assert transport.serial_kwargs["xonxoff"] is False


@pytest.mark.unit
class TestAMSTransportConnection:
    """Test connection lifecycle management."""

    @pytest.mark.asyncio
    async def test_open_connection_success(
        self, mock_open_serial_connection: object
    ) -> None:
        """Test successful connection opening."""
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection",
            mock_open_serial_connection,
        ):
            await transport.open()

            assert transport.is_connected()

    @pytest.mark.asyncio
    async def test_open_connection_failure(self) -> None:
        """Test connection opening failure."""
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection"
        ) as mock_open:
            mock_open.side_effect = OSError("Device not found")

            with pytest.raises(AMSConnectionError) as exc_info:
                await transport.open()

            assert "Failed to open connection" in str(exc_info.value)
            assert not transport.is_connected()

    @pytest.mark.asyncio
    async def test_open_already_connected(
        self, mock_open_serial_connection: object
    ) -> None:
        """Test opening when already connected."""
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection"
        ) as mock_open:
            mock_open.side_effect = mock_open_serial_connection
            await transport.open()
            await transport.open()  # Second call should be idempotent

            assert mock_open.call_count == 1
            assert transport.is_connected()

    @pytest.mark.asyncio
    async def test_open_passes_serial_parameters(
        self, mock_open_serial_connection: object
    ) -> None:
        """Test serial settings are forwarded to pyserial-asyncio-fast."""
        transport = AMSTransport("/dev/ttyUSB0", parity="N")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection"
        ) as mock_open:
            mock_open.side_effect = mock_open_serial_connection
            await transport.open()

            mock_open.assert_called_once_with(
                url="/dev/ttyUSB0", baudrate=2400, bytesize=8, parity="N", stopbits=1
            )

    @pytest.mark.asyncio
    async def test_close_idempotent(self, mock_open_serial_connection: object) -> None:
        """Test that close is idempotent."""
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection",
            mock_open_serial_connection,
        ):
            await transport.open()
            await transport.close()
            await transport.close()  # Second close should be safe

            assert not transport.is_connected()

    @pytest.mark.asyncio
    async def test_close_ignores_writer_errors(
        self, mock_serial_connection: Any, mock_open_serial_connection: object
    ) -> None:
        """Test that errors while closing still leave the transport closed."""
        _mock_reader, mock_writer = mock_serial_connection
        mock_writer.wait_closed.side_effect = OSError("Already gone")
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection",
            mock_open_serial_connection,
        ):
            await transport.open()
            await transport.close()

            assert not transport.is_connected()

    @pytest.mark.asyncio
    async def test_context_manager(self, mock_open_serial_connection: object) -> None:
        """Test async context manager usage."""
        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection",
            mock_open_serial_connection,
        ):
            async with AMSTransport("/dev/ttyUSB0") as transport:
                assert transport.is_connected()

            assert not transport.is_connected()


@pytest.mark.unit
class TestAMSTransportTimeouts:
    """Test timeout calculation logic."""

    def test_timeout_calculation_han_standard(self) -> None:
        """Test timeout calculation for the 8E1 HAN port configuration."""
        transport = AMSTransport("/dev/ttyUSB0", read_timeout=0.0)

        # 8E1: 1 start + 8 data + 1 parity + 1 stop = 11 bits per byte
        # At 2400 baud: 11/2400 = 0.004583s per byte
        # With 1.2 multiplier: 0.0055s per byte
        assert abs(transport._calculate_timeout(1) - 0.0055) < 0.0001
        assert abs(transport._calculate_timeout(10) - 0.055) < 0.001

    def test_read_timeout_additive(self) -> None:
        """Test that the read timeout is added to the transmission time."""
        transport = AMSTransport("/dev/ttyUSB0", read_timeout=0.5)

        assert abs(transport._calculate_timeout(1) - 0.5055) < 0.0001

    def test_timeout_different_serial_configs(self) -> None:
        """Test timeout varies correctly with different serial configurations."""
        transport_8n1 = AMSTransport("/dev/ttyUSB0", parity="N", read_timeout=0.0)
        transport_8e1 = AMSTransport("/dev/ttyUSB0", parity="E", read_timeout=0.0)

        assert abs(transport_8n1._calculate_timeout(1) - (10 / 2400 * 1.2)) < 0.0001
        assert abs(transport_8e1._calculate_timeout(1) - (11 / 2400 * 1.2)) < 0.0001


@pytest.mark.unit
class TestAMSTransportRead:
    """Test reading from the port."""

    @pytest.mark.asyncio
    async def test_read_when_not_connected(self) -> None:
        """Test read raises error when not connected."""
        transport = AMSTransport("/dev/ttyUSB0")

        with pytest.raises(AMSConnectionError) as exc_info:
            await transport.read(1)

        assert "not connected" in str(exc_info.value).lower()

    @pytest.mark.asyncio
    async def test_read_returns_data(
        self, mock_serial_connection: Any, mock_open_serial_connection: object
    ) -> None:
        """Test read returns whatever the stream delivered."""
        mock_reader, _mock_writer = mock_serial_connection
        mock_reader.read.return_value = b"\x7e\xa0"
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection",
            mock_open_serial_connection,
        ):
            await transport.open()

            assert await transport.read(64) == b"\x7e\xa0"
            mock_reader.read.assert_awaited_once_with(64)

    @pytest.mark.asyncio
    async def test_read_timeout_returns_empty(
        self, mock_serial_connection: Any, mock_open_serial_connection: object
    ) -> None:
        """Test a read timeout returns empty bytes and keeps the connection."""
        mock_reader, _mock_writer = mock_serial_connection
        mock_reader.read.side_effect = TimeoutError()
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection",
            mock_open_serial_connection,
        ):
            await transport.open()

            assert await transport.read(64) == b""
            assert transport.is_connected()

    @pytest.mark.asyncio
    async def test_end_of_stream_is_connection_error(
        self, mock_serial_connection: Any, mock_open_serial_connection: object
    ) -> None:
        """Test that end of stream marks transport as disconnected."""
        mock_reader, _mock_writer = mock_serial_connection
        mock_reader.read.return_value = b""
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection",
            mock_open_serial_connection,
        ):
            await transport.open()

            with pytest.raises(AMSConnectionError, match="closed"):
                await transport.read(64)

            assert not transport.is_connected()

    @pytest.mark.asyncio
    async def test_read_failure_marks_disconnected(
        self, mock_serial_connection: Any, mock_open_serial_connection: object
    ) -> None:
        """Test that read failure marks transport as disconnected."""
        mock_reader, _mock_writer = mock_serial_connection
        mock_reader.read.side_effect = OSError("Connection lost")
        transport = AMSTransport("/dev/ttyUSB0")

        with patch(
            "src.amsreader.transport.serial_asyncio_fast.open_serial_connection",
            mock_open_serial_connection,
        ):
            await transport.open()

            with pytest.raises(AMSConnectionError):
                await transport.read(1)

            assert not transport.is_connected()
