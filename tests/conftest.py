"""Shared test fixtures for pyAMSReader tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from src.amsreader.metrics import PipelineMetrics

# Link layer + APDU header as sent by an Aidon 6525 (17 bytes)
AIDON_FRAME_HEADER = bytes([
    0xA1, 0x1E, 0x41, 0x08, 0x83, 0x13, 0xEE, 0xEE,  # Format, addresses, control, HCS
    0xE6, 0xE7, 0x00,  # LLC
    0x0F, 0x40, 0x00, 0x00, 0x00, 0x00,  # Data-notification, invoke id, no datetime
])


@pytest.fixture
def mock_serial_connection() -> tuple[AsyncMock, AsyncMock]:
    """Create mock reader and writer for serial connections."""
    mock_reader = AsyncMock()
    mock_writer = AsyncMock()

    # Mock common methods
    mock_writer.close = MagicMock()
    mock_writer.wait_closed = AsyncMock()

    mock_reader.read = AsyncMock()

    return mock_reader, mock_writer


@pytest.fixture
def mock_open_serial_connection(mock_serial_connection: tuple[AsyncMock, AsyncMock]) -> Any:
    """Mock serial_asyncio_fast.open_serial_connection."""
    mock_reader, mock_writer = mock_serial_connection

    async def mock_open(*_args: Any, **_kwargs: Any) -> tuple[AsyncMock, AsyncMock]:
        return mock_reader, mock_writer

    return mock_open


@pytest.fixture
def registry() -> CollectorRegistry:
    """Fresh Prometheus registry so metric names never collide between tests."""
    return CollectorRegistry()


@pytest.fixture
def pipeline_metrics(registry: CollectorRegistry) -> PipelineMetrics:
    return PipelineMetrics(registry)


@pytest.fixture
def frame_header() -> bytes:
    return AIDON_FRAME_HEADER


@pytest.fixture
def sample_payloads() -> dict[str, bytes]:
    """Sample push message bodies (everything after the frame header)."""
    return {
        # [["1-0:32.7.0.255", 2500, [255, V]]]
        "single_voltage": bytes([
            0x01, 0x01,  # Array, 1 entry
            0x02, 0x03,  # Structure, 3 members
            0x09, 0x06, 0x01, 0x00, 0x20, 0x07, 0x00, 0xFF,  # OBIS 1-0:32.7.0.255
            0x12, 0x09, 0xC4,  # uint16 2500
            0x01, 0x02, 0x11, 0xFF, 0x16, 0x23,  # [uint8 255, enum V]
        ]),
        # List version, active power, L1 current and an unknown register
        "mixed_registers": bytes([
            0x01, 0x04,  # Array, 4 entries
            0x02, 0x02,  # Structure, 2 members
            0x09, 0x06, 0x01, 0x01, 0x00, 0x02, 0x81, 0xFF,  # OBIS 1-1:0.2.129.255
            0x0A, 0x0B, *b"AIDON_V0001",  # visible-string
            0x02, 0x03,
            0x09, 0x06, 0x01, 0x00, 0x01, 0x07, 0x00, 0xFF,  # OBIS 1-0:1.7.0.255
            0x06, 0x00, 0x00, 0x04, 0xD2,  # uint32 1234
            0x02, 0x02, 0x0F, 0x00, 0x16, 0x1B,  # [int8 0, enum W]
            0x02, 0x03,
            0x09, 0x06, 0x01, 0x00, 0x1F, 0x07, 0x00, 0xFF,  # OBIS 1-0:31.7.0.255
            0x10, 0xFF, 0xF6,  # int16 -10
            0x02, 0x02, 0x0F, 0xFF, 0x16, 0x21,  # [int8 -1, enum A]
            0x02, 0x02,
            0x09, 0x06, 0x09, 0x09, 0x09, 0x09, 0x09, 0xFF,  # OBIS 9-9:9.9.9.255
            0x11, 0x2A,  # uint8 42
        ]),
        # Declares 5 entries, only 2 follow
        "truncated_array": bytes([
            0x01, 0x05,
            0x02, 0x02, 0x09, 0x06, 0x01, 0x00, 0x20, 0x07, 0x00, 0xFF, 0x12, 0x09, 0xC4,
            0x02, 0x02, 0x09, 0x06, 0x01, 0x00, 0x34, 0x07, 0x00, 0xFF, 0x12, 0x09, 0xB0,
        ]),
    }


# Test markers for different test types
def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (fast, uses mocks)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (slower, uses real I/O)"
    )
    config.addinivalue_line(
        "markers", "network: mark test as requiring network simulation"
    )
