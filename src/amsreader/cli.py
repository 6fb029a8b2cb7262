"""Command line entry point: serial port -> HDLC -> pipeline -> Prometheus."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from collections.abc import Sequence
from dataclasses import dataclass

from prometheus_client import start_http_server

from . import __version__
from .exceptions import AMSConnectionError
from .metrics import PipelineMetrics, create_register_gauges
from .pipeline import DEFAULT_HEADER_LENGTH, DEFAULT_QUEUE_SIZE, IngestionPipeline
from .protocol import HDLCDeframer
from .transport import AMSTransport

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class ReaderConfig:
    address: str = "/dev/ttyUSB0"
    baudrate: int = 2400
    databits: int = 8
    stopbits: int = 1
    parity: str = "E"
    verbose: bool = False
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080
    queue_size: int = DEFAULT_QUEUE_SIZE
    header_length: int = DEFAULT_HEADER_LENGTH


def _listen_address(value: str) -> tuple[str, int]:
    host, separator, port = value.rpartition(":")
    if not separator or not port.isdigit():
        raise argparse.ArgumentTypeError(f"expected host:port, got {value!r}")
    return host or "0.0.0.0", int(port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amsreader",
        description="Export Aidon AMS power meter readings as Prometheus metrics",
    )
    parser.add_argument("-a", "--address", default="/dev/ttyUSB0", help="serial port or socket:// URL")
    parser.add_argument("-b", "--baudrate", type=int, default=2400, help="baud rate")
    parser.add_argument("-d", "--databits", type=int, default=8, help="data bits")
    parser.add_argument("-s", "--stopbits", type=int, default=1, help="stop bits")
    parser.add_argument("-p", "--parity", choices=("N", "E", "O"), default="E", help="parity (N/E/O)")
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose output")
    parser.add_argument(
        "-l", "--listen", type=_listen_address, default="0.0.0.0:8080", help="metrics listen address"
    )
    parser.add_argument("--queue-size", type=int, default=DEFAULT_QUEUE_SIZE, help="decoded record queue size")
    parser.add_argument(
        "--header-length", type=int, default=DEFAULT_HEADER_LENGTH, help="frame header bytes skipped before decoding"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> ReaderConfig:
    args = build_parser().parse_args(argv)
    listen_host, listen_port = args.listen
    return ReaderConfig(
        address=args.address,
        baudrate=args.baudrate,
        databits=args.databits,
        stopbits=args.stopbits,
        parity=args.parity,
        verbose=args.verbose,
        listen_host=listen_host,
        listen_port=listen_port,
        queue_size=args.queue_size,
        header_length=args.header_length,
    )


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


async def run(config: ReaderConfig) -> None:
    """Open the port, start the metrics server and run until signalled."""
    transport = AMSTransport(
        config.address,
        baudrate=config.baudrate,
        bytesize=config.databits,
        parity=config.parity,
        stopbits=config.stopbits,
    )

    try:
        start_http_server(config.listen_port, addr=config.listen_host)
    except OSError as e:
        _LOGGER.error("HTTP server: %s", e)
        raise
    _LOGGER.info("Started HTTP server on %s:%d", config.listen_host, config.listen_port)

    gauges = create_register_gauges()
    metrics = PipelineMetrics()

    async with transport:
        pipeline = IngestionPipeline(
            HDLCDeframer(transport.read),
            gauges,
            metrics,
            queue_size=config.queue_size,
            header_length=config.header_length,
        )

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, pipeline.stop)

        await pipeline.run()

    _LOGGER.info("Terminating")


def main(argv: Sequence[str] | None = None) -> int:
    config = parse_args(argv)
    configure_logging(config.verbose)

    _LOGGER.info("Aidon AMS reader %s", __version__)

    try:
        asyncio.run(run(config))
    except AMSConnectionError as e:
        _LOGGER.error("%s", e)
        return 1
    except OSError:
        # Already logged where the metrics server failed to bind
        return 1

    return 0
