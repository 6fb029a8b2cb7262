"""Ingestion pipeline from deframed HDLC frames to register gauges.

A producer task reads frames from a FrameSource, decodes and flattens them,
and queues the resulting records. A consumer task publishes every record to
the gauge table. The bounded queue between them is the only backpressure
point: when it is full the producer waits instead of dropping records.

Decode errors only cost the current frame. Transport errors end the run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from contextlib import suppress
from enum import Enum, auto
from typing import Protocol

from .exceptions import AMSDecodeError, HDLCAbortError, HDLCResyncedError
from .metrics import PipelineMetrics
from .protocol import FlatRecord, decode_flattened, to_metric_value

_LOGGER = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 32

# Link layer and APDU header bytes in front of the data-notification body
DEFAULT_HEADER_LENGTH = 17


class FrameSource(Protocol):
    async def read_frame(self) -> bytes: ...


class RegisterGauge(Protocol):
    def set(self, value: float) -> None: ...


class PipelineState(Enum):
    """Lifecycle of a pipeline run. Transitions only move forward."""

    RUNNING = auto()
    STOPPING = auto()
    STOPPED = auto()


class IngestionPipeline:
    """Decodes frames from a source and publishes register values.

    Attributes:
        header_length: Number of leading frame bytes skipped before decoding
        queue_size: Capacity of the queue between producer and consumer
    """

    header_length: int
    queue_size: int

    _source: FrameSource
    _gauges: Mapping[str, RegisterGauge]
    _metrics: PipelineMetrics
    _queue: asyncio.Queue[FlatRecord]
    _state: PipelineState
    _stop_event: asyncio.Event

    def __init__(
        self,
        source: FrameSource,
        gauges: Mapping[str, RegisterGauge],
        metrics: PipelineMetrics,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        header_length: int = DEFAULT_HEADER_LENGTH,
    ) -> None:
        """Initialize pipeline (does not start it).

        Args:
            source: Provider of deframed frames
            gauges: Read-only table from OBIS code to gauge
            metrics: Counters updated by the producer
            queue_size: Capacity of the record queue
            header_length: Leading frame bytes to skip before decoding
        """
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")

        if header_length < 0:
            raise ValueError("header_length cannot be negative")

        self.header_length = header_length
        self.queue_size = queue_size

        self._source = source
        self._gauges = gauges
        self._metrics = metrics

        self._queue = asyncio.Queue(maxsize=queue_size)
        self._state = PipelineState.RUNNING
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> PipelineState:
        return self._state

    def stop(self) -> None:
        """Request shutdown (idempotent, safe to call from signal handlers)."""
        if self._state is PipelineState.RUNNING:
            _LOGGER.info("Stopping ingestion pipeline")
            self._state = PipelineState.STOPPING
            self._stop_event.set()

    def decode_frame(self, frame: bytes) -> FlatRecord | None:
        """Decode one frame, counting the outcome.

        Returns:
            The flattened record, or None if the frame could not be decoded
        """
        try:
            record = decode_flattened(frame[self.header_length :])
        except AMSDecodeError as e:
            _LOGGER.error("Parse data structure: %s", e)
            self._metrics.parse_errors.inc()
            return None

        self._metrics.messages_processed.inc()
        return record

    def publish(self, record: FlatRecord) -> None:
        """Set the gauge of every known register in record."""
        for obis, value in record.items():
            gauge = self._gauges.get(obis)
            if gauge is None:
                continue

            number = to_metric_value(value)
            if number is not None:
                gauge.set(number)

    async def _produce(self) -> None:
        try:
            while self._state is PipelineState.RUNNING:
                try:
                    frame = await self._source.read_frame()
                except HDLCResyncedError as e:
                    self._metrics.frame_resyncs.inc()
                    _LOGGER.debug("HDLC frame re-synced: %s", e)
                    continue
                except HDLCAbortError as e:
                    self._metrics.frame_aborts.inc()
                    _LOGGER.error("HDLC frame aborted: %s", e)
                    continue

                record = self.decode_frame(frame)
                if record is not None:
                    await self._queue.put(record)
        finally:
            _LOGGER.info("Serial packet reading stopped")
            self.stop()

    async def _consume(self) -> None:
        try:
            while self._state is PipelineState.RUNNING:
                record = await self._queue.get()
                self.publish(record)
        except Exception:
            _LOGGER.exception("Publishing record failed")
            raise
        finally:
            _LOGGER.info("Publishing stopped")
            self.stop()

    def _drain(self) -> None:
        while True:
            try:
                record = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            self.publish(record)

    async def run(self) -> None:
        """Run producer and consumer until stop() is called or either task fails.

        Records still queued at shutdown are published before returning, unless
        publishing itself failed.

        Raises:
            AMSConnectionError: If the frame source fails
            RuntimeError: If the pipeline was already run
            Exception: Whatever made the consumer fail while publishing
        """
        if self._state is not PipelineState.RUNNING:
            raise RuntimeError("Pipeline has already been stopped")

        producer = asyncio.create_task(self._produce(), name="ams-producer")
        consumer = asyncio.create_task(self._consume(), name="ams-consumer")

        try:
            await self._stop_event.wait()
        finally:
            self.stop()
            consumer.cancel()
            producer.cancel()
            await asyncio.wait((producer, consumer))

            try:
                if consumer.cancelled() or consumer.exception() is None:
                    self._drain()
            finally:
                self._state = PipelineState.STOPPED
                _LOGGER.info("Ingestion pipeline stopped")

        for task in (producer, consumer):
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()
