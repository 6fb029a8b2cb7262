"""Prometheus metrics exported by the reader.

Gauges are keyed by the OBIS code of the register they mirror. The table is
built once at startup and handed to the pipeline as a read-only mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from prometheus_client import CollectorRegistry, Counter, Gauge
from prometheus_client.registry import REGISTRY

METRICS_NAMESPACE = "ams"

# OBIS code -> (metric name, help text)
REGISTER_GAUGES: Mapping[str, tuple[str, str]] = MappingProxyType(
    {
        "1-0:1.7.0.255": ("active_positive_instantaneous_value", "Active+ Instantaneous value"),
        "1-0:2.7.0.255": ("active_negative_instantaneous_value", "Active- Instantaneous value"),
        "1-0:3.7.0.255": ("reactive_positive_instantaneous_value", "Reactive+ Instantaneous value"),
        "1-0:4.7.0.255": ("reactive_negative_instantaneous_value", "Reactive- Instantaneous value"),
        "1-0:31.7.0.255": ("l1_current_instantaneous_value", "L1 Current Instantaneous value"),
        "1-0:51.7.0.255": ("l2_current_instantaneous_value", "L2 Current Instantaneous value"),
        "1-0:71.7.0.255": ("l3_current_instantaneous_value", "L3 Current Instantaneous value"),
        "1-0:32.7.0.255": ("l1_voltage_instantaneous_value", "L1 Voltage Instantaneous value"),
        "1-0:52.7.0.255": ("l2_voltage_instantaneous_value", "L2 Voltage Instantaneous value"),
        "1-0:72.7.0.255": ("l3_voltage_instantaneous_value", "L3 Voltage Instantaneous value"),
        "1-0:1.8.0.255": ("active_positive_energy", "Active+ Energy"),
        "1-0:2.8.0.255": ("active_negative_energy", "Active- Energy"),
        "1-0:3.8.0.255": ("reactive_positive_energy", "Reactive+ Energy"),
        "1-0:4.8.0.255": ("reactive_negative_energy", "Reactive- Energy"),
    }
)


def create_register_gauges(registry: CollectorRegistry = REGISTRY) -> Mapping[str, Gauge]:
    """Register one gauge per known OBIS code.

    Returns:
        Read-only mapping from OBIS code to gauge
    """
    gauges = {
        obis: Gauge(name, description, namespace=METRICS_NAMESPACE, registry=registry)
        for obis, (name, description) in REGISTER_GAUGES.items()
    }
    return MappingProxyType(gauges)


class PipelineMetrics:
    """Counters describing what the ingestion pipeline has seen.

    Attributes:
        messages_processed: Records decoded and queued
        frame_resyncs: HDLC frame re-synchronizations
        frame_aborts: HDLC frames aborted or rejected
        parse_errors: Records dropped because they could not be decoded
    """

    messages_processed: Counter
    frame_resyncs: Counter
    frame_aborts: Counter
    parse_errors: Counter

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.messages_processed = Counter(
            "messages_processed",
            "Total number of messages processed",
            namespace=METRICS_NAMESPACE,
            registry=registry,
        )
        self.frame_resyncs = Counter(
            "hdlc_frame_resync",
            "Total number of HDLC frame re-synchronizations",
            namespace=METRICS_NAMESPACE,
            registry=registry,
        )
        self.frame_aborts = Counter(
            "hdlc_frame_aborted",
            "Total number of HDLC frame aborts",
            namespace=METRICS_NAMESPACE,
            registry=registry,
        )
        self.parse_errors = Counter(
            "parse_errors",
            "Total number of messages dropped due to parsing errors",
            namespace=METRICS_NAMESPACE,
            registry=registry,
        )
