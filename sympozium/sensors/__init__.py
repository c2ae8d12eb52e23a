"""Sympozium Operator Sensor Framework.

Hook based instrumentation of reconciliation events.

Key components:
- OperatorSensor: Base class defining lifecycle hooks for operator events
- SensorDelegate: Fan-out to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter

Usage:
    from sympozium.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from sympozium.sensors.base import OperatorSensor
from sympozium.sensors.delegate import SensorDelegate
from sympozium.sensors.prometheus import PrometheusMonitor
from sympozium.sensors.server import init_metrics_server

__all__ = [
    "OperatorSensor",
    "SensorDelegate",
    "PrometheusMonitor",
    "init_metrics_server",
]
