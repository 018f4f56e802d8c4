"""Pingwatch - Continuous ICMP reachability monitoring with disruption tracking and path tracing."""

__version__ = "0.1.0"
__author__ = "pingwatch contributors"
__description__ = "ICMP reachability monitor with disruption events and bounded-concurrency traceroute"

from pingwatch.core.config import Config
from pingwatch.services.monitoring_service import MonitoringService
from pingwatch.services.trace_orchestrator import TraceOrchestrator

__all__ = ["Config", "MonitoringService", "TraceOrchestrator", "__version__"]
