"""Services Package - Monitoring, path tracing and the ping console."""
from pingwatch.services.monitoring_service import MonitoringService
from pingwatch.services.ping_console import PingConsole
from pingwatch.services.probe_loop import ProbeLoop
from pingwatch.services.prober import IcmpProber, ProbeResult
from pingwatch.services.trace_orchestrator import TraceOrchestrator, TraceSession

__all__ = [
    "IcmpProber",
    "MonitoringService",
    "PingConsole",
    "ProbeLoop",
    "ProbeResult",
    "TraceOrchestrator",
    "TraceSession",
]
