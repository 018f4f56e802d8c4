"""Exception types shared across pingwatch."""


class PingwatchError(Exception):
    """Base class for pingwatch errors."""


class ProbeTransportError(PingwatchError):
    """The echo request could not be sent or its reply could not be read."""


class ProbeTimeout(PingwatchError):
    """The echo request did not complete within its timeout guard."""


class TraceProcessSpawnError(PingwatchError):
    """The external trace command could not be started."""


class TraceOutputReadError(PingwatchError):
    """A line could not be read from the trace command's output."""


class ExportError(PingwatchError):
    """Writing a target list, report or transcript failed."""
