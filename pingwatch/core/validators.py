"""Validators - Pure functions for validation (exception-based)."""
import re


class ValidationError(ValueError):
    """Raised when validation fails."""

    pass


class NoTargetsError(ValidationError):
    """Raised when there is nothing to monitor or trace."""

    pass


_ADDRESS_RE = re.compile(r"^[A-Za-z0-9\.\-_:%\[\]]+$")


def validate_interval(interval_ms: int) -> None:
    """Validate the delay between two probes of one target."""
    if not isinstance(interval_ms, int) or isinstance(interval_ms, bool):
        raise ValidationError("Interval must be an integer")
    if interval_ms < 1:
        raise ValidationError(f"Interval must be at least 1 ms, got {interval_ms}")


def validate_timeout(timeout_ms: int) -> None:
    """Validate the probe timeout."""
    if not isinstance(timeout_ms, int) or isinstance(timeout_ms, bool):
        raise ValidationError("Timeout must be an integer")
    if timeout_ms < 1:
        raise ValidationError(f"Timeout must be at least 1 ms, got {timeout_ms}")


def validate_address(address: str) -> None:
    """Validate a host name or IP literal."""
    if not address or not isinstance(address, str):
        raise ValidationError("Address is required")
    if not _ADDRESS_RE.match(address):
        raise ValidationError(f"Invalid address: {address}")
