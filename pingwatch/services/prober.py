"""ICMP echo prober."""
import asyncio
from dataclasses import dataclass
from typing import Optional

import icmplib

from pingwatch.core.constants import PROBE_TIMEOUT_GRACE_SEC
from pingwatch.core.errors import ProbeTimeout, ProbeTransportError
from pingwatch.utils.process_utils import ProcessUtils


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one echo request."""

    success: bool
    rtt_ms: float = 0.0
    reply_address: Optional[str] = None

    @classmethod
    def failed(cls) -> "ProbeResult":
        return cls(success=False, rtt_ms=0.0)


class IcmpProber:
    """Sends single ICMP echo requests through icmplib."""

    def __init__(self, privileged: Optional[bool] = None, payload_size: int = 32):
        """
        Args:
            privileged: Use raw sockets. None decides from the current privileges.
            payload_size: Echo payload in bytes
        """
        self._privileged = ProcessUtils.is_admin() if privileged is None else privileged
        self._payload_size = payload_size

    @property
    def privileged(self) -> bool:
        return self._privileged

    async def probe(self, address: str, timeout_ms: int) -> ProbeResult:
        """
        Send one echo request.

        Raises:
            ProbeTransportError: The request could not be sent or resolved
            ProbeTimeout: The request overran its timeout guard
        """
        timeout_sec = timeout_ms / 1000
        try:
            host = await asyncio.wait_for(
                icmplib.async_ping(
                    address,
                    count=1,
                    timeout=timeout_sec,
                    payload_size=self._payload_size,
                    privileged=self._privileged,
                ),
                timeout=timeout_sec + PROBE_TIMEOUT_GRACE_SEC,
            )
        except asyncio.TimeoutError as e:
            raise ProbeTimeout(f"{address}: no answer within {timeout_ms} ms") from e
        except (icmplib.exceptions.ICMPLibError, OSError) as e:
            raise ProbeTransportError(f"{address}: {e}") from e

        if not host.is_alive:
            return ProbeResult.failed()
        return ProbeResult(success=True, rtt_ms=host.avg_rtt, reply_address=host.address)
