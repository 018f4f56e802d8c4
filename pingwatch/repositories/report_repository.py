"""Report Repository - Results reports and trace transcripts."""
import os
from datetime import datetime
from typing import Iterable, List, Optional

from pingwatch.core.constants import FILE_ENCODING
from pingwatch.core.errors import ExportError
from pingwatch.core.events import DisruptionEvent
from pingwatch.core.logger import logger
from pingwatch.core.target import MonitorTarget
from pingwatch.repositories.file_utils import append_text, sanitize_filename

BANNER = "=" * 64
TRANSCRIPT_SEPARATOR = "-" * 64
NO_EVENTS_LINE = "No disruption events recorded."

MONITOR_HEADER = (
    "status,seq,address,host,sent,failed,consecutive_failed,down_time[hh:mm:ss],"
    "max_down_time[hh:mm:ss],rtt[ms],avg[ms],min[ms],max[ms],jitter1[ms],jitter2[ms],stddev"
)
EVENT_HEADER = (
    "address,host,down_start,recovery_time,failures,duration[hh:mm:ss],"
    "pre_avg[ms],pre_min[ms],pre_max[ms],"
    "post_avg[ms],post_min[ms],post_max[ms],"
    "pre_jitter1,pre_jitter2,pre_stddev,"
    "post_jitter1,post_jitter2,post_stddev"
)

_TIME_FORMAT = "%Y/%m/%d %H:%M:%S"


def _fmt_time(value: Optional[datetime]) -> str:
    return value.strftime(_TIME_FORMAT) if value else ""


def _num(value: float) -> str:
    """Whole values print without a fraction, like the live table."""
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


class ReportRepository:
    """Appends human-readable exports; never rewrites earlier content."""

    def __init__(self, encoding: str = FILE_ENCODING):
        self._encoding = encoding

    def save_results(
        self,
        path: str,
        targets: Iterable[MonitorTarget],
        events: Iterable[DisruptionEvent],
        started_at: Optional[datetime],
        ended_at: Optional[datetime],
        interval_ms: int,
        timeout_ms: int,
    ) -> None:
        """
        Append one results report: run header, per-target statistics and the
        disruption events ordered by recovery time.

        Raises:
            ExportError: The report could not be written
        """
        lines = [
            BANNER,
            f"Saved: {datetime.now().strftime(_TIME_FORMAT)}",
            "",
            f"Started : {_fmt_time(started_at)}",
            f"Ended   : {_fmt_time(ended_at)}",
            f"Interval: {interval_ms} [ms]     Timeout: {timeout_ms} [ms]",
            "",
            "--- Monitoring statistics ---",
            MONITOR_HEADER,
        ]
        lines.extend(self._target_row(t) for t in sorted(targets, key=lambda t: t.sequence))
        lines.extend(["", "", "--- Disruption events ---"])

        events = sorted(events, key=lambda e: e.recovery_time)
        if events:
            lines.append(EVENT_HEADER)
            lines.extend(self._event_row(e) for e in events)
        else:
            lines.append(NO_EVENTS_LINE)
        lines.append("")

        if not append_text(path, "\n".join(lines) + "\n", self._encoding):
            raise ExportError(f"Could not write results to {path}")
        logger.info(f"[ReportRepository] Results saved to {path} ({len(events)} events)")

    def save_trace_transcript(self, folder: str, address: str, host: str, content: str) -> Optional[str]:
        """
        Append one trace transcript to the day's file for that address.

        Returns:
            The file path, or None when there was nothing to save

        Raises:
            ExportError: The transcript could not be written
        """
        if not content or not content.strip():
            return None

        stamp = datetime.now()
        file_name = (
            f"Traceroute_result_{stamp:%Y%m%d}_{sanitize_filename(address)}_{sanitize_filename(host)}.log"
        )
        path = os.path.join(folder, file_name)
        text = "\n".join([TRANSCRIPT_SEPARATOR, f"Saved: {stamp.strftime(_TIME_FORMAT)}", content, ""]) + "\n"

        if not append_text(path, text, self._encoding):
            raise ExportError(f"Could not write trace transcript to {path}")
        logger.debug(f"[ReportRepository] Transcript for {address} saved to {path}")
        return path

    @staticmethod
    def _target_row(target: MonitorTarget) -> str:
        stats = target.stats
        fields: List[str] = [
            target.label,
            str(target.sequence),
            target.address,
            target.host,
            str(target.send_count),
            str(target.fail_count),
            str(target.consecutive_fail_count),
            target.down_duration_text,
            target.max_down_duration_text,
            _num(target.current_rtt),
            f"{stats.avg:.1f}",
            _num(stats.min),
            _num(stats.max),
            _num(stats.jitter_max_min),
            f"{stats.jitter_pair_avg:.1f}",
            f"{stats.std_dev:.2f}",
        ]
        return ",".join(fields)

    @staticmethod
    def _event_row(event: DisruptionEvent) -> str:
        pre, post = event.pre_down, event.post_recovery
        fields = [
            event.address,
            event.host,
            _fmt_time(event.down_start),
            _fmt_time(event.recovery_time),
            str(event.failure_count),
            event.duration_text,
            f"{pre.avg:.1f}",
            _num(pre.min),
            _num(pre.max),
            f"{post.avg:.1f}",
            _num(post.min),
            _num(post.max),
            _num(pre.jitter_max_min),
            f"{pre.jitter_pair_avg:.1f}",
            f"{pre.std_dev:.2f}",
            _num(post.jitter_max_min),
            f"{post.jitter_pair_avg:.1f}",
            f"{post.std_dev:.2f}",
        ]
        return ",".join(fields)
