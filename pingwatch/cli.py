"""Command-line interface for pingwatch."""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import click
import yaml

from pingwatch import __version__
from pingwatch.core.config import Config
from pingwatch.core.errors import ExportError
from pingwatch.core.logger import set_level
from pingwatch.core.signals import MonitorSignal
from pingwatch.core.target import MonitorTarget
from pingwatch.core.types import TargetStatus
from pingwatch.core.validators import ValidationError, validate_address
from pingwatch.repositories import ReportRepository, TargetListRepository, parse_target_line
from pingwatch.services.monitoring_service import MonitoringService
from pingwatch.services.ping_console import PingConsole
from pingwatch.services.trace_orchestrator import TraceOrchestrator
from pingwatch.utils.platform_utils import PlatformUtils

STATUS_HEADER = (
    f"{'#':>3}  {'Address':<24} {'Host':<16} {'Status':<10} {'Sent':>6} {'Fail':>6} "
    f"{'RTT':>6} {'Avg':>7} {'Min':>6} {'Max':>6} {'Jit1':>6} {'Jit2':>6} {'Down':>9}"
)


def _make_prober(config: Config):
    from pingwatch.services.prober import IcmpProber

    return IcmpProber(privileged=config.get("probe.privileged"))


def _build_targets(addresses, target_file: Optional[Path], config: Config) -> List[MonitorTarget]:
    targets: List[MonitorTarget] = []
    if target_file:
        targets = TargetListRepository(config.get("file_encoding", "utf-8")).load(str(target_file))

    for arg in addresses:
        parsed = parse_target_line(arg)
        if parsed is None:
            continue
        targets.append(MonitorTarget(len(targets) + 1, *parsed))

    for target in targets:
        validate_address(target.address)
    return targets


def _format_row(target: MonitorTarget) -> str:
    stats = target.stats
    label = target.label or "-"
    return (
        f"{target.sequence:>3}  {target.address:<24.24} {target.host:<16.16} {label:<10} "
        f"{target.send_count:>6} {target.fail_count:>6} {target.current_rtt:>6.0f} {stats.avg:>7.1f} "
        f"{stats.min:>6.0f} {stats.max:>6.0f} {stats.jitter_max_min:>6.0f} {stats.jitter_pair_avg:>6.1f} "
        f"{target.down_duration_text or '-':>9}"
    )


def _print_status(service: MonitoringService) -> None:
    click.echo(STATUS_HEADER)
    for target in sorted(service.targets, key=lambda t: t.sequence):
        click.echo(_format_row(target))
    click.echo(f"Disruption events: {len(service.event_log)}")
    click.echo()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    help="Path to configuration file",
)
@click.pass_context
def main(ctx, config: Optional[Path]):
    """Pingwatch - Continuous ICMP reachability monitoring with path tracing."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = Config(config)
    set_level(ctx.obj["config"].get("log_level", "info"))


@main.command()
@click.argument("addresses", nargs=-1)
@click.option(
    "--file",
    "-f",
    "target_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Target list to load",
)
@click.option("--interval", "-i", type=int, help="Probe interval in ms")
@click.option("--timeout", "-t", type=int, help="Probe timeout in ms")
@click.option("--duration", "-d", type=float, help="Stop after this many seconds")
@click.option("--refresh", type=float, default=5.0, show_default=True, help="Status table period in seconds")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Append a results report to this file when monitoring ends",
)
@click.pass_context
def monitor(ctx, addresses, target_file, interval, timeout, duration, refresh, output):
    """Monitor ADDRESSES ("address" or "address,host") until Ctrl+C."""
    config: Config = ctx.obj["config"]
    interval = interval or config.get("interval_ms")
    timeout = timeout or config.get("timeout_ms")

    try:
        targets = _build_targets(addresses, target_file, config)
    except (OSError, ValidationError) as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    service = MonitoringService(prober=_make_prober(config))
    service.signals.subscribe(_echo_monitor_signal)

    click.echo(f"Monitoring {len(targets)} targets (interval {interval} ms, timeout {timeout} ms)...")
    try:
        asyncio.run(_run_monitor(service, targets, interval, timeout, duration, refresh))
    except KeyboardInterrupt:
        click.echo("Interrupted")
    except ValidationError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    _print_status(service)

    if output:
        try:
            ReportRepository(config.get("file_encoding", "utf-8")).save_results(
                str(output),
                service.targets,
                service.event_log.snapshot(),
                service.started_at,
                service.ended_at,
                service.interval_ms,
                service.timeout_ms,
            )
        except ExportError as e:
            click.echo(f"✗ {e}", err=True)
            sys.exit(1)
        click.echo(f"✓ Results saved to {output}")


async def _run_monitor(service: MonitoringService, targets, interval, timeout, duration, refresh) -> None:
    await service.start(targets, interval, timeout)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration if duration else None
    try:
        while deadline is None or loop.time() < deadline:
            wait = refresh if deadline is None else max(0.0, min(refresh, deadline - loop.time()))
            await asyncio.sleep(wait)
            if deadline is None or loop.time() < deadline:
                _print_status(service)
    finally:
        await service.stop()


def _echo_monitor_signal(signal: MonitorSignal, payload) -> None:
    if signal == MonitorSignal.DISRUPTION_CREATED:
        click.echo(
            f"! {payload.address} ({payload.host}) recovered after {payload.failure_count} failures, "
            f"down {payload.duration_text}"
        )
    elif signal == MonitorSignal.TARGET_UPDATED:
        if payload.status == TargetStatus.DOWN and payload.consecutive_fail_count == 1:
            click.echo(f"! {payload.address} ({payload.host}) is down")


@main.command()
@click.argument("addresses", nargs=-1, required=True)
@click.option("--timeout", "-t", type=int, help="Per-hop timeout in ms")
@click.option("--concurrency", type=int, help="Maximum traces running at once")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Append each transcript to a file in this folder",
)
@click.pass_context
def trace(ctx, addresses, timeout, concurrency, output_dir):
    """Trace the path to each of ADDRESSES. Ctrl+C stops the run."""
    config: Config = ctx.obj["config"]
    timeout = timeout or config.get("timeout_ms")
    concurrency = concurrency or config.get("trace.concurrency")

    try:
        for address in addresses:
            validate_address(address)
    except ValidationError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    if PlatformUtils.find_trace_binary() is None:
        click.echo(f"! {PlatformUtils.get_trace_binary()} not found on PATH", err=True)

    orchestrator = TraceOrchestrator(
        capacity=concurrency,
        no_resolve=config.get("trace.no_resolve", True),
    )
    orchestrator.signals.subscribe(_echo_trace_signal)

    try:
        asyncio.run(orchestrator.run(addresses, timeout))
    except KeyboardInterrupt:
        click.echo("Trace stopped")

    session = orchestrator.session
    if output_dir and session is not None:
        repository = ReportRepository(config.get("file_encoding", "utf-8"))
        try:
            for address in session.addresses:
                path = repository.save_trace_transcript(str(output_dir), address, "", session.text(address))
                if path:
                    click.echo(f"✓ Transcript saved to {path}")
        except ExportError as e:
            click.echo(f"✗ {e}", err=True)
            sys.exit(1)


def _echo_trace_signal(signal: MonitorSignal, payload) -> None:
    if signal == MonitorSignal.TRACE_OUTPUT:
        address, line = payload
        click.echo(f"[{address}] {line}")


@main.command()
@click.argument("address")
@click.option("--host", default="", help="Host name shown in the log file name")
@click.option("--count", "-n", type=int, help="Stop after this many probes")
@click.option("--interval", "-i", type=int, help="Probe interval in ms")
@click.option("--timeout", "-t", type=int, help="Probe timeout in ms")
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path), help="Folder for the ping log")
@click.pass_context
def console(ctx, address, host, count, interval, timeout, log_dir):
    """Ping ADDRESS continuously, mirroring every line to a log file."""
    config: Config = ctx.obj["config"]

    try:
        validate_address(address)
    except ValidationError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    ping_console = PingConsole(
        address,
        host,
        prober=_make_prober(config),
        log_dir=str(log_dir or config.get("export_dir")),
        interval_ms=interval or config.get("interval_ms"),
        timeout_ms=timeout or config.get("timeout_ms"),
        on_line=click.echo,
        encoding=config.get("file_encoding", "utf-8"),
    )
    try:
        asyncio.run(ping_console.run(count))
    except KeyboardInterrupt:
        pass


@main.group()
def targets():
    """Manage target lists."""
    pass


@targets.command("export")
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("addresses", nargs=-1, required=True)
@click.pass_context
def targets_export(ctx, file, addresses):
    """Write ADDRESSES ("address" or "address,host") to a target list."""
    config: Config = ctx.obj["config"]

    try:
        target_list = _build_targets(addresses, None, config)
        TargetListRepository(config.get("file_encoding", "utf-8")).save(str(file), target_list)
    except (ValidationError, ExportError) as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    click.echo(f"✓ {len(target_list)} targets written to {file}")


@targets.command("show")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def targets_show(ctx, file):
    """List the targets a file would load."""
    config: Config = ctx.obj["config"]
    target_list = TargetListRepository(config.get("file_encoding", "utf-8")).load(str(file))

    if not target_list:
        click.echo("No targets found")
        return
    for target in target_list:
        click.echo(f"{target.sequence:>3}  {target.address:<24} {target.host}")


@main.group()
def config():
    """Manage configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show current configuration."""
    config: Config = ctx.obj["config"]
    click.echo(f"Configuration file: {config.config_path}")
    click.echo(f"Log level: {config.get('log_level')}")
    click.echo(f"Interval: {config.get('interval_ms')} ms")
    click.echo(f"Timeout: {config.get('timeout_ms')} ms")
    click.echo(f"Trace concurrency: {config.get('trace.concurrency')}")
    click.echo(f"Trace without name resolution: {config.get('trace.no_resolve')}")
    click.echo(f"Privileged probes: {config.get('probe.privileged', 'auto')}")
    click.echo(f"Export folder: {config.get('export_dir')}")
    click.echo(f"File encoding: {config.get('file_encoding')}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key, value):
    """Set KEY (dot notation) to VALUE, parsed as YAML."""
    config: Config = ctx.obj["config"]

    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError:
        parsed = value

    config.set(key, parsed)
    config.save()
    click.echo(f"✓ {key} = {parsed!r}")


@config.command("import")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "file_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="File format",
)
@click.pass_context
def config_import(ctx, file, file_format):
    """Import configuration from file."""
    config: Config = ctx.obj["config"]

    if config.import_config(file, file_format):
        click.echo(f"✓ Configuration imported from {file}")
    else:
        click.echo("✗ Failed to import configuration", err=True)
        sys.exit(1)


@config.command("export")
@click.argument("file", type=click.Path(path_type=Path))
@click.option(
    "--format",
    "file_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="File format",
)
@click.pass_context
def config_export(ctx, file, file_format):
    """Export configuration to file."""
    config: Config = ctx.obj["config"]

    if config.export_config(file, file_format):
        click.echo(f"✓ Configuration exported to {file}")
    else:
        click.echo("✗ Failed to export configuration", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
