"""
Network Disconnect Analyzer - Command Line Flow
Runs one analysis pass: classify adapters, collect and correlate events,
optionally monitor live, then recommend and export.

Exit status is 1 only when no physical adapter exists; every other outcome,
findings included, exits 0.
"""

import argparse
import logging
import os
import platform
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from netdisconnect import __version__
from netdisconnect.adapter_details import AdapterDetails, get_adapter_details
from netdisconnect.adapters import classify_adapters, enumerate_adapters, get_adapter_state
from netdisconnect.analyzer import DisconnectAnalyzer
from netdisconnect.console import (
    SEVERITY_STYLE, Transcript, init_console, print_heading, print_message,
)
from netdisconnect.correlation import CORRELATION_WINDOW, CorrelationResult, correlate, summarize
from netdisconnect.errors import AdapterQueryError
from netdisconnect.events import EventCollector
from netdisconnect.monitor import (
    POLL_INTERVAL_SECONDS, AdapterMonitor, StateChangeRecord, monitor_log_paths,
)
from netdisconnect.pdf_report import generate_disconnect_report
from netdisconnect.report_export import export_events_csv
from netdisconnect.settings_manager import SettingsManager, get_settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_PHYSICAL_ADAPTER = 1


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="netdisconnect",
        description=(
            "Find out why a wired network adapter disconnects: correlates "
            "event log entries and optionally monitors adapter state live."
        ),
    )
    parser.add_argument(
        "--hours", type=float, default=None,
        help="Event log lookback window in hours (default: 24)",
    )
    parser.add_argument(
        "--monitor", action="store_true",
        help="Monitor physical adapters live after the event log analysis",
    )
    parser.add_argument(
        "--monitor-duration", type=float, default=None, metavar="MINUTES",
        help="How long to monitor, in minutes (default: 5)",
    )
    parser.add_argument(
        "--show-virtual", action="store_true",
        help="Also show disconnect events of virtual / VPN / wireless adapters",
    )
    parser.add_argument(
        "--output-dir", "-o", default=None,
        help="Directory for logs, transcript and reports",
    )
    parser.add_argument("--csv", action="store_true", help="Export disconnect events to CSV")
    parser.add_argument("--pdf", action="store_true", help="Generate a PDF report")
    parser.add_argument(
        "--no-transcript", action="store_true",
        help="Do not write a console transcript file",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging to the console")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


# ── Console Rendering ────────────────────────────────────────────────────────

def _print_result(result: CorrelationResult):
    event = result.anchor
    when = event.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    line = f"{when}  [{event.event_id}] {event.description}  ->  {result.adapter_label}"
    if not result.is_attributed:
        print_message(f"{line}  (unattributed)", "muted")
        return
    if not result.is_physical:
        print_message(f"{line}  (virtual/other)", "muted")
        return

    print_message(line, "critical")
    if not result.correlated:
        print_message("    no other events within 30s", "plain")
    for c in result.correlated:
        delta = (c.timestamp - event.timestamp).total_seconds()
        print_message(
            f"    {delta:+5.0f}s  [{c.event_id}] {c.description}  {c.first_line[:80]}",
            "plain",
        )


def _print_change(record: StateChangeRecord):
    style = SEVERITY_STYLE.get(record.severity, "info")
    print_message(
        f"{record.timestamp.strftime('%H:%M:%S')}  {record.severity}  "
        f"{record.adapter_name}: {record.description}  ({record.changes_text})",
        style,
    )
    if record.recovered_on_recheck:
        print_message(
            f"    {record.adapter_name}: link came back within seconds, possible flapping cable or port",
            "warning",
        )


def _print_details(details: AdapterDetails):
    print_message(
        f"    Driver: {details.driver_version} ({details.driver_provider}, {details.driver_date})",
        "plain",
    )
    print_message(
        f"    Allow power off: {details.allow_power_off}   "
        f"Wake on magic packet: {details.wake_on_magic_packet}",
        "plain",
    )
    if details.counters_available:
        print_message(
            f"    Errors in/out: {details.errors_in}/{details.errors_out}   "
            f"Drops in/out: {details.drops_in}/{details.drops_out}",
            "plain",
        )


# ── Run ──────────────────────────────────────────────────────────────────────

def run(args: argparse.Namespace, settings: Optional[SettingsManager] = None) -> int:
    """Execute one full analysis pass and return the exit status."""
    settings = settings or get_settings()
    started = datetime.now()
    stamp = started.strftime("%Y%m%d_%H%M%S")
    output_dir = args.output_dir or settings.output_dir
    hours = args.hours if args.hours is not None else settings.lookback_hours
    duration = (args.monitor_duration if args.monitor_duration is not None
                else settings.monitor_duration_minutes)

    init_console()
    transcript_path = None if args.no_transcript else os.path.join(
        output_dir, f"Transcript_{stamp}.txt")

    with Transcript(transcript_path):
        return _run(args, settings, output_dir, stamp, started, hours, duration, transcript_path)


def _run(args, settings, output_dir, stamp, started, hours, duration, transcript_path) -> int:
    print_heading(f"Network Disconnect Analyzer v{__version__}")
    print_message(f"Computer: {platform.node()}   Started: {started.strftime('%Y-%m-%d %H:%M:%S')}")
    if transcript_path:
        print_message(f"Transcript: {transcript_path}")

    # ── Adapters ──
    print_heading("NETWORK ADAPTERS")
    try:
        adapters = enumerate_adapters(hidden=settings.hidden_adapters)
    except AdapterQueryError as e:
        print_message(f"Could not enumerate network adapters: {e}", "error")
        adapters = []

    partition = classify_adapters(adapters, settings.extra_virtual_patterns)
    for a in partition.physical:
        print_message(f"Physical: {a}  media={a.media_type}  speed={a.link_speed or 'n/a'}", "success")
    for a in partition.virtual:
        print_message(f"Virtual:  {a}  media={a.media_type or 'n/a'}", "muted")

    if not partition.has_physical:
        print_message("No physical Ethernet adapter found. Nothing to analyze.", "error")
        logger.error("No physical adapters found, aborting")
        return EXIT_NO_PHYSICAL_ADAPTER

    details: Dict[str, AdapterDetails] = {}
    for a in partition.physical:
        details[a.name] = get_adapter_details(a)
        print_message(f"{a.name}:", "info")
        _print_details(details[a.name])

    # ── Event Log ──
    print_heading(f"EVENT LOG (last {hours:g} hours)")
    collection = EventCollector().collect(hours=hours)
    for failure in collection.failures:
        print_message(f"Event {failure.event_id} ({failure.description}): {failure.error}", "error")
    print_message(f"{len(collection.events)} network events collected")

    results = correlate(collection.events, partition)
    summary = summarize(results)

    print_heading(f"DISCONNECT EVENTS (correlation window +/- {CORRELATION_WINDOW.seconds}s)")
    shown = 0
    for r in results:
        if r.is_physical or not r.is_attributed or args.show_virtual:
            _print_result(r)
            shown += 1
    if not shown:
        print_message("No disconnect events on physical adapters.", "success")
    print_message(
        f"Disconnects: {summary.total_disconnects} total, {summary.physical} physical, "
        f"{summary.virtual} virtual/other, {summary.unattributed} unattributed"
    )

    # ── Live Monitor ──
    monitor_records: List[StateChangeRecord] = []
    if args.monitor:
        print_heading(f"LIVE MONITOR ({duration:g} min, every {POLL_INTERVAL_SECONDS:g}s)")
        state_log, event_log = monitor_log_paths(output_dir, started)
        monitor = AdapterMonitor(partition.physical, state_log, event_log,
                                 fetch_state=get_adapter_state)
        monitor.set_on_change(_print_change)
        monitor.set_on_error(lambda name, msg: print_message(f"{name}: {msg}", "error"))
        print_message("Press Ctrl+C to stop early.")
        monitor_records = monitor.run(duration_minutes=duration)
        if monitor.interrupted:
            print_message("Monitoring stopped by operator.", "warning")
        counts = monitor.counts_by_severity()
        print_message(
            f"{monitor.tick_count} ticks, {len(monitor_records)} state changes "
            f"({counts['CRITICAL']} critical, {counts['WARNING']} warning, {counts['INFO']} info)"
        )
        print_message(f"State log: {state_log}")
        print_message(f"Event log: {event_log}")

    # ── Recommendations ──
    print_heading("RECOMMENDATIONS")
    analysis = DisconnectAnalyzer().analyze(
        summary, results, monitor_records, details,
        failures=collection.failures, lookback_hours=hours,
    )
    print_message(f"Health: {analysis.health_label} ({analysis.health_score}/100)",
                  "success" if analysis.health_label == "Healthy" else "warning")
    print_message(analysis.summary, "plain")
    for f in analysis.findings:
        print_message(f"{f.title}: {f.description}", SEVERITY_STYLE.get(f.severity, "info"))
        for line in f.suggestion.splitlines():
            print_message(f"    {line}", "plain")

    # ── Exports ──
    if args.csv:
        csv_path = os.path.join(output_dir, f"DisconnectEvents_{stamp}.csv")
        ok, message = export_events_csv(results, csv_path)
        print_message(message, "success" if ok else "warning")

    if args.pdf:
        pdf_path = os.path.join(output_dir, f"DisconnectReport_{stamp}.pdf")
        try:
            generate_disconnect_report(
                partition, results, analysis, monitor_records,
                show_virtual=args.show_virtual, output_path=pdf_path,
                hostname=platform.node(),
            )
            print_message(f"PDF report: {pdf_path}", "success")
        except OSError as e:
            logger.warning(f"PDF report failed: {e}")
            print_message(f"PDF report failed: {e}", "error")

    print_heading("DONE")
    return EXIT_OK
