"""
Network Disconnect Analyzer - Recommendation Engine
Turns correlation results, live monitor records and adapter details into
plain-language findings with suggested actions.

Each finding includes:
  - Severity (info / warning / critical)
  - What was observed
  - What it likely means
  - What to do about it
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from netdisconnect.adapter_details import AdapterDetails
from netdisconnect.correlation import CorrelationResult, CorrelationSummary
from netdisconnect.events import CollectionFailure, NETWORK_EVENT_IDS
from netdisconnect.monitor import CRITICAL, WARNING, StateChangeRecord

logger = logging.getLogger(__name__)

# Correlated ids that point at the driver / NIC rather than the cable
DRIVER_RESET_IDS = {10400, 10401, 10317}
# Correlated ids that are consequences of the link loss
CONSEQUENCE_IDS = {1129, 1014, 6062}


# ── Data Structures ──────────────────────────────────────────────────────────

@dataclass
class Finding:
    """A single diagnostic finding with a recommendation."""
    severity: str          # "info", "warning", "critical"
    title: str
    description: str
    likely_cause: str
    suggestion: str
    category: str = ""     # "physical", "driver", "power", "monitor", "collection"
    metric_value: str = ""

    @property
    def marker(self) -> str:
        return {"info": "[*]", "warning": "[!]", "critical": "[X]"}.get(self.severity, "[*]")


@dataclass
class AnalysisReport:
    """Complete diagnosis of one run."""
    generated_at: str = ""
    lookback_hours: float = 0.0
    health_score: int = 100
    health_label: str = "Healthy"
    summary: str = ""
    physical_adapter_affected: bool = False
    findings: List[Finding] = field(default_factory=list)


# ── Analyzer ─────────────────────────────────────────────────────────────────

class DisconnectAnalyzer:
    """Produces an AnalysisReport from everything one run collected."""

    def analyze(
        self,
        summary: CorrelationSummary,
        results: Sequence[CorrelationResult],
        monitor_records: Sequence[StateChangeRecord] = (),
        details: Optional[Dict[str, AdapterDetails]] = None,
        failures: Sequence[CollectionFailure] = (),
        lookback_hours: float = 24,
    ) -> AnalysisReport:
        details = details or {}
        report = AnalysisReport(
            generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            lookback_hours=lookback_hours,
        )
        report.physical_adapter_affected = (
            summary.real_disconnects > 0
            or any(r.severity == CRITICAL for r in monitor_records)
        )

        findings = []
        findings.extend(self._check_physical_disconnects(summary, results, lookback_hours))
        findings.extend(self._check_correlated_context(results))
        findings.extend(self._check_non_physical(summary))
        findings.extend(self._check_monitor(monitor_records))
        findings.extend(self._check_power_management(details))
        findings.extend(self._check_error_counters(details))
        findings.extend(self._check_collection_failures(failures))

        if not any(f.severity in ("critical", "warning") for f in findings):
            findings.append(Finding(
                severity="info",
                title="No Physical Disconnects Found",
                description=(
                    f"No disconnect events were tied to a physical adapter in the "
                    f"last {lookback_hours:g} hours."
                ),
                likely_cause="The wired link has been stable over the analyzed period.",
                suggestion=(
                    "If users still report drops, run again with --monitor while the "
                    "problem is happening to capture live state changes."
                ),
                category="physical",
            ))

        severity_order = {"critical": 0, "warning": 1, "info": 2}
        findings.sort(key=lambda f: severity_order.get(f.severity, 3))
        report.findings = findings

        report.health_score = self._calculate_health_score(summary, findings)
        report.health_label = self._health_label(report.health_score)
        report.summary = self._build_summary(report, summary)
        return report

    # ── Event Log Checks ─────────────────────────────────────────────────

    def _check_physical_disconnects(self, summary, results, hours) -> List[Finding]:
        if summary.real_disconnects == 0:
            return []

        per_adapter = Counter(r.adapter_label for r in results if r.is_physical)
        worst, worst_count = per_adapter.most_common(1)[0]
        severity = "critical" if summary.real_disconnects >= 3 else "warning"
        return [Finding(
            severity=severity,
            title="Physical Adapter Lost Link",
            description=(
                f"{summary.real_disconnects} disconnect event(s) on physical adapters "
                f"in the last {hours:g} hours. Most affected: {worst} "
                f"({worst_count} event(s))."
            ),
            likely_cause=(
                "A wired link going down is usually a cable, connector or switch "
                "port problem, or the NIC being powered down by the OS."
            ),
            suggestion=(
                "1. Reseat or replace the patch cable at both ends\n"
                "2. Try a different switch port and check its error counters\n"
                "3. Check whether the times line up with sleep, docking or power events\n"
                "4. Run with --monitor to see if the link flaps while you watch"
            ),
            category="physical",
            metric_value=f"{summary.real_disconnects} disconnects",
        )]

    def _check_correlated_context(self, results) -> List[Finding]:
        findings = []
        context_ids = Counter()
        resets = 0
        for r in results:
            if r.is_physical:
                seen = {e.event_id for e in r.correlated}
                context_ids.update(seen)
                if seen & DRIVER_RESET_IDS:
                    resets += 1

        if resets:
            findings.append(Finding(
                severity="warning",
                title="Disconnects Coincide With NIC Resets",
                description=(
                    f"{resets} disconnect(s) had a network interface reset or a "
                    f"stopped miniport within 30 seconds."
                ),
                likely_cause=(
                    "The adapter driver or firmware is resetting the NIC, which drops "
                    "the link even when the cable is fine."
                ),
                suggestion=(
                    "1. Update the NIC driver from the hardware vendor, not Windows Update\n"
                    "2. Disable Energy Efficient Ethernet / Green Ethernet in the adapter properties\n"
                    "3. Check for a NIC firmware update"
                ),
                category="driver",
                metric_value=f"{resets} disconnects",
            ))

        consequences = {i: context_ids[i] for i in CONSEQUENCE_IDS if context_ids[i]}
        if consequences:
            names = ", ".join(f"{NETWORK_EVENT_IDS.get(i, i)} ({n})"
                              for i, n in sorted(consequences.items()))
            findings.append(Finding(
                severity="info",
                title="Downstream Effects Observed",
                description=f"Events seen around the disconnects: {names}.",
                likely_cause="These are side effects of the link loss, not its cause.",
                suggestion="Fix the link drops first; these should disappear with them.",
                category="physical",
            ))
        return findings

    def _check_non_physical(self, summary: CorrelationSummary) -> List[Finding]:
        findings = []
        if summary.real_disconnects == 0 and summary.virtual:
            findings.append(Finding(
                severity="info",
                title="Disconnects Only On Virtual Adapters",
                description=(
                    f"{summary.virtual} disconnect event(s) belong to virtual, VPN, "
                    f"wireless or unknown adapters."
                ),
                likely_cause=(
                    "VPN clients, Hyper-V switches and Wi-Fi roaming log disconnects "
                    "routinely. These rarely explain wired outages."
                ),
                suggestion="Use --show-virtual to list them if they need a closer look.",
                category="physical",
                metric_value=f"{summary.virtual} events",
            ))
        if summary.unattributed:
            findings.append(Finding(
                severity="info",
                title="Unattributed Disconnect Events",
                description=(
                    f"{summary.unattributed} disconnect event(s) did not name an adapter "
                    f"and were not counted as real disconnects."
                ),
                likely_cause="The event message does not contain a quoted adapter name.",
                suggestion="Review these entries in Event Viewer if the counts look off.",
                category="physical",
                metric_value=f"{summary.unattributed} events",
            ))
        return findings

    # ── Live Monitor Checks ──────────────────────────────────────────────

    def _check_monitor(self, records: Sequence[StateChangeRecord]) -> List[Finding]:
        findings = []
        physical = [r for r in records if r.severity == CRITICAL]
        flapping = sorted({r.adapter_name for r in physical if r.recovered_on_recheck})
        software = [r for r in records if r.severity == WARNING]

        if flapping:
            findings.append(Finding(
                severity="critical",
                title="Link Flapping Detected",
                description=(
                    f"The link on {', '.join(flapping)} dropped and came back within "
                    f"seconds during live monitoring."
                ),
                likely_cause=(
                    "Rapid up/down cycles point to a damaged cable, a loose RJ45 "
                    "connector, or a speed/duplex negotiation problem with the switch."
                ),
                suggestion=(
                    "1. Replace the patch cable\n"
                    "2. Force the same speed/duplex on the NIC and switch port\n"
                    "3. Try a different switch port"
                ),
                category="monitor",
                metric_value=f"{len(flapping)} adapter(s)",
            ))
        elif physical:
            findings.append(Finding(
                severity="critical",
                title="Physical Disconnect During Monitoring",
                description=(
                    f"{len(physical)} physical disconnect(s) were captured while "
                    f"monitoring."
                ),
                likely_cause="The carrier signal was lost on a wired adapter.",
                suggestion="Check the cable, the switch port and the port's error counters.",
                category="monitor",
                metric_value=f"{len(physical)} drops",
            ))

        if software:
            names = sorted({r.adapter_name for r in software})
            findings.append(Finding(
                severity="warning",
                title="Software-Level Disconnect",
                description=(
                    f"{', '.join(names)} went administratively down while the cable "
                    f"stayed connected."
                ),
                likely_cause=(
                    "Something on the PC disabled the adapter: power management, a VPN "
                    "client, a driver reset or a management tool."
                ),
                suggestion=(
                    "1. Disable 'Allow the computer to turn off this device to save power'\n"
                    "2. Check installed VPN / endpoint software for adapter control\n"
                    "3. Update the NIC driver"
                ),
                category="monitor",
                metric_value=f"{len(software)} events",
            ))
        return findings

    # ── Adapter Detail Checks ────────────────────────────────────────────

    def _check_power_management(self, details: Dict[str, AdapterDetails]) -> List[Finding]:
        names = sorted(n for n, d in details.items() if d.power_saving_enabled)
        if not names:
            return []
        return [Finding(
            severity="warning",
            title="Power Saving Can Turn Off Adapter",
            description=(
                f"Windows is allowed to power down: {', '.join(names)}."
            ),
            likely_cause=(
                "With this setting the OS can switch the NIC off during idle or "
                "sleep transitions, which shows up as a disconnect."
            ),
            suggestion=(
                "Device Manager > adapter > Power Management: untick "
                "'Allow the computer to turn off this device to save power'."
            ),
            category="power",
        )]

    def _check_error_counters(self, details: Dict[str, AdapterDetails]) -> List[Finding]:
        findings = []
        for name, d in sorted(details.items()):
            if not d.counters_available or (d.total_errors == 0 and d.total_drops == 0):
                continue
            findings.append(Finding(
                severity="warning" if d.total_errors else "info",
                title=f"Interface Errors On {name}",
                description=(
                    f"{d.errors_in} receive / {d.errors_out} transmit errors and "
                    f"{d.drops_in} / {d.drops_out} dropped packets since boot."
                ),
                likely_cause=(
                    "Non-zero error counters on a wired link usually mean signal "
                    "quality problems: cable damage, EMI, or a duplex mismatch."
                ),
                suggestion=(
                    "Test or replace the cable and compare speed/duplex settings "
                    "with the switch port."
                ),
                category="physical",
                metric_value=f"{d.total_errors} errors",
            ))
        return findings

    def _check_collection_failures(self, failures: Sequence[CollectionFailure]) -> List[Finding]:
        if not failures:
            return []
        ids = ", ".join(str(f.event_id) for f in failures)
        return [Finding(
            severity="warning",
            title="Some Event Queries Failed",
            description=f"Could not read event id(s): {ids}.",
            likely_cause=(
                "The event log was unavailable, access was denied, or the "
                "PowerShell query timed out."
            ),
            suggestion="Run the tool from an elevated prompt on the affected PC.",
            category="collection",
            metric_value=f"{len(failures)} failed",
        )]

    # ── Health Score ─────────────────────────────────────────────────────

    def _calculate_health_score(self, summary: CorrelationSummary,
                                findings: List[Finding]) -> int:
        score = 100
        score -= min(30, summary.real_disconnects * 5)
        critical_count = sum(1 for f in findings if f.severity == "critical")
        warning_count = sum(1 for f in findings if f.severity == "warning")
        score -= critical_count * 15
        score -= warning_count * 5
        return max(0, min(100, int(score)))

    def _health_label(self, score: int) -> str:
        if score >= 90:
            return "Healthy"
        elif score >= 70:
            return "Degraded"
        elif score >= 40:
            return "Unstable"
        else:
            return "Critical"

    def _build_summary(self, report: AnalysisReport, summary: CorrelationSummary) -> str:
        critical = [f for f in report.findings if f.severity == "critical"]
        warnings = [f for f in report.findings if f.severity == "warning"]

        if not report.physical_adapter_affected:
            return (
                f"No physical adapter lost its link in the last "
                f"{report.lookback_hours:g} hours. "
                f"{summary.total_disconnects} disconnect event(s) were found in total."
            )

        parts = [f"{summary.real_disconnects} disconnect(s) hit a physical adapter."]
        if critical:
            parts.append(
                f"Found {len(critical)} critical issue(s): "
                + "; ".join(f.title for f in critical[:2]) + "."
            )
        elif warnings:
            parts.append(
                f"Found {len(warnings)} issue(s) worth investigating: "
                + "; ".join(f.title for f in warnings[:2]) + "."
            )
        return " ".join(parts)
