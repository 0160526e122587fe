"""Output rendering."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import click

from secret_hook import __version__
from secret_hook.scanner import ScanReport


def render_human(report: ScanReport) -> str:
    """Render findings as a colorized block per finding.

    Only the masked form of each match is printed.
    """
    if report.is_clean:
        return click.style(
            f"No secrets detected in {report.scanned_lines} added lines.",
            fg="green",
            bold=True,
        )

    count = len(report.findings)
    lines: list[str] = [
        click.style(f"{count} secret(s) detected in staged changes:", fg="red", bold=True),
        "",
    ]
    for finding in report.findings:
        lines.append(f"Rule     : {finding.rule_id} ({finding.rule_name})")
        lines.append(f"File     : {finding.location}")
        lines.append(f"Snippet  : {finding.masked}")
        lines.append(f"Advice   : {finding.advice}")
        lines.append("")

    if report.ignored_paths:
        lines.append(
            click.style(f"Ignored files ({len(report.ignored_paths)}):", bold=True)
        )
        lines.extend(f"- {path}" for path in report.ignored_paths)
    return "\n".join(lines).rstrip("\n")


def render_json(report: ScanReport, *, input_source: str) -> str:
    """Render stable JSON output for CI and automation."""
    return json.dumps(build_json_payload(report, input_source=input_source), sort_keys=True)


def build_json_payload(report: ScanReport, *, input_source: str) -> dict[str, Any]:
    """Build stable JSON payload for CI and automation."""
    return {
        "findings": [finding.to_dict() for finding in report.findings],
        "summary": {
            "findings": len(report.findings),
            "scanned_lines": report.scanned_lines,
            "files": list(report.files),
            "ignored_paths": list(report.ignored_paths),
            "affected_paths": report.affected_paths,
        },
        "meta": {
            "generated_at": datetime.now(tz=UTC)
            .replace(microsecond=0)
            .isoformat()
            .replace("+00:00", "Z"),
            "input_source": input_source,
            "version": __version__,
        },
    }
