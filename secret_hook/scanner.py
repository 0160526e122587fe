"""Scan engine: run the pattern library over added diff lines."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from secret_hook.diff_parser import DiffLine, extract_added_lines
from secret_hook.findings import Finding
from secret_hook.ignore import IgnoreMatcher
from secret_hook.patterns import PatternLibrary

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanReport:
    """Findings plus the bookkeeping a reporter needs."""

    findings: list[Finding] = field(default_factory=list)
    scanned_lines: int = 0
    files: list[str] = field(default_factory=list)
    ignored_paths: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.findings

    @property
    def affected_paths(self) -> list[str]:
        seen: dict[str, None] = {}
        for finding in self.findings:
            seen.setdefault(finding.path, None)
        return list(seen)


def scan_line(path: str, lineno: int, content: str, library: PatternLibrary) -> list[Finding]:
    """Return every match of every rule on a single line.

    Rules report independently, so overlapping matches from different rules
    are all kept.
    """
    findings: list[Finding] = []
    for rule in library:
        for match in rule.pattern.finditer(content):
            findings.append(
                Finding(
                    rule_id=rule.rule_id,
                    rule_name=rule.name,
                    path=path,
                    lineno=lineno,
                    content=content,
                    match=match.group(0),
                    start=match.start(),
                    end=match.end(),
                    description=rule.description,
                    advice=rule.advice,
                )
            )
    return findings


def scan(
    lines: Iterable[DiffLine],
    library: PatternLibrary,
    ignore: IgnoreMatcher | None = None,
) -> list[Finding]:
    """Scan added lines, skipping files the ignore matcher excludes."""
    return _scan_into(ScanReport(), lines, library, ignore).findings


def scan_diff(
    diff_text: str,
    library: PatternLibrary,
    ignore: IgnoreMatcher | None = None,
) -> ScanReport:
    """Extract added lines from ``diff_text`` and scan them."""
    report = _scan_into(ScanReport(), extract_added_lines(diff_text), library, ignore)
    logger.debug(
        "Scanned %d added lines across %d files: %d findings, %d ignored files",
        report.scanned_lines,
        len(report.files),
        len(report.findings),
        len(report.ignored_paths),
    )
    return report


def _scan_into(
    report: ScanReport,
    lines: Iterable[DiffLine],
    library: PatternLibrary,
    ignore: IgnoreMatcher | None,
) -> ScanReport:
    decisions: dict[str, bool] = {}
    for line in lines:
        ignored = decisions.get(line.path)
        if ignored is None:
            ignored = ignore is not None and ignore.is_ignored(line.path)
            decisions[line.path] = ignored
            if ignored:
                logger.debug("Ignoring %s", line.path)
                report.ignored_paths.append(line.path)
            else:
                report.files.append(line.path)
        if ignored:
            continue
        report.scanned_lines += 1
        report.findings.extend(scan_line(line.path, line.lineno, line.content, library))
    report.ignored_paths.sort()
    return report
