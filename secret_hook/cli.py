"""CLI entrypoint for secret-hook."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from secret_hook import __version__
from secret_hook.config import AppConfig, load_app_config
from secret_hook.diff_parser import MalformedHunkHeaderError
from secret_hook.git import (
    DiffSource,
    GitError,
    RangeDiffSource,
    StagedDiffSource,
    TextDiffSource,
    has_staged_changes,
    is_inside_work_tree,
)
from secret_hook.ignore import IgnoreMatcher
from secret_hook.output import render_human, render_json
from secret_hook.patterns import PatternLibrary, default_library
from secret_hook.scanner import ScanReport, scan_diff

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

app = typer.Typer(
    name="secret-hook",
    no_args_is_help=True,
    help="Scan staged git changes for committed secrets.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """Root command callback."""
    _ = version
    configure_logging(verbose=verbose)


def configure_logging(*, verbose: bool = False) -> None:
    """Send library log records to stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    logging.getLogger("secret_hook").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.command("scan")
def scan_command(
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read unified diff from stdin.")] = False,
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    base: Annotated[str | None, typer.Option(help="Base git revision.")] = None,
    head: Annotated[str | None, typer.Option(help="Head git revision.")] = None,
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    ignore_file: Annotated[
        Path | None,
        typer.Option("--ignore-file", help="Path to ignore file (default .secretignore)."),
    ] = None,
    fail: Annotated[
        bool | None,
        typer.Option("--fail/--no-fail", help="Exit 1 when secrets are found."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Scan added lines (staged changes by default) for secrets."""
    app_config = _load_config_or_raise(repo, config_file)
    output_format = (format or app_config.format).lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    if diff_file and stdin:
        raise typer.BadParameter("Use either --diff-file or --stdin, not both.")

    if (base is None) ^ (head is None):
        raise typer.BadParameter("Provide both --base and --head together.")

    library = _build_library_or_raise(app_config)
    ignore = app_config.build_ignore(repo, ignore_file)
    source = _resolve_diff_source(
        diff_file=diff_file, stdin=stdin, repo=repo, base=base, head=head
    )

    if isinstance(source, StagedDiffSource) and not _staged_changes_present(repo):
        if output_format == "json":
            typer.echo(render_json(ScanReport(), input_source=source.label))
        else:
            typer.echo("No staged changes to scan.")
        return

    report = _scan_source_or_raise(source, library, ignore)

    if output_format == "json":
        typer.echo(render_json(report, input_source=source.label))
    elif report.scanned_lines == 0 and report.is_clean:
        typer.echo("No new lines to scan.")
    else:
        typer.echo(render_human(report))

    fail_on_detection = fail if fail is not None else app_config.fail_on_detection
    if not report.is_clean and fail_on_detection:
        if output_format == "human":
            typer.echo("Commit aborted.", err=True)
        raise typer.Exit(code=1)


@app.command("rules")
def rules_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """List available secret rules."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(repo, config_file)
    active_ids = set(_build_library_or_raise(app_config).rule_ids)
    available = default_library().extend(app_config.custom_rules)

    if output_format == "json":
        payload = {
            "rules": [
                {
                    "rule_id": rule.rule_id,
                    "name": rule.name,
                    "description": rule.description,
                    "pattern": rule.pattern.pattern,
                    "enabled": rule.rule_id in active_ids,
                }
                for rule in available
            ],
            "meta": {"config_source": app_config.source},
        }
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = ["Available rules:"]
    for rule in available:
        status = "enabled" if rule.rule_id in active_ids else "disabled"
        lines.append(f"- {rule.rule_id} [{status}] - {rule.description}")
    typer.echo("\n".join(lines))


@app.command("config")
def config_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(repo, config_file)
    library = _build_library_or_raise(app_config)
    payload = app_config.to_dict()
    payload["active_rule_ids"] = list(library.rule_ids)
    payload["ignore_globs"] = list(app_config.build_ignore(repo).globs)

    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- format: {payload['format']}",
        f"- fail_on_detection: {payload['fail_on_detection']}",
        f"- ignore_file: {payload['ignore_file']}",
        f"- ignore_globs: {payload['ignore_globs']}",
        f"- rules.enable: {payload['rules']['enable']}",
        f"- rules.disable: {payload['rules']['disable']}",
        f"- active_rule_ids: {payload['active_rule_ids']}",
    ]
    typer.echo("\n".join(lines))


@app.command("check-ignore")
def check_ignore_command(
    paths: Annotated[list[str], typer.Argument(help="Paths to test against the ignore file.")],
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    ignore_file: Annotated[
        Path | None,
        typer.Option("--ignore-file", help="Path to ignore file (default .secretignore)."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show which ignore pattern, if any, matches each path."""
    app_config = _load_config_or_raise(repo, config_file)
    ignore = app_config.build_ignore(repo, ignore_file)
    lines: list[str] = []
    for path in paths:
        pattern = ignore.match(path)
        if pattern is None:
            lines.append(f"{path}: scanned")
        else:
            lines.append(f"{path}: ignored by {pattern.glob!r}")
    typer.echo("\n".join(lines))


def main() -> None:
    """Console script entrypoint."""
    app()


def _resolve_diff_source(
    *,
    diff_file: Path | None,
    stdin: bool,
    repo: Path,
    base: str | None,
    head: str | None,
) -> DiffSource:
    if diff_file is not None:
        diff_text = diff_file.read_bytes().decode("utf-8", errors="replace")
        return TextDiffSource(diff_text, f"diff_file:{diff_file}")

    if stdin:
        return TextDiffSource(sys.stdin.buffer.read().decode("utf-8", errors="replace"), "stdin")

    if not is_inside_work_tree(repo):
        raise typer.BadParameter(f"Not in a git repository: {repo.resolve()}", param_hint="--repo")

    if base is not None and head is not None:
        return RangeDiffSource(repo, base, head)

    return StagedDiffSource(repo)


def _staged_changes_present(repo: Path) -> bool:
    try:
        return has_staged_changes(repo)
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _scan_source_or_raise(
    source: DiffSource, library: PatternLibrary, ignore: IgnoreMatcher
) -> ScanReport:
    try:
        diff_text = source.read_diff()
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        return scan_diff(diff_text, library, ignore)
    except MalformedHunkHeaderError as exc:
        raise typer.BadParameter(str(exc), param_hint="diff") from exc


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _build_library_or_raise(app_config: AppConfig) -> PatternLibrary:
    try:
        return app_config.build_library()
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config.rules") from exc
