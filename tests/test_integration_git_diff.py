"""Integration tests using synthetic git repositories."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from secret_hook.cli import app
from secret_hook.diff_parser import extract_added_lines
from secret_hook.git import (
    GitError,
    RangeDiffSource,
    StagedDiffSource,
    get_staged_diff,
    has_staged_changes,
    is_inside_work_tree,
)
from secret_hook.ignore import IgnoreMatcher
from secret_hook.patterns import default_library
from secret_hook.scanner import scan_diff
from tests.helpers_git import build_numbered_lines, commit_all, git, init_repo, stage, write_file

OPENAI_KEY = "sk-" + "Rk3" * 8

runner = CliRunner()


def test_staged_diff_line_numbers_follow_new_file(tmp_path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "config.py", build_numbered_lines("line", 10))
    commit_all(repo, "baseline")

    original = build_numbered_lines("line", 10).splitlines()
    updated = [*original[:4], f'KEY = "{OPENAI_KEY}"', *original[4:], "extra"]
    write_file(repo, "config.py", "\n".join(updated) + "\n")
    stage(repo, "config.py")

    lines = extract_added_lines(get_staged_diff(repo))
    assert [(line.path, line.lineno, line.content) for line in lines] == [
        ("config.py", 5, f'KEY = "{OPENAI_KEY}"'),
        ("config.py", 12, "extra"),
    ]


def test_unstaged_changes_are_not_scanned(tmp_path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "app.py", "VALUE = 1\n")
    commit_all(repo, "baseline")

    write_file(repo, "app.py", f'VALUE = "{OPENAI_KEY}"\n')
    assert has_staged_changes(repo) is False
    report = scan_diff(StagedDiffSource(repo).read_diff(), default_library())
    assert report.findings == []

    stage(repo, "app.py")
    assert has_staged_changes(repo) is True
    report = scan_diff(StagedDiffSource(repo).read_diff(), default_library())
    assert [(f.path, f.lineno, f.rule_id) for f in report.findings] == [
        ("app.py", 1, "OPENAI_API_KEY")
    ]


def test_new_nested_files_and_ignore_rules(tmp_path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "README.md", "# demo\n")
    commit_all(repo, "baseline")

    write_file(repo, "src/pkg/keys.py", f'TOKEN = "{OPENAI_KEY}"\n')
    write_file(repo, "src/pkg/keys_test.py", f'TOKEN = "{OPENAI_KEY}"\n')
    write_file(repo, "README.md", f"# demo\nexample: {OPENAI_KEY}\n")
    stage(repo)

    ignore = IgnoreMatcher.from_lines(["*.md", "**/*test*"])
    report = scan_diff(get_staged_diff(repo), default_library(), ignore)

    assert report.affected_paths == ["src/pkg/keys.py"]
    assert report.ignored_paths == ["README.md", "src/pkg/keys_test.py"]


def test_range_source_reads_committed_diff(tmp_path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "a.txt", "one\n")
    commit_all(repo, "first")
    write_file(repo, "a.txt", f"one\nghp_{'A' * 36}\n")
    commit_all(repo, "second")

    source = RangeDiffSource(repo, "HEAD~1", "HEAD")
    report = scan_diff(source.read_diff(), default_library())
    assert [(f.path, f.lineno, f.rule_id) for f in report.findings] == [
        ("a.txt", 2, "GITHUB_PAT")
    ]
    assert source.label == "git_range"


def test_git_helpers_outside_repository(tmp_path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()
    assert is_inside_work_tree(plain) is False
    with pytest.raises(GitError):
        get_staged_diff(plain)


def test_work_tree_detection(tmp_path) -> None:
    repo = init_repo(tmp_path)
    assert is_inside_work_tree(repo) is True
    assert git(repo, "status", "--porcelain") == ""


def test_cli_scan_blocks_staged_secret(tmp_path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "app.py", "VALUE = 1\n")
    commit_all(repo, "baseline")

    result = runner.invoke(app, ["scan", "--repo", str(repo)])
    assert result.exit_code == 0
    assert "No staged changes to scan." in result.stdout

    write_file(repo, "app.py", f'VALUE = 1\nKEY = "{OPENAI_KEY}"\n')
    stage(repo, "app.py")
    result = runner.invoke(app, ["scan", "--repo", str(repo), "--format", "json"])
    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["meta"]["input_source"] == "git_staged"
    assert [(item["path"], item["line"]) for item in payload["findings"]] == [("app.py", 2)]


def test_staged_diff_keeps_carriage_returns_and_form_feeds(tmp_path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "README.md", "# demo\n")
    commit_all(repo, "baseline")

    (repo / "legacy.c").write_bytes(
        f'int a;\x0c/* page */\nchar *x = "a\rb";\nchar *k = "{OPENAI_KEY}";\n'.encode("utf-8")
    )
    stage(repo, "legacy.c")

    lines = extract_added_lines(get_staged_diff(repo))
    assert [line.content for line in lines] == [
        "int a;\x0c/* page */",
        'char *x = "a\rb";',
        f'char *k = "{OPENAI_KEY}";',
    ]
    report = scan_diff(get_staged_diff(repo), default_library())
    assert [(f.path, f.lineno) for f in report.findings] == [("legacy.c", 3)]


def test_staged_diff_paths_ignore_noprefix_config(tmp_path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "README.md", "# demo\n")
    commit_all(repo, "baseline")
    git(repo, "config", "diff.noprefix", "true")

    write_file(repo, "docs/guide.md", f"key: {OPENAI_KEY}\n")
    write_file(repo, "b/app.py", f'KEY = "{OPENAI_KEY}"\n')
    stage(repo)

    report = scan_diff(
        get_staged_diff(repo), default_library(), IgnoreMatcher.from_lines(["docs/**"])
    )
    assert report.ignored_paths == ["docs/guide.md"]
    assert report.affected_paths == ["b/app.py"]
