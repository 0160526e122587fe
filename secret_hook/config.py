"""Configuration loading for secret-hook."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from secret_hook.ignore import DEFAULT_IGNORE_FILENAME, IgnoreMatcher
from secret_hook.patterns import PatternLibrary, RuleDefinition, default_library

CONFIG_FILENAMES = (".secret-hook.toml", "secret-hook.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("secret_hook", "secret-hook")


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "human"
    fail_on_detection: bool = True
    ignore_file: str = DEFAULT_IGNORE_FILENAME
    ignore: list[str] = field(default_factory=list)
    rule_enable: list[str] | None = None
    rule_disable: list[str] = field(default_factory=list)
    custom_rules: list[RuleDefinition] = field(default_factory=list)
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "fail_on_detection": self.fail_on_detection,
            "ignore_file": self.ignore_file,
            "ignore": list(self.ignore),
            "rules": {
                "enable": list(self.rule_enable) if self.rule_enable is not None else None,
                "disable": list(self.rule_disable),
                "custom": [rule.to_dict() for rule in self.custom_rules],
            },
            "source": self.source,
        }

    def build_library(self, base: PatternLibrary | None = None) -> PatternLibrary:
        """Built-in rules plus custom rules, filtered by enable/disable."""
        library = (base or default_library()).extend(self.custom_rules)
        return library.select(enabled=self.rule_enable, disabled=self.rule_disable)

    def build_ignore(self, repo: Path, ignore_file: Path | None = None) -> IgnoreMatcher:
        """Load the ignore file (relative to ``repo``) plus inline globs."""
        path = ignore_file if ignore_file is not None else Path(self.ignore_file)
        if not path.is_absolute():
            path = repo / path
        return IgnoreMatcher.load(path).with_patterns(*self.ignore)


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Load config from explicit path or repository-local files with precedence."""
    repo = repo.resolve()
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else (repo / config_path)
        if not resolved.exists():
            raise ValueError(f"Config file does not exist: {resolved}")
        mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
        return _from_mapping(mapping, source=str(resolved))

    for filename in CONFIG_FILENAMES:
        resolved = repo / filename
        if resolved.exists():
            mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
            return _from_mapping(mapping, source=str(resolved))

    pyproject_path = repo / PYPROJECT_FILENAME
    if pyproject_path.exists():
        mapping = _extract_config_mapping(_load_toml(pyproject_path), source_path=pyproject_path)
        if mapping:
            return _from_mapping(mapping, source=str(pyproject_path))

    return AppConfig()


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as file_obj:
            loaded = tomllib.load(file_obj)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _extract_config_mapping(loaded: dict[str, Any], *, source_path: Path) -> dict[str, Any]:
    if source_path.name == PYPROJECT_FILENAME:
        section = _find_pyproject_tool_section(loaded)
        return section if section is not None else {}

    tool_section = _find_pyproject_tool_section(loaded)
    if tool_section is not None:
        return tool_section
    return loaded


def _find_pyproject_tool_section(loaded: dict[str, Any]) -> dict[str, Any] | None:
    tool = loaded.get("tool")
    if not isinstance(tool, dict):
        return None
    for key in PYPROJECT_TOOL_KEYS:
        section = tool.get(key)
        if isinstance(section, dict):
            return section
    return None


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    rules_mapping = _as_table(mapping.get("rules"), "rules")

    return AppConfig(
        format=_as_choice(mapping.get("format", "human"), {"human", "json"}, "format"),
        fail_on_detection=_as_bool(mapping.get("fail_on_detection", True), "fail_on_detection"),
        ignore_file=_as_str(mapping.get("ignore_file", DEFAULT_IGNORE_FILENAME), "ignore_file"),
        ignore=_as_str_list(mapping.get("ignore"), "ignore"),
        rule_enable=_as_str_list_or_none(rules_mapping.get("enable"), "rules.enable"),
        rule_disable=_as_str_list(rules_mapping.get("disable"), "rules.disable"),
        custom_rules=_parse_custom_rules(rules_mapping.get("custom"), "rules.custom"),
        source=source,
    )


def _parse_custom_rules(value: Any, field_name: str) -> list[RuleDefinition]:
    items = _as_table_list(value, field_name)
    parsed: list[RuleDefinition] = []
    for item in items:
        rule_id = _as_str(item.get("id"), f"{field_name}.id")
        parsed.append(
            RuleDefinition(
                rule_id=rule_id,
                name=_as_str(item.get("name", rule_id), f"{field_name}.name"),
                pattern=_as_str(item.get("pattern"), f"{field_name}.pattern"),
                description=_as_str(
                    item.get("description", f"{rule_id} pattern detected"),
                    f"{field_name}.description",
                ),
                advice=_as_str(
                    item.get("advice", "Remove the secret and load it from the environment"),
                    f"{field_name}.advice",
                ),
            )
        )
    return parsed


def _as_table(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be a table/object")
    return value


def _as_table_list(value: Any, field_name: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of tables")
    output: list[dict[str, Any]] = []
    for item in value:
        if not isinstance(item, dict):
            raise ValueError(f"{field_name} must be a list of tables")
        output.append(item)
    return output


def _as_str_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{field_name} must be a list of strings")
        items.append(item)
    return items


def _as_str_list_or_none(value: Any, field_name: str) -> list[str] | None:
    if value is None:
        return None
    return _as_str_list(value, field_name)


def _as_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value


def _as_choice(raw: Any, allowed: set[str], field_name: str) -> str:
    value = str(raw).lower()
    if value not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValueError(f"{field_name} must be one of: {choices}")
    return value


def _as_bool(raw: Any, field_name: str) -> bool:
    if not isinstance(raw, bool):
        raise ValueError(f"{field_name} must be a boolean")
    return raw
