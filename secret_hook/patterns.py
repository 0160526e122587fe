"""Secret-detection rules and the pattern library that holds them."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RuleDefinition:
    """Uncompiled rule source, as shipped or read from config."""

    rule_id: str
    name: str
    pattern: str
    description: str
    advice: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.rule_id,
            "name": self.name,
            "pattern": self.pattern,
            "description": self.description,
            "advice": self.advice,
        }


@dataclass(frozen=True, slots=True)
class SecretRule:
    """A compiled, named detector."""

    rule_id: str
    name: str
    pattern: re.Pattern[str]
    description: str
    advice: str

    @classmethod
    def compile(cls, definition: RuleDefinition) -> SecretRule:
        """Compile a definition; raises ``re.error`` for a bad pattern."""
        return cls(
            rule_id=definition.rule_id,
            name=definition.name,
            pattern=re.compile(definition.pattern),
            description=definition.description,
            advice=definition.advice,
        )


DEFAULT_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        rule_id="OPENAI_API_KEY",
        name="OpenAI API Key",
        pattern=r"sk-[A-Za-z0-9]{20,}",
        description="OpenAI API key detected",
        advice="Move this to an environment variable (.env file) and add .env to .gitignore",
    ),
    RuleDefinition(
        rule_id="GITHUB_PAT",
        name="GitHub Personal Access Token",
        pattern=r"ghp_[A-Za-z0-9]{36}",
        description="GitHub Personal Access Token detected",
        advice="Store in environment variables or GitHub Secrets for CI/CD",
    ),
    RuleDefinition(
        rule_id="AWS_ACCESS_KEY",
        name="AWS Access Key ID",
        pattern=r"(AKIA|ASIA)[A-Z0-9]{16}",
        description="AWS Access Key ID detected",
        advice="Use AWS IAM roles or store in AWS credentials file/environment variables",
    ),
    RuleDefinition(
        rule_id="AWS_SECRET_KEY",
        name="AWS Secret Access Key",
        pattern=r"""(?i)aws(.{0,20})?(secret|access).{0,20}['"][A-Za-z0-9/+=]{40}['"]""",
        description="AWS Secret Access Key detected",
        advice="Use AWS IAM roles or store in AWS credentials file/environment variables",
    ),
    RuleDefinition(
        rule_id="STRIPE_LIVE_PK",
        name="Stripe Live Publishable Key",
        pattern=r"pk_live_[A-Za-z0-9]{24}",
        description="Stripe Live Publishable Key detected",
        advice="Move to environment variables and ensure it's not exposed in client-side code",
    ),
    RuleDefinition(
        rule_id="STRIPE_LIVE_SK",
        name="Stripe Live Secret Key",
        pattern=r"sk_live_[A-Za-z0-9]{24}",
        description="Stripe Live Secret Key detected",
        advice="Move to environment variables and never expose in client-side code",
    ),
    RuleDefinition(
        rule_id="SLACK_TOKEN",
        name="Slack Token",
        pattern=r"xox[baprs]-[0-9A-Za-z\-]+",
        description="Slack API token detected",
        advice="Store in environment variables or secure configuration management",
    ),
    RuleDefinition(
        rule_id="JWT_TOKEN",
        name="JSON Web Token",
        pattern=r"eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9._\-]+\.[A-Za-z0-9._\-]+",
        description="JWT token detected",
        advice="Avoid committing JWTs; use secure token storage and short expiration times",
    ),
    RuleDefinition(
        rule_id="GENERIC_API_KEY",
        name="Generic API Key Pattern",
        pattern=(
            r"(?i)(api[_\-]?key|apikey|secret[_\-]?key|secretkey|access[_\-]?token|accesstoken)"
            r"""\s*[=:]\s*['"]?[A-Za-z0-9\+/]{32,}['"]?"""
        ),
        description="Generic API key pattern detected",
        advice="Move sensitive keys to environment variables or secure configuration",
    ),
    RuleDefinition(
        rule_id="PRIVATE_KEY",
        name="Private Key",
        pattern=r"-----BEGIN\s+(RSA\s+)?PRIVATE\s+KEY-----",
        description="Private key detected",
        advice="Store private keys securely, never commit to version control",
    ),
)


class PatternLibrary:
    """Ordered, read-only collection of compiled rules.

    Rule order is load order; it only decides the relative order of findings
    reported for the same line. Operations that change the rule set return a
    new library.
    """

    __slots__ = ("_rules", "_by_id")

    def __init__(self, rules: Iterable[SecretRule] = ()) -> None:
        ordered = tuple(rules)
        by_id: dict[str, SecretRule] = {}
        for rule in ordered:
            if rule.rule_id in by_id:
                raise ValueError(f"Duplicate rule id: {rule.rule_id}")
            by_id[rule.rule_id] = rule
        self._rules = ordered
        self._by_id = by_id

    @classmethod
    def from_definitions(cls, definitions: Iterable[RuleDefinition]) -> PatternLibrary:
        """Compile definitions, dropping any whose pattern fails to compile."""
        return cls(_compile_all(definitions))

    def __iter__(self) -> Iterator[SecretRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def __repr__(self) -> str:
        return f"PatternLibrary({list(self.rule_ids)!r})"

    @property
    def rules(self) -> tuple[SecretRule, ...]:
        return self._rules

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return tuple(rule.rule_id for rule in self._rules)

    def get(self, rule_id: str) -> SecretRule | None:
        return self._by_id.get(rule_id)

    def select(
        self,
        *,
        enabled: Iterable[str] | None = None,
        disabled: Iterable[str] = (),
    ) -> PatternLibrary:
        """Return a library limited to ``enabled`` minus ``disabled``.

        ``enabled=None`` keeps every rule. Library order is preserved either
        way. Unknown ids raise ``ValueError``.
        """
        enabled_ids = None if enabled is None else list(enabled)
        disabled_ids = set(disabled)
        requested = set(enabled_ids or []) | disabled_ids
        unknown = [rule_id for rule_id in requested if rule_id not in self._by_id]
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"Unknown rule ids: {joined}")

        wanted = set(enabled_ids) if enabled_ids is not None else set(self._by_id)
        return PatternLibrary(
            rule
            for rule in self._rules
            if rule.rule_id in wanted and rule.rule_id not in disabled_ids
        )

    def extend(self, definitions: Iterable[RuleDefinition]) -> PatternLibrary:
        """Return a library with ``definitions`` appended after existing rules."""
        return PatternLibrary((*self._rules, *_compile_all(definitions)))


def default_library() -> PatternLibrary:
    """Return the built-in rule set."""
    return PatternLibrary.from_definitions(DEFAULT_RULES)


def _compile_all(definitions: Iterable[RuleDefinition]) -> list[SecretRule]:
    compiled: list[SecretRule] = []
    for definition in definitions:
        try:
            compiled.append(SecretRule.compile(definition))
        except re.error as exc:
            logger.warning(
                "Skipping rule %s: pattern %r does not compile (%s)",
                definition.rule_id,
                definition.pattern,
                exc,
            )
    return compiled
