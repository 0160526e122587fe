"""Finding model and secret masking."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

MASK_CHAR = "*"
REVEAL_PREFIX = 4
REVEAL_SUFFIX = 4


def mask_secret(secret: str, mask_char: str = MASK_CHAR) -> str:
    """Mask ``secret`` keeping its length.

    Values of eight characters or fewer are masked entirely. Longer values
    keep their first four and last four characters.
    """
    if len(mask_char) != 1:
        raise ValueError("mask_char must be a single character")
    if len(secret) <= REVEAL_PREFIX + REVEAL_SUFFIX:
        return mask_char * len(secret)
    hidden = len(secret) - REVEAL_PREFIX - REVEAL_SUFFIX
    return secret[:REVEAL_PREFIX] + mask_char * hidden + secret[-REVEAL_SUFFIX:]


@dataclass(frozen=True, slots=True)
class Finding:
    """One match of one rule against one added line."""

    rule_id: str
    rule_name: str
    path: str
    lineno: int
    content: str
    match: str
    start: int
    end: int
    description: str
    advice: str

    def __post_init__(self) -> None:
        if not 0 <= self.start <= self.end <= len(self.content):
            raise ValueError(
                f"Match offsets {self.start}:{self.end} fall outside line of length "
                f"{len(self.content)}"
            )
        if self.content[self.start : self.end] != self.match:
            raise ValueError("Matched text does not equal content[start:end]")

    @property
    def masked(self) -> str:
        return mask_secret(self.match)

    @property
    def location(self) -> str:
        return f"{self.path}:{self.lineno}"

    def masked_content(self, mask_char: str = MASK_CHAR) -> str:
        """Return the full line with the matched span masked."""
        return (
            self.content[: self.start]
            + mask_secret(self.match, mask_char)
            + self.content[self.end :]
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the raw secret or the raw line."""
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "path": self.path,
            "line": self.lineno,
            "start": self.start,
            "end": self.end,
            "masked": self.masked,
            "description": self.description,
            "advice": self.advice,
        }
