from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .reference import Member

"""Member resolution result models.

Confidence levels, from most to least certain:

- EXACT: normalized full name equals the search string
- HIGH: first and last name both match, or the nickname matches exactly
- MEDIUM: a unique bare first name / nickname / last name / partial nickname
- LOW: several roster members fit equally well (ambiguous, no member chosen)
- NONE: nothing matched
"""

__all__ = [
    "Confidence",
    "MatchResult",
    "AmbiguousName",
    "BatchResolution",
]


class Confidence(Enum):
    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of resolving one free-text name against the roster."""
    member: Member | None
    confidence: Confidence
    matched_by: str = ""  # which rule produced the hit (empty for NONE)
    candidates: tuple[Member, ...] = ()

    @property
    def is_match(self) -> bool:
        return self.member is not None and self.confidence is not Confidence.NONE

    @property
    def is_ambiguous(self) -> bool:
        return self.member is None and len(self.candidates) > 1

    @staticmethod
    def no_match() -> MatchResult:
        return MatchResult(member=None, confidence=Confidence.NONE)


@dataclass(frozen=True)
class AmbiguousName:
    name: str
    candidates: tuple[Member, ...]


@dataclass(frozen=True)
class BatchResolution:
    """Partitioned result of resolving several names at once."""
    matched: list[Member] = field(default_factory=list)  # deduplicated by member id
    unmatched: list[str] = field(default_factory=list)
    ambiguous: list[AmbiguousName] = field(default_factory=list)
