from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ..models.match_result import AmbiguousName, BatchResolution, Confidence, MatchResult
from ..models.reference import Member

"""Member resolver: free-text responsible name -> roster member.

Matching runs in strict priority order and the first rule that hits wins:

1. exact full name                                  -> EXACT
2. first name AND last name                          -> HIGH
3. exact nickname                                    -> HIGH
4. search equals a first name or a nickname          -> MEDIUM if unique
5. search equals a last name                         -> MEDIUM if unique
6. nickname contains the search (or vice versa)      -> MEDIUM if unique

Rules 4-6 never guess: with more than one candidate the result is ambiguous
(no member, LOW, every candidate kept so the caller can ask the user). Every
comparison is made on normalized text (lowercase, trimmed, accents removed).

The roster is always passed in; this module holds no state, so resolving again
after the roster changes is just another call.
"""

__all__ = [
    "normalize_name",
    "NameParts",
    "name_parts",
    "find_member",
    "resolve_members",
]


def normalize_name(text: str) -> str:
    """Lowercase, trim and strip diacritics ("João " -> "joao")."""
    decomposed = unicodedata.normalize("NFD", text.lower().strip())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


@dataclass(frozen=True)
class NameParts:
    first: str
    last: str
    words: tuple[str, ...]


def name_parts(name: str) -> NameParts:
    words = tuple(normalize_name(name).split())
    return NameParts(
        first=words[0] if words else "",
        last=words[-1] if words else "",
        words=words,
    )


def _nickname(member: Member) -> str:
    return normalize_name(member.nickname) if member.nickname else ""


def _unique_or_ambiguous(candidates: list[Member], matched_by: str) -> MatchResult | None:
    if len(candidates) == 1:
        return MatchResult(candidates[0], Confidence.MEDIUM, matched_by, (candidates[0],))
    if len(candidates) > 1:
        return MatchResult(None, Confidence.LOW, "múltiplas correspondências", tuple(candidates))
    return None


def find_member(search_name: str, roster: Sequence[Member]) -> MatchResult:
    """Resolve one name against the roster snapshot."""
    search = normalize_name(search_name or "")
    if not search:
        return MatchResult.no_match()
    search_parts = name_parts(search)

    for member in roster:
        if normalize_name(member.name) == search:
            return MatchResult(member, Confidence.EXACT, "nome completo", (member,))

    for member in roster:
        parts = name_parts(member.name)
        if parts.first == search_parts.first and parts.last == search_parts.last:
            return MatchResult(member, Confidence.HIGH, "primeiro + último nome", (member,))

    for member in roster:
        if member.nickname and _nickname(member) == search:
            return MatchResult(member, Confidence.HIGH, "apelido", (member,))

    first_name_hits = [
        m for m in roster
        if name_parts(m.name).first == search or (m.nickname and _nickname(m) == search)
    ]
    result = _unique_or_ambiguous(first_name_hits, "primeiro nome")
    if result is not None:
        return result

    last_name_hits = [m for m in roster if name_parts(m.name).last == search]
    result = _unique_or_ambiguous(last_name_hits, "sobrenome")
    if result is not None:
        return result

    partial_hits = []
    for m in roster:
        nickname = _nickname(m)
        if nickname and (search in nickname or nickname in search):
            partial_hits.append(m)
    result = _unique_or_ambiguous(partial_hits, "apelido parcial")
    if result is not None:
        return result

    return MatchResult.no_match()


def resolve_members(names: Iterable[str], roster: Sequence[Member]) -> BatchResolution:
    """Resolve several names, partitioning them into matched/unmatched/ambiguous.

    matched is deduplicated by member id (two spellings of the same person
    yield one member).
    """
    batch = BatchResolution()
    seen_ids: set[str] = set()
    for name in names:
        result = find_member(name, roster)
        member = result.member
        if result.is_match and member is not None:
            if member.id not in seen_ids:
                seen_ids.add(member.id)
                batch.matched.append(member)
        elif result.is_ambiguous:
            batch.ambiguous.append(AmbiguousName(name=name, candidates=result.candidates))
        else:
            batch.unmatched.append(name)
    return batch
