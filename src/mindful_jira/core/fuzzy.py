"""Fuzzy subsequence matching with ranked results and highlight spans."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from mindful_jira.core.types import MergedIssue

# Rank weights: adjacency dominates word boundaries, which dominate length.
_ADJACENT_WEIGHT = 1_000_000
_BOUNDARY_WEIGHT = 1_000
_MAX_LENGTH_PENALTY = 999


@dataclass(frozen=True)
class FuzzyMatch:
    """A successful match of a query against a candidate string.

    Attributes:
        rank: Higher is better
        spans: (start, length) runs of matched characters in the candidate
    """

    rank: int
    spans: tuple[tuple[int, int], ...]


@dataclass(frozen=True)
class IssueMatch:
    """A ranked issue with spans split per displayed field."""

    issue: MergedIssue
    rank: int
    key_spans: tuple[tuple[int, int], ...]
    summary_spans: tuple[tuple[int, int], ...]


def score(query: str, candidate: str) -> FuzzyMatch | None:
    """Score `query` against `candidate` as a case-insensitive subsequence.

    Each occurrence of the query's first character is tried as a starting
    point and extended greedily; the best-ranked alignment wins.

    Args:
        query: Characters typed by the user
        candidate: Text to search in

    Returns:
        FuzzyMatch, or None when the query is not a subsequence of the candidate
    """
    if not query:
        return FuzzyMatch(rank=0, spans=())

    needle = _fold(query)
    haystack = _fold(candidate)
    if len(needle) > len(haystack):
        return None

    best: tuple[int, list[int]] | None = None
    start = haystack.find(needle[0])
    while start != -1:
        positions = _align_from(needle, haystack, start)
        if positions is None:
            # No later start can succeed if this one could not.
            break
        rank = _rank(candidate, positions)
        if best is None or rank > best[0]:
            best = (rank, positions)
        start = haystack.find(needle[0], start + 1)

    if best is None:
        return None
    return FuzzyMatch(rank=best[0], spans=_to_spans(best[1]))


def rank_issues(query: str, issues: Iterable[MergedIssue]) -> list[IssueMatch]:
    """Match `query` against "{key} {summary}" of every issue.

    Args:
        query: Search text
        issues: Candidate issues

    Returns:
        Matching issues sorted by rank, best first; ties keep input order
    """
    matches: list[IssueMatch] = []
    for issue in issues:
        key_len = len(issue.key)
        match = score(query, f"{issue.key} {issue.summary}")
        if match is None:
            continue
        key_spans, summary_spans = _split_spans(match.spans, key_len)
        matches.append(
            IssueMatch(
                issue=issue,
                rank=match.rank,
                key_spans=key_spans,
                summary_spans=summary_spans,
            )
        )
    return sorted(matches, key=lambda m: m.rank, reverse=True)


def _fold(text: str) -> str:
    """Lowercase `text` without changing its length.

    Characters whose lowercase form is longer, like "İ", are kept as they
    are so that match positions stay valid offsets into the original text.
    """
    lowered = (char.lower() for char in text)
    return "".join(low if len(low) == 1 else char for char, low in zip(text, lowered, strict=True))


def _align_from(needle: str, haystack: str, start: int) -> list[int] | None:
    positions = [start]
    cursor = start + 1
    for char in needle[1:]:
        found = haystack.find(char, cursor)
        if found == -1:
            return None
        positions.append(found)
        cursor = found + 1
    return positions


def _is_boundary(text: str, index: int) -> bool:
    if index == 0:
        return True
    if index >= len(text):
        return False
    previous = text[index - 1]
    current = text[index]
    if not previous.isalnum():
        return True
    return previous.islower() and current.isupper()


def _rank(candidate: str, positions: list[int]) -> int:
    adjacent = sum(1 for a, b in zip(positions, positions[1:], strict=False) if b == a + 1)
    boundaries = sum(1 for p in positions if _is_boundary(candidate, p))
    length_penalty = min(len(candidate), _MAX_LENGTH_PENALTY)
    return adjacent * _ADJACENT_WEIGHT + boundaries * _BOUNDARY_WEIGHT - length_penalty


def _to_spans(positions: list[int]) -> tuple[tuple[int, int], ...]:
    spans: list[tuple[int, int]] = []
    for position in positions:
        if spans and spans[-1][0] + spans[-1][1] == position:
            start, length = spans[-1]
            spans[-1] = (start, length + 1)
        else:
            spans.append((position, 1))
    return tuple(spans)


def _split_spans(
    spans: tuple[tuple[int, int], ...], key_len: int
) -> tuple[tuple[tuple[int, int], ...], tuple[tuple[int, int], ...]]:
    """Split candidate spans into key spans and summary spans.

    The candidate is "{key} {summary}", so summary offsets start at key_len + 1.
    """
    key_spans: list[tuple[int, int]] = []
    summary_spans: list[tuple[int, int]] = []
    summary_start = key_len + 1
    for start, length in spans:
        end = start + length
        if start < key_len:
            key_spans.append((start, min(end, key_len) - start))
        if end > summary_start:
            clipped = max(start, summary_start)
            summary_spans.append((clipped - summary_start, end - clipped))
    return tuple(key_spans), tuple(summary_spans)
