"""
Match containers produced by feature matchers.
"""

from typing import Iterable, Iterator, List, NamedTuple, Tuple


class Match(NamedTuple):
    """Element ``first`` of collection A corresponds to element ``second`` of B."""

    first: int
    second: int


class MatchSet:
    """Ordered sequence of matches."""

    def __init__(self, matches: Iterable[Tuple[int, int]] = ()):
        self._matches: List[Match] = [Match(int(i), int(j)) for i, j in matches]

    def matches(self) -> List[Match]:
        return list(self._matches)

    def size(self) -> int:
        return len(self._matches)

    def __len__(self) -> int:
        return len(self._matches)

    def __iter__(self) -> Iterator[Match]:
        return iter(self._matches)

    def __getitem__(self, index: int) -> Match:
        return self._matches[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, MatchSet):
            return NotImplemented
        return self._matches == other._matches

    __hash__ = None

    def __repr__(self) -> str:
        return f"MatchSet(size={self.size()})"
