"""
Byte pair merge rules and the merge loop that applies them.
"""

import logging
from collections.abc import Iterable, Iterator

from ._sanitise import _render_token
from .errors import VocabularyLoadError
from .types import SymbolPair

log = logging.getLogger(__name__)


class MergeTable:
    """
    Ordered merge rules. A pair's position is its rank; lower ranks merge first.
    """

    __slots__ = ("_pairs", "_ranks")

    def __init__(self, pairs: Iterable[SymbolPair]) -> None:
        """
        :param pairs: ``(left, right)`` symbol pairs in priority order.
        :raises VocabularyLoadError: If a pair appears twice.
        """
        ranks: dict[SymbolPair, int] = {}
        for rank, (left, right) in enumerate(pairs):
            pair = (left, right)
            if pair in ranks:
                raise VocabularyLoadError(
                    f"duplicate merge rule at ranks {ranks[pair]} and {rank}",
                    token=_render_token(f"{left} {right}"),
                )
            ranks[pair] = rank
        self._ranks = ranks
        self._pairs: tuple[SymbolPair, ...] = tuple(ranks)
        log.debug(f"built merge table with {len(self._pairs)} rules")

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "MergeTable":
        """
        Parse ``merges.txt`` style lines, one ``left right`` pair per line.

        A leading ``#version`` header and blank lines are skipped.
        """
        pairs: list[SymbolPair] = []
        for lineno, line in enumerate(lines, start=1):
            line = line.rstrip("\r\n")
            if not line.strip() or (lineno == 1 and line.startswith("#version")):
                continue
            parts = line.split(" ")
            if len(parts) != 2 or not parts[0] or not parts[1]:
                raise VocabularyLoadError(
                    "merge rule must be two space-separated symbols",
                    token=_render_token(line),
                    line=lineno,
                )
            pairs.append((parts[0], parts[1]))
        return cls(pairs)

    @classmethod
    def from_descriptor(cls, merges: Iterable[object]) -> "MergeTable":
        """Parse descriptor merges given as ``"a b"`` strings or ``[a, b]`` lists."""
        pairs: list[SymbolPair] = []
        for idx, item in enumerate(merges):
            if isinstance(item, str):
                parts = item.split(" ")
            elif isinstance(item, (list, tuple)):
                parts = list(item)
            else:
                raise VocabularyLoadError(f"invalid merge entry {item!r}", line=idx)
            if len(parts) != 2 or not all(isinstance(p, str) and p for p in parts):
                raise VocabularyLoadError(
                    f"merge rule must have two symbols, got {item!r}", line=idx
                )
            pairs.append((parts[0], parts[1]))
        return cls(pairs)

    def rank(self, pair: SymbolPair) -> int | None:
        """Return the priority of ``pair``, or ``None`` if it never merges."""
        return self._ranks.get(pair)

    def __len__(self) -> int:
        return len(self._pairs)

    def __iter__(self) -> Iterator[SymbolPair]:
        return iter(self._pairs)

    def __contains__(self, pair: object) -> bool:
        return pair in self._ranks

    def __repr__(self) -> str:
        return f"MergeTable(rules={len(self._pairs)})"


def merge_at(symbols: list[str], idx: int) -> list[str]:
    """Return ``symbols`` with the pair starting at ``idx`` fused into one symbol."""
    return symbols[:idx] + [symbols[idx] + symbols[idx + 1]] + symbols[idx + 2 :]


def apply_merges(symbols: list[str], merges: MergeTable) -> list[str]:
    """
    Apply merge rules to a symbol sequence.

    Each round finds the adjacent pair with the lowest rank and merges its
    leftmost occurrence, until no adjacent pair has a rank.

    :param symbols: Initial symbols of one pre-tokenized chunk.
    :returns: Merged symbol sequence.
    """
    while len(symbols) >= 2:
        best_rank: int | None = None
        best_idx = -1
        # strict "<" keeps the leftmost position among equal ranks
        for idx in range(len(symbols) - 1):
            rank = merges.rank((symbols[idx], symbols[idx + 1]))
            if rank is not None and (best_rank is None or rank < best_rank):
                best_rank = rank
                best_idx = idx
        # no pair to merge
        if best_rank is None:
            break
        symbols = merge_at(symbols, best_idx)

    return symbols
