"""
Immutable token <-> id vocabulary with special token slots.
"""

import logging
import operator
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from ._sanitise import _render_token
from .errors import InvalidId, VocabularyLoadError
from .types import Token

log = logging.getLogger(__name__)

SPECIAL_SLOTS: Final[tuple[str, ...]] = ("unk", "pad", "bos", "eos", "mask")

# a slot is given as an explicit id, one token, or candidate tokens tried in order
type SlotSpec = int | str | Sequence[str] | None


@dataclass(frozen=True)
class SpecialTokens:
    """Ids bound to the named special slots of a vocabulary."""

    unk: Token
    pad: Token | None = None
    bos: Token | None = None
    eos: Token | None = None
    mask: Token | None = None
    # control pieces and added special tokens without a named slot
    extra: frozenset[Token] = frozenset()

    @property
    def ids(self) -> frozenset[Token]:
        """Return every id that is special, named or not."""
        named = {
            tok
            for tok in (self.unk, self.pad, self.bos, self.eos, self.mask)
            if tok is not None
        }
        return frozenset(named) | self.extra


class Vocabulary:
    """
    Dense token <-> id mapping.

    Ids are positions in ``id_to_token``; ``token_to_id`` is its inverse and is
    built once. Instances are read-only after construction.
    """

    __slots__ = ("_id_to_token", "_token_to_id", "_special", "_special_literals")

    def __init__(
        self,
        tokens: Sequence[str],
        special_tokens: Mapping[str, SlotSpec] | None = None,
        extra_special: Iterable[str | Token] = (),
    ) -> None:
        """
        Build a vocabulary where each token's id is its index in ``tokens``.

        :param tokens: Token strings ordered by id.
        :param special_tokens: Slot name -> id, token, or candidate tokens.
            The ``unk`` slot is mandatory.
        :param extra_special: Further special tokens (strings or ids) without a slot.
        :raises VocabularyLoadError: On duplicate tokens, unknown slot names,
            or a missing unknown token.
        """
        token_to_id: dict[str, Token] = {}
        for idx, tok in enumerate(tokens):
            if tok in token_to_id:
                raise VocabularyLoadError(
                    f"duplicate token at ids {token_to_id[tok]} and {idx}",
                    token=_render_token(tok),
                )
            token_to_id[tok] = idx

        self._id_to_token: tuple[str, ...] = tuple(tokens)
        self._token_to_id: Mapping[str, Token] = MappingProxyType(token_to_id)
        self._special = self._resolve_special(special_tokens or {}, extra_special)
        self._special_literals: Mapping[str, Token] = MappingProxyType(
            {self._id_to_token[tok]: tok for tok in sorted(self._special.ids)}
        )

        log.debug(
            f"built vocabulary with {len(self._id_to_token)} tokens "
            f"and {len(self._special_literals)} special tokens"
        )

    @classmethod
    def from_lines(
        cls,
        lines: Iterable[str],
        special_tokens: Mapping[str, SlotSpec] | None = None,
        extra_special: Iterable[str | Token] = (),
    ) -> "Vocabulary":
        """Build from a line-per-token list; a token's id is its line index."""
        return cls(
            [line.rstrip("\r\n") for line in lines], special_tokens, extra_special
        )

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, object],
        special_tokens: Mapping[str, SlotSpec] | None = None,
        extra_special: Iterable[str | Token] = (),
    ) -> "Vocabulary":
        """
        Build from an explicit token -> id map.

        :raises VocabularyLoadError: If an id is not a non-negative integer, is
            reused, or the ids do not form the contiguous range ``0..len-1``.
        """
        by_id: dict[Token, str] = {}
        for tok, idx in mapping.items():
            # bool is an int subclass but never a valid id
            if isinstance(idx, bool) or not isinstance(idx, int):
                raise VocabularyLoadError(
                    f"non-integer id {idx!r}", token=_render_token(tok)
                )
            if idx < 0:
                raise VocabularyLoadError(
                    f"negative id {idx}", token=_render_token(tok)
                )
            if idx in by_id:
                raise VocabularyLoadError(
                    f"id {idx} assigned to more than one token",
                    token=_render_token(tok),
                )
            by_id[idx] = tok

        n = len(by_id)
        if n and (min(by_id) != 0 or max(by_id) != n - 1):
            missing = next(i for i in range(max(by_id) + 1) if i not in by_id)
            raise VocabularyLoadError(
                f"token ids must be contiguous from 0, first missing id is {missing}"
            )

        return cls([by_id[i] for i in range(n)], special_tokens, extra_special)

    def _resolve_special(
        self, slots: Mapping[str, SlotSpec], extra: Iterable[str | Token]
    ) -> SpecialTokens:
        """Bind each slot to an id, checking the unknown slot is present."""
        unknown_slots = set(slots) - set(SPECIAL_SLOTS)
        if unknown_slots:
            raise VocabularyLoadError(
                f"unknown special token slots: {sorted(unknown_slots)}"
            )

        resolved: dict[str, Token | None] = {
            slot: self._resolve_slot(slot, slots.get(slot)) for slot in SPECIAL_SLOTS
        }
        unk = resolved.pop("unk")
        if unk is None:
            raise VocabularyLoadError(
                "missing required unknown token",
                token=_describe_spec(slots.get("unk")),
            )

        extra_ids: set[Token] = set()
        for item in extra:
            tok = self._resolve_slot("extra", item)
            if tok is not None:
                extra_ids.add(tok)

        return SpecialTokens(unk=unk, extra=frozenset(extra_ids), **resolved)

    def _resolve_slot(self, slot: str, spec: SlotSpec) -> Token | None:
        if spec is None:
            return None
        if isinstance(spec, int):
            if not 0 <= spec < len(self._id_to_token):
                raise VocabularyLoadError(
                    f"special token id {spec} for slot {slot!r} is out of range"
                )
            return spec
        candidates = (spec,) if isinstance(spec, str) else tuple(spec)
        for cand in candidates:
            tok = self._token_to_id.get(cand)
            if tok is not None:
                return tok
        log.debug(f"no special token found for slot {slot!r} (tried {candidates})")
        return None

    @property
    def token_to_id(self) -> Mapping[str, Token]:
        """Read-only token -> id mapping."""
        return self._token_to_id

    @property
    def id_to_token(self) -> tuple[str, ...]:
        """Tokens ordered by id."""
        return self._id_to_token

    @property
    def special_tokens(self) -> SpecialTokens:
        return self._special

    @property
    def special_literals(self) -> Mapping[str, Token]:
        """Special token string -> id, for every special id."""
        return self._special_literals

    @property
    def unk_id(self) -> Token:
        return self._special.unk

    def lookup(self, token: str) -> Token:
        """Return the id of ``token`` or the unknown id."""
        return self._token_to_id.get(token, self._special.unk)

    def get(self, token: str) -> Token | None:
        """Return the id of ``token`` or ``None``."""
        return self._token_to_id.get(token)

    def reverse(self, tok: Token) -> str:
        """
        Return the token string for an id.

        :raises InvalidId: If ``tok`` is negative or not below the vocabulary size.
        """
        try:
            # accepts numpy integers, rejects floats and bools
            if isinstance(tok, bool):
                raise TypeError
            idx = operator.index(tok)
        except TypeError:
            raise InvalidId(
                "id is not an integer", invalid_id=tok, vocab_size=len(self)
            ) from None
        # negative indices would silently wrap around on a tuple
        if idx < 0 or idx >= len(self._id_to_token):
            raise InvalidId(
                "id outside vocabulary range", invalid_id=idx, vocab_size=len(self)
            )
        return self._id_to_token[idx]

    def is_special(self, tok: Token) -> bool:
        return tok in self._special.ids

    def __len__(self) -> int:
        return len(self._id_to_token)

    def __contains__(self, token: object) -> bool:
        return token in self._token_to_id

    def __iter__(self) -> Iterator[str]:
        return iter(self._id_to_token)

    def __repr__(self) -> str:
        return f"Vocabulary(size={len(self)}, unk={self._id_to_token[self._special.unk]!r})"


def _describe_spec(spec: SlotSpec) -> str | None:
    if spec is None:
        return None
    if isinstance(spec, (int, str)):
        return str(spec)
    return " | ".join(spec)
