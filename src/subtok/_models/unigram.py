"""Unigram tokenizer: best-path segmentation over scored pieces."""

import logging
import math
from collections.abc import Sequence
from typing import Final, override

import regex as re

from ..config import TokenizerConfig
from ..errors import VocabularyLoadError
from ..vocab import Vocabulary
from .base import Tokenizer

log = logging.getLogger(__name__)

SPACE_MARKER: Final[str] = "▁"
# unknown characters score this far below the worst real piece
UNK_PENALTY: Final[float] = 10.0

_BYTE_PIECE = re.compile(r"<0x([0-9A-Fa-f]{2})>")
_WHITESPACE = re.compile(r"\s")


class UnigramTokenizer(Tokenizer):
    """
    SentencePiece-style unigram tokenizer.

    Whitespace characters become the ``▁`` marker and the whole text is
    segmented as one stream by Viterbi search, maximizing the summed piece
    scores.
    """

    TOKENIZER_TYPE = "unigram"
    DEFAULT_SPECIAL_TOKENS = {
        "unk": "<unk>",
        "pad": "<pad>",
        "bos": "<s>",
        "eos": "</s>",
        "mask": "<mask>",
    }

    def __init__(
        self,
        vocab: Vocabulary,
        scores: Sequence[float],
        config: TokenizerConfig | None = None,
        *,
        add_dummy_prefix: bool = True,
        byte_fallback: bool = False,
        add_bos: bool = True,
        add_eos: bool = True,
    ) -> None:
        """
        :param scores: Log-probability score per id, aligned with ``vocab``.
        :param add_dummy_prefix: Prepend a marker so the first word looks like
            every other word.
        :param byte_fallback: Emit ``<0xNN>`` byte pieces for unmatched
            characters instead of the unknown token.
        :raises VocabularyLoadError: If ``scores`` and ``vocab`` differ in length.
        """
        super().__init__(vocab, config, add_bos=add_bos, add_eos=add_eos)
        if len(scores) != len(vocab):
            raise VocabularyLoadError(
                f"piece table has {len(scores)} scores for {len(vocab)} tokens"
            )
        self.add_dummy_prefix = add_dummy_prefix
        self._scores: tuple[float, ...] = tuple(float(s) for s in scores)

        # pieces that may match text: no special, byte or empty pieces
        pieces: dict[str, float] = {}
        byte_pieces: dict[int, str] = {}
        for tok, piece in enumerate(vocab.id_to_token):
            if vocab.is_special(tok) or not piece:
                continue
            m = _BYTE_PIECE.fullmatch(piece)
            if m is not None:
                byte_pieces[int(m.group(1), 16)] = piece
                continue
            pieces[piece] = self._scores[tok]
        self._pieces = pieces
        self._max_piece_len = max((len(p) for p in pieces), default=1)
        self._unk_score = min(pieces.values(), default=0.0) - UNK_PENALTY
        self._unk_token = vocab.reverse(vocab.unk_id)

        self.byte_fallback = byte_fallback and len(byte_pieces) == 256
        if byte_fallback and not self.byte_fallback:
            log.warning(
                f"byte fallback requested but vocabulary has {len(byte_pieces)} of 256 byte pieces"
            )
        self._byte_pieces = byte_pieces

    @property
    def scores(self) -> tuple[float, ...]:
        return self._scores

    @override
    def _tokenize(self, text: str) -> list[str]:
        if not text:
            return []
        text = _WHITESPACE.sub(SPACE_MARKER, text)
        if self.add_dummy_prefix and not text.startswith(SPACE_MARKER):
            text = SPACE_MARKER + text
        return self._viterbi(text)

    def _viterbi(self, text: str) -> list[str]:
        """
        Find the segmentation of ``text`` with the highest total score.

        ``best[j]`` is the best score of any segmentation of ``text[:j]``;
        ``back[j]`` holds the start of its last piece, or ``None`` as piece
        when that last step was an unknown character. Ties go to the longer
        last piece.
        """
        n = len(text)
        best = [-math.inf] * (n + 1)
        best[0] = 0.0
        back: list[tuple[int, str | None]] = [(0, None)] * (n + 1)
        back_len = [0] * (n + 1)

        for i in range(n):
            if best[i] == -math.inf:
                continue
            has_single = False
            for length in range(1, min(self._max_piece_len, n - i) + 1):
                piece = text[i : i + length]
                score = self._pieces.get(piece)
                if score is None:
                    continue
                if length == 1:
                    has_single = True
                j = i + length
                cand = best[i] + score
                if cand > best[j] or (cand == best[j] and length > back_len[j]):
                    best[j] = cand
                    back[j] = (i, piece)
                    back_len[j] = length
            # an unmatched character is always a one-character unknown step
            if not has_single:
                cand = best[i] + self._unk_score
                if cand > best[i + 1]:
                    best[i + 1] = cand
                    back[i + 1] = (i, None)
                    back_len[i + 1] = 1

        tokens: list[str] = []
        j = n
        while j > 0:
            i, piece = back[j]
            if piece is None:
                tokens.extend(reversed(self._unknown(text[i:j])))
            else:
                tokens.append(piece)
            j = i
        tokens.reverse()
        return tokens

    def _unknown(self, char: str) -> list[str]:
        if self.byte_fallback:
            return [self._byte_pieces[b] for b in char.encode("utf-8")]
        return [self._unk_token]

    @override
    def _detokenize(self, tokens: list[str], special: list[bool]) -> str:
        parts: list[str] = []
        pending = bytearray()
        # the dummy prefix space belongs to the first piece of real text,
        # wherever leading special tokens put it
        strip_prefix = self.add_dummy_prefix

        def flush() -> None:
            nonlocal strip_prefix
            if pending:
                parts.append(pending.decode("utf-8", errors="replace"))
                pending.clear()
                strip_prefix = False

        for tok, is_special in zip(tokens, special):
            if is_special:
                flush()
                parts.append(tok)
                continue
            m = _BYTE_PIECE.fullmatch(tok)
            if m is not None:
                pending.append(int(m.group(1), 16))
                continue
            flush()
            piece = tok.replace(SPACE_MARKER, " ")
            if strip_prefix and piece.startswith(" "):
                piece = piece[1:]
            strip_prefix = False
            parts.append(piece)
        flush()
        return "".join(parts)
