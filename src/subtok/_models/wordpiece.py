"""WordPiece tokenizer: greedy longest-match-first subword splitting."""

import logging
import unicodedata
from typing import override

import regex as re

from ..config import TokenizerConfig
from ..pattern import TokenPattern, compile_pattern
from ..vocab import Vocabulary
from .base import Tokenizer

log = logging.getLogger(__name__)

# tab, newline and carriage return count as whitespace, not control characters
_WHITESPACE_CTRL = frozenset("\t\n\r")


class WordPieceTokenizer(Tokenizer):
    """
    BERT-style tokenizer.

    Text is cleaned, optionally case-folded, split into coarse words on
    whitespace, punctuation and CJK ideographs, and each word is segmented
    greedily into the longest vocabulary pieces. Pieces after the first carry
    the continuation prefix.
    """

    TOKENIZER_TYPE = "wordpiece"
    DEFAULT_SPECIAL_TOKENS = {
        "unk": "[UNK]",
        "pad": "[PAD]",
        "bos": "[CLS]",
        "eos": "[SEP]",
        "mask": "[MASK]",
    }

    def __init__(
        self,
        vocab: Vocabulary,
        config: TokenizerConfig | None = None,
        *,
        continuing_subword_prefix: str = "##",
        max_input_chars_per_word: int = 100,
        strip_accents: bool | None = None,
        clean_text: bool = True,
        add_bos: bool = True,
        add_eos: bool = True,
    ) -> None:
        """
        :param continuing_subword_prefix: Marker prepended to non-initial pieces.
        :param max_input_chars_per_word: Longer words become the unknown token.
        :param strip_accents: Remove combining marks; ``None`` follows ``lowercase``.
        :param clean_text: Drop control characters and map whitespace to spaces.
        """
        super().__init__(vocab, config, add_bos=add_bos, add_eos=add_eos)
        self.continuing_subword_prefix = continuing_subword_prefix
        self.max_input_chars_per_word = max_input_chars_per_word
        self.strip_accents = strip_accents
        self.clean_text = clean_text
        self._unk_token = vocab.reverse(vocab.unk_id)
        self._split_pat: re.Pattern[str] = compile_pattern(TokenPattern.BERT.value)

    @override
    def _normalize(self, text: str, config: TokenizerConfig) -> str:
        if self.clean_text:
            text = _clean_text(text)
        if config.lowercase:
            text = text.lower()
        # accents follow casing unless set explicitly
        strip = config.lowercase if self.strip_accents is None else self.strip_accents
        if strip:
            text = _strip_accents(text)
        return text

    @override
    def _tokenize(self, text: str) -> list[str]:
        tokens: list[str] = []
        for m in self._split_pat.finditer(text):
            tokens.extend(self._split_word(m.group(0)))
        return tokens

    def _split_word(self, word: str) -> list[str]:
        """
        Segment one coarse word greedily into vocabulary pieces.

        The whole word becomes the unknown token when any position has no
        matching piece.
        """
        if len(word) > self.max_input_chars_per_word:
            return [self._unk_token]

        pieces: list[str] = []
        start = 0
        while start < len(word):
            end = len(word)
            current: str | None = None
            # shrink the candidate from the right until it is in the vocabulary
            while start < end:
                sub = word[start:end]
                if start > 0:
                    sub = self.continuing_subword_prefix + sub
                if sub in self._vocab:
                    current = sub
                    break
                end -= 1
            if current is None:
                return [self._unk_token]
            pieces.append(current)
            start = end

        return pieces

    @override
    def _detokenize(self, tokens: list[str], special: list[bool]) -> str:
        prefix = self.continuing_subword_prefix
        out: list[str] = []
        for tok, is_special in zip(tokens, special):
            if not is_special and prefix and tok.startswith(prefix):
                out.append(tok[len(prefix) :])
            else:
                if out:
                    out.append(" ")
                out.append(tok)
        return "".join(out)


def _clean_text(text: str) -> str:
    """Remove invalid and control characters and turn whitespace into spaces."""
    out: list[str] = []
    for c in text:
        if c == "\x00" or c == "\ufffd":
            continue
        if c in _WHITESPACE_CTRL or unicodedata.category(c) == "Zs":
            out.append(" ")
        elif unicodedata.category(c) in ("Cc", "Cf"):
            continue
        else:
            out.append(c)
    return "".join(out)


def _strip_accents(text: str) -> str:
    """Decompose characters and drop combining marks."""
    return "".join(
        c for c in unicodedata.normalize("NFD", text) if unicodedata.category(c) != "Mn"
    )
