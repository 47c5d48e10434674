"""Byte pair encoding tokenizer driven by ranked merge rules."""

import functools
import logging
from typing import override

import regex as re

from .._bytelevel import to_bytes, to_symbols
from ..config import TokenizerConfig
from ..merges import MergeTable, apply_merges
from ..pattern import TokenPattern, compile_pattern
from ..vocab import Vocabulary
from .base import Tokenizer

log = logging.getLogger(__name__)


class BPETokenizer(Tokenizer):
    """Tokenizer that splits text using regex patterns before applying BPE merges."""

    TOKENIZER_TYPE = "bpe"
    # CLIP and GPT-2 vocabularies have no <unk>, they reuse <|endoftext|>
    DEFAULT_SPECIAL_TOKENS = {
        "unk": ("<unk>", "<|endoftext|>"),
        "pad": ("<pad>", "<|pad|>"),
        "bos": ("<s>", "<|startoftext|>", "<|begin_of_text|>"),
        "eos": ("</s>", "<|endoftext|>", "<|end_of_text|>"),
        "mask": ("<mask>",),
    }

    def __init__(
        self,
        vocab: Vocabulary,
        merges: MergeTable,
        config: TokenizerConfig | None = None,
        *,
        pattern: str | None = None,
        byte_level: bool = True,
        add_prefix_space: bool = False,
        end_of_word_suffix: str | None = None,
        add_bos: bool = True,
        add_eos: bool = True,
        cache_size: int = 10_000,
    ) -> None:
        """
        :param merges: Ranked merge rules.
        :param pattern: Pre-tokenization regex; defaults to the GPT-2 pattern.
        :param byte_level: Map UTF-8 bytes to the printable byte alphabet before
            merging. When ``False`` the initial symbols are characters.
        :param add_prefix_space: Prepend a space when text does not start with one.
        :param end_of_word_suffix: Suffix marking the last symbol of each chunk,
            e.g. ``"</w>"``. Whitespace-only chunks are dropped in this mode.
        :param cache_size: Number of merged chunks kept in the LRU cache.
        """
        super().__init__(vocab, config, add_bos=add_bos, add_eos=add_eos)
        self._merges = merges
        self.pat = pattern if pattern is not None else TokenPattern.GPT2.value
        self.compiled_pat: re.Pattern[str] = compile_pattern(self.pat)
        self.byte_level = byte_level
        self.add_prefix_space = add_prefix_space
        self.end_of_word_suffix = end_of_word_suffix
        # lru_cache locks internally so concurrent encodes can share it
        self._merge_chunk_cached = functools.lru_cache(maxsize=cache_size)(
            self._merge_chunk
        )

    @property
    def merges(self) -> MergeTable:
        return self._merges

    @override
    def _tokenize(self, text: str) -> list[str]:
        if self.add_prefix_space and text and not text[0].isspace():
            text = " " + text

        tokens: list[str] = []
        # split text into chunks as defined by pattern
        for m in self.compiled_pat.finditer(text):
            chunk = m.group(0)
            # the end-of-word suffix already encodes word boundaries
            if self.end_of_word_suffix and chunk.isspace():
                continue
            tokens.extend(self._merge_chunk_cached(chunk))
        return tokens

    def _merge_chunk(self, chunk: str) -> tuple[str, ...]:
        """Turn one chunk into initial symbols and apply merges."""
        symbols = to_symbols(chunk) if self.byte_level else list(chunk)
        if not symbols:
            return ()
        if self.end_of_word_suffix:
            symbols[-1] = symbols[-1] + self.end_of_word_suffix
        return tuple(apply_merges(symbols, self._merges))

    @override
    def _detokenize(self, tokens: list[str], special: list[bool]) -> str:
        parts: list[str] = []
        run: list[str] = []

        def flush() -> None:
            if run:
                parts.append(self._decode_run("".join(run)))
                run.clear()

        for tok, is_special in zip(tokens, special):
            # special tokens are stored as plain text, not byte symbols
            if is_special:
                flush()
                parts.append(tok)
            else:
                run.append(tok)
        flush()

        text = "".join(parts)
        if self.end_of_word_suffix:
            text = text.rstrip(" ")
        return text

    def _decode_run(self, text: str) -> str:
        if self.byte_level:
            text = to_bytes(text).decode("utf-8", errors="replace")
        if self.end_of_word_suffix:
            text = text.replace(self.end_of_word_suffix, " ")
        return text
