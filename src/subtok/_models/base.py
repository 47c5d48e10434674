"""
Base tokenizer interface shared by the WordPiece, BPE and Unigram variants.
"""

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, ClassVar

import regex as re

from ..config import Side, TokenizerConfig
from ..encoding import BatchResult, EncodedSequence
from ..errors import ConfigError
from ..parallel import BatchEncoder, ParallelMode, ParallelStrategy
from ..types import Token
from ..vocab import SlotSpec, Vocabulary

if TYPE_CHECKING:
    from ..strategy import SpecialTokenStrategy


log = logging.getLogger(__name__)


class Tokenizer(ABC):
    """
    Abstract base class for vocabulary-backed subword tokenizers.

    Subclasses implement segmentation of normalized text into token strings
    and the reverse join. Special token wrapping, truncation, id mapping and
    batching live here. Instances are read-only after construction.
    """

    TOKENIZER_TYPE: ClassVar[str] = "base"
    # slot -> candidate tokens used when artifacts do not name special tokens
    DEFAULT_SPECIAL_TOKENS: ClassVar[Mapping[str, SlotSpec]] = {}

    def __init__(
        self,
        vocab: Vocabulary,
        config: TokenizerConfig | None = None,
        *,
        add_bos: bool = True,
        add_eos: bool = True,
    ) -> None:
        """
        :param vocab: Vocabulary the tokenizer maps through.
        :param config: Default options for encode calls.
        :param add_bos: Whether the sequence-start token wraps content.
        :param add_eos: Whether the sequence-end token wraps content.
        """
        self._vocab = vocab
        self._config = config if config is not None else TokenizerConfig()
        self._add_bos = add_bos
        self._add_eos = add_eos
        self._strategy: "SpecialTokenStrategy | None" = None

    @abstractmethod
    def _tokenize(self, text: str) -> list[str]:
        """Segment normalized text into token strings."""
        ...

    @abstractmethod
    def _detokenize(self, tokens: list[str], special: list[bool]) -> str:
        """Join token strings back into text; ``special`` flags special tokens."""
        ...

    def _normalize(self, text: str, config: TokenizerConfig) -> str:
        """Apply text normalization before splitting."""
        if config.lowercase:
            return text.lower()
        return text

    # Encoding
    # ===================================================================================

    def encode(
        self,
        text: str,
        config: TokenizerConfig | None = None,
        strategy: "SpecialTokenStrategy | None" = None,
    ) -> EncodedSequence:
        """
        Encode text into ids.

        Content is segmented, mapped through the vocabulary, truncated on the
        configured side to fit ``max_sequence_length`` and wrapped with the
        sequence-start/end tokens. Wrapping tokens are never truncated.

        :param text: Text to encode.
        :param config: Per-call options; defaults to the tokenizer's config.
        :param strategy: How special token literals inside ``text`` are treated.
            Defaults to the tokenizer's strategy; ``None`` there encodes them
            as ordinary text.
        :returns: Encoded sequence.
        :raises ConfigError: If the length cap cannot hold the wrapping tokens.
        """
        cfg = config if config is not None else self._config
        prefix, suffix = self._wrapping_ids(cfg)
        budget = self._content_budget(cfg, len(prefix) + len(suffix))

        tokens = self._content_tokens(text, cfg, strategy)
        ids = [self._vocab.lookup(tok) for tok in tokens]

        dropped = 0
        if budget is not None and len(ids) > budget:
            dropped = len(ids) - budget
            if cfg.truncation_side is Side.RIGHT:
                ids, tokens = ids[:budget], tokens[:budget]
            else:
                ids, tokens = ids[dropped:], tokens[dropped:]

        prefix_toks = [self._vocab.reverse(tok) for tok in prefix]
        suffix_toks = [self._vocab.reverse(tok) for tok in suffix]

        return EncodedSequence(
            ids=tuple(prefix + ids + suffix),
            tokens=tuple(prefix_toks + tokens + suffix_toks),
            special_tokens_mask=tuple(
                [1] * len(prefix) + [0] * len(ids) + [1] * len(suffix)
            ),
            num_truncated=dropped,
        )

    def encode_batch(
        self,
        texts: Sequence[str],
        config: TokenizerConfig | None = None,
        strategy: "SpecialTokenStrategy | None" = None,
        num_workers: int | None = None,
        parallel_mode: ParallelStrategy | ParallelMode = ParallelMode.AUTO,
    ) -> BatchResult:
        """
        Encode many texts into one padded batch.

        Each row equals ``encode(text, config)``; see :class:`subtok.parallel.BatchEncoder`.
        """
        encoder = BatchEncoder(
            self, num_workers=num_workers, parallel_mode=parallel_mode
        )
        return encoder.encode(texts, config=config, strategy=strategy)

    def tokenize(
        self,
        text: str,
        config: TokenizerConfig | None = None,
        strategy: "SpecialTokenStrategy | None" = None,
    ) -> list[str]:
        """Return content token strings without wrapping or truncation."""
        cfg = config if config is not None else self._config
        return self._content_tokens(text, cfg, strategy)

    def count_tokens(self, text: str, config: TokenizerConfig | None = None) -> int:
        """Return the number of ids ``encode`` would produce."""
        return len(self.encode(text, config))

    def _content_tokens(
        self,
        text: str,
        config: TokenizerConfig,
        strategy: "SpecialTokenStrategy | None",
    ) -> list[str]:
        tokens: list[str] = []
        for segment, is_special in self._split_special(text, strategy):
            if is_special:
                tokens.append(segment)
            else:
                tokens.extend(self._tokenize(self._normalize(segment, config)))
        return tokens

    def _split_special(
        self, text: str, strategy: "SpecialTokenStrategy | None"
    ) -> list[tuple[str, bool]]:
        """Split ``text`` around the special token literals the strategy allows."""
        if strategy is None:
            strategy = self._strategy
        if strategy is None:
            return [(text, False)]

        special_toks = strategy.handle(text, self._vocab.special_literals)
        if not special_toks:
            return [(text, False)]

        # longest literal first so overlapping special tokens match greedily.
        # the capturing group keeps matched delimiters at odd positions of the split
        esc_special_toks = [
            re.escape(seq) for seq in sorted(special_toks, key=len, reverse=True)
        ]
        special_pat = "(" + "|".join(esc_special_toks) + ")"
        chunks = re.split(special_pat, text)
        return [(chunk, idx % 2 == 1) for idx, chunk in enumerate(chunks) if chunk]

    def _wrapping_ids(self, config: TokenizerConfig) -> tuple[list[Token], list[Token]]:
        """Return the special ids placed before and after content."""
        if not config.add_special_tokens:
            return [], []
        special = self._vocab.special_tokens
        prefix = [special.bos] if self._add_bos and special.bos is not None else []
        suffix = [special.eos] if self._add_eos and special.eos is not None else []
        return prefix, suffix

    def _content_budget(self, config: TokenizerConfig, n_special: int) -> int | None:
        if config.max_sequence_length is None:
            return None
        budget = config.max_sequence_length - n_special
        if budget < 0:
            raise ConfigError(
                f"max_sequence_length {config.max_sequence_length} cannot hold "
                f"{n_special} special tokens"
            )
        return budget

    def num_special_tokens_to_add(self, config: TokenizerConfig | None = None) -> int:
        """Return how many wrapping special tokens ``encode`` adds."""
        prefix, suffix = self._wrapping_ids(config if config is not None else self._config)
        return len(prefix) + len(suffix)

    # Decoding
    # ===================================================================================

    def decode(self, ids: Iterable[Token], skip_special_tokens: bool = True) -> str:
        """
        Decode ids back into text.

        :param ids: Token ids, e.g. a row of a batch.
        :param skip_special_tokens: Drop special tokens from the output.
        :raises InvalidId: If any id is outside the vocabulary range.
        """
        tokens: list[str] = []
        special: list[bool] = []
        # resolve every id first so a bad id fails before any output is built
        for tok in ids:
            token = self._vocab.reverse(tok)
            is_special = self._vocab.is_special(tok)
            if is_special and skip_special_tokens:
                continue
            tokens.append(token)
            special.append(is_special)
        return self._detokenize(tokens, special)

    def decode_batch(
        self, batch: Iterable[Iterable[Token]], skip_special_tokens: bool = True
    ) -> list[str]:
        """Decode each id sequence in ``batch``."""
        return [self.decode(ids, skip_special_tokens) for ids in batch]

    # Vocabulary access
    # ===================================================================================

    @property
    def vocab(self) -> Vocabulary:
        return self._vocab

    @property
    def config(self) -> TokenizerConfig:
        return self._config

    @property
    def vocab_size(self) -> int:
        return len(self._vocab)

    @property
    def unk_id(self) -> Token:
        return self._vocab.special_tokens.unk

    @property
    def pad_id(self) -> Token:
        """Padding id; falls back to the sequence-end id, then to 0."""
        special = self._vocab.special_tokens
        if special.pad is not None:
            return special.pad
        if special.eos is not None:
            return special.eos
        return 0

    @property
    def bos_id(self) -> Token | None:
        return self._vocab.special_tokens.bos

    @property
    def eos_id(self) -> Token | None:
        return self._vocab.special_tokens.eos

    @property
    def mask_id(self) -> Token | None:
        return self._vocab.special_tokens.mask

    @property
    def stop_token_ids(self) -> tuple[Token, ...]:
        """Ids that end generation."""
        eos = self._vocab.special_tokens.eos
        return () if eos is None else (eos,)

    def is_special(self, tok: Token) -> bool:
        return self._vocab.is_special(tok)

    def token_to_id(self, token: str) -> Token | None:
        return self._vocab.get(token)

    def id_to_token(self, tok: Token) -> str:
        return self._vocab.reverse(tok)

    def with_config(self, config: TokenizerConfig) -> "Tokenizer":
        """Return a tokenizer sharing this one's tables but bound to ``config``."""
        clone = copy.copy(self)
        clone._config = config
        return clone

    def with_strategy(self, strategy: "SpecialTokenStrategy | None") -> "Tokenizer":
        """Return a tokenizer sharing this one's tables but with a default strategy."""
        clone = copy.copy(self)
        clone._strategy = strategy
        return clone

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(vocab_size={self.vocab_size}, "
            f"max_sequence_length={self._config.max_sequence_length})"
        )
