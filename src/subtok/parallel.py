"""Batch encoding into padded arrays, with optional thread parallelism."""

import logging
import os
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from math import ceil
from typing import TYPE_CHECKING, Literal

import numpy as np

from .config import Padding, Side, TokenizerConfig
from .encoding import BatchResult, EncodedSequence
from .errors import ConfigError
from .types import Token

if TYPE_CHECKING:
    from ._models.base import Tokenizer
    from .strategy import SpecialTokenStrategy

log = logging.getLogger(__name__)

ParallelStrategy = Literal["auto", "batch", "off"]

# below this many characters a thread pool costs more than it saves
_AUTO_MIN_TOTAL_CHARS = 200_000


class ParallelMode(str, Enum):
    """Named parallelization modes for batch encoding."""

    AUTO = "auto"
    BATCH = "batch"
    OFF = "off"

    @classmethod
    def get(cls, name: "str | ParallelMode") -> "ParallelMode":
        """Get parallel mode by name (case-insensitive)."""
        if isinstance(name, ParallelMode):
            return name
        try:
            return cls[name.upper()]
        except KeyError:
            raise ConfigError(
                "unknown mode",
                invalid_name=name,
                available=[mode.value for mode in cls],
            )


def list_parallel_modes() -> list[str]:
    """Return available parallel mode names."""
    return [mode.value for mode in ParallelMode]


class BatchEncoder:
    """
    Encode many texts into one rectangular batch.

    Every row is encoded exactly like ``Tokenizer.encode``, then rows are
    padded on the configured side to a shared width. Row ``i`` always
    corresponds to ``texts[i]``.
    """

    def __init__(
        self,
        tokenizer: "Tokenizer",
        num_workers: int | None = None,
        parallel_mode: ParallelStrategy | ParallelMode = ParallelMode.AUTO,
    ) -> None:
        self.tokenizer = tokenizer
        if num_workers is None:
            self.num_workers = os.cpu_count() or 1
        else:
            self.num_workers = max(1, num_workers)  # "0" interpreted as 1 worker
        self.parallel_mode = ParallelMode.get(parallel_mode)

    def encode(
        self,
        texts: Sequence[str],
        config: TokenizerConfig | None = None,
        strategy: "SpecialTokenStrategy | None" = None,
    ) -> BatchResult:
        """
        Encode ``texts`` and pad them into a :class:`BatchResult`.

        :param texts: Texts to encode; an empty sequence gives an empty batch.
        :param config: Per-call options; defaults to the tokenizer's config.
        :param strategy: Special token literal handling, as in ``encode``.
        :raises ConfigError: If the length cap cannot hold the wrapping tokens.
        """
        if isinstance(texts, str):
            raise TypeError("texts must be a sequence of strings, not a single string")
        if len(texts) == 0:
            return BatchResult.empty()

        cfg = config if config is not None else self.tokenizer.config
        n_special = self.tokenizer.num_special_tokens_to_add(cfg)
        if cfg.max_sequence_length is not None and cfg.max_sequence_length < n_special:
            raise ConfigError(
                f"max_sequence_length {cfg.max_sequence_length} cannot hold "
                f"{n_special} special tokens"
            )

        rows = self._encode_rows(list(texts), cfg, strategy)
        truncated = sum(1 for row in rows if row.num_truncated)
        if truncated:
            log.debug(f"truncated {truncated} of {len(rows)} rows")

        return pad_batch([row.ids for row in rows], cfg, self.tokenizer.pad_id)

    def _encode_rows(
        self,
        texts: list[str],
        config: TokenizerConfig,
        strategy: "SpecialTokenStrategy | None",
    ) -> list[EncodedSequence]:
        workers = self.num_workers

        def encode_serial(group: list[str]) -> list[EncodedSequence]:
            return [self.tokenizer.encode(text, config, strategy) for text in group]

        def process_batch() -> list[EncodedSequence]:
            """Encode grouped texts on a thread pool, keeping input order."""
            if workers == 1 or len(texts) <= 1:
                return encode_serial(texts)

            # group texts to reduce task-scheduling overhead when the input
            # contains many documents
            target_tasks = min(len(texts), workers * 2)
            group_size = max(1, ceil(len(texts) / target_tasks))
            text_groups = [
                texts[idx : idx + group_size] for idx in range(0, len(texts), group_size)
            ]

            with ThreadPoolExecutor(max_workers=workers) as pool:
                encoded_groups = list(pool.map(encode_serial, text_groups))
            return [encoded for group in encoded_groups for encoded in group]

        match self.parallel_mode:
            case ParallelMode.OFF:
                return encode_serial(texts)
            case ParallelMode.BATCH:
                return process_batch()
            case ParallelMode.AUTO:
                # many short docs regress in threaded mode due to python-side
                # scheduling overhead
                total_chars = sum(len(text) for text in texts)
                if total_chars < _AUTO_MIN_TOTAL_CHARS or len(texts) < workers * 2:
                    return encode_serial(texts)
                return process_batch()


def pad_batch(
    sequences: Sequence[Sequence[Token]],
    config: TokenizerConfig,
    pad_id: Token,
) -> BatchResult:
    """
    Pad id sequences into a rectangular batch.

    Width is the longest sequence, or ``max_sequence_length`` under
    ``max_length`` padding. Pad ids go on ``config.padding_side`` and get
    attention mask 0.
    """
    if not sequences:
        return BatchResult.empty()

    lengths = [len(seq) for seq in sequences]
    width = max(lengths)
    if config.padding is Padding.MAX_LENGTH and config.max_sequence_length is not None:
        width = max(width, config.max_sequence_length)

    ids = np.full((len(sequences), width), pad_id, dtype=np.int64)
    attention_mask = np.zeros((len(sequences), width), dtype=np.int64)
    for row, (seq, length) in enumerate(zip(sequences, lengths)):
        if length == 0:
            continue
        if config.padding_side is Side.RIGHT:
            ids[row, :length] = seq
            attention_mask[row, :length] = 1
        else:
            ids[row, width - length :] = seq
            attention_mask[row, width - length :] = 1

    return BatchResult(ids=ids, attention_mask=attention_mask, lengths=tuple(lengths))


def encode_batch(
    tokenizer: "Tokenizer",
    texts: Sequence[str],
    config: TokenizerConfig | None = None,
    strategy: "SpecialTokenStrategy | None" = None,
    num_workers: int | None = None,
    parallel_mode: ParallelStrategy = "auto",
) -> BatchResult:
    """Encode many texts into one padded batch."""
    return BatchEncoder(
        tokenizer, num_workers=num_workers, parallel_mode=parallel_mode
    ).encode(texts, config=config, strategy=strategy)


__all__ = [
    "ParallelStrategy",
    "ParallelMode",
    "BatchEncoder",
    "list_parallel_modes",
    "pad_batch",
    "encode_batch",
]
