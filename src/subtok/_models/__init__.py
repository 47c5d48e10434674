"""Tokenizer implementations for subword text processing."""

from .base import Tokenizer
from .bpe import BPETokenizer
from .unigram import UnigramTokenizer
from .wordpiece import WordPieceTokenizer


__all__ = ["Tokenizer", "WordPieceTokenizer", "BPETokenizer", "UnigramTokenizer"]
