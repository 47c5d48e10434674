"""SubTok: vocabulary-backed subword tokenization for model inputs."""

from ._models.base import Tokenizer
from ._models.bpe import BPETokenizer
from ._models.unigram import UnigramTokenizer
from ._models.wordpiece import WordPieceTokenizer
from .config import Padding, Side, TokenizerConfig
from .encoding import BatchResult, EncodedSequence
from .errors import (
    ConfigError,
    InvalidId,
    PatternError,
    SpecialTokenError,
    SubTokError,
    UnsupportedTokenizerFormat,
    VocabularyLoadError,
)
from .factory import (
    TokenizerFormat,
    detect_format,
    list_tokenizer_types,
    load_tokenizer,
)
from .merges import MergeTable
from .parallel import BatchEncoder, ParallelMode, encode_batch, list_parallel_modes
from .pattern import TokenPattern, get_pattern, list_patterns
from .strategy import (
    AllowAllStrategy,
    AllowCustomStrategy,
    AllowNoneRaiseStrategy,
    AllowNoneStrategy,
    SpecialTokenStrategy,
    get_strategy,
    list_strategies,
)
from .vocab import SpecialTokens, Vocabulary

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("subtok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "Tokenizer",
    "WordPieceTokenizer",
    "BPETokenizer",
    "UnigramTokenizer",
    "TokenizerConfig",
    "Side",
    "Padding",
    "Vocabulary",
    "SpecialTokens",
    "MergeTable",
    "EncodedSequence",
    "BatchResult",
    "BatchEncoder",
    "ParallelMode",
    "TokenizerFormat",
    "TokenPattern",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "SubTokError",
    "VocabularyLoadError",
    "UnsupportedTokenizerFormat",
    "InvalidId",
    "ConfigError",
    "SpecialTokenError",
    "PatternError",
    "load_tokenizer",
    "detect_format",
    "encode_batch",
    "get_strategy",
    "get_pattern",
    "list_patterns",
    "list_parallel_modes",
    "list_strategies",
    "list_tokenizer_types",
]
