"""Factory functions for building tokenizers from model directories."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Final

from ._decorators import measure_time
from ._models import BPETokenizer, Tokenizer, UnigramTokenizer, WordPieceTokenizer
from .config import DEFAULT_MAX_SEQUENCE_LENGTH, Padding, Side, TokenizerConfig
from .descriptor import MODEL_TYPES, AddedToken, Descriptor, parse_descriptor
from .errors import ConfigError, UnsupportedTokenizerFormat, VocabularyLoadError
from .loaders import (
    read_json,
    read_merges,
    read_piece_model,
    read_vocab_lines,
    read_vocab_map,
)
from .merges import MergeTable
from .pattern import TokenPattern
from .strategy import SpecialTokenStrategy, StrategyName, get_strategy
from .vocab import SlotSpec, Vocabulary

log = logging.getLogger(__name__)

DESCRIPTOR_FILE: Final[str] = "tokenizer.json"
VOCAB_JSON_FILE: Final[str] = "vocab.json"
MERGES_FILE: Final[str] = "merges.txt"
PIECE_MODEL_FILES: Final[tuple[str, ...]] = (
    "spiece.model",
    "sentencepiece.bpe.model",
    "tokenizer.model",
)
VOCAB_TXT_FILE: Final[str] = "vocab.txt"
SPECIAL_TOKENS_MAP_FILE: Final[str] = "special_tokens_map.json"
TOKENIZER_CONFIG_FILE: Final[str] = "tokenizer_config.json"
TOKENIZER_SUBDIR: Final[str] = "tokenizer"

CLIP_SUFFIX: Final[str] = "</w>"
CLIP_MAX_LENGTH: Final[int] = 77
# model_max_length values above this are "no limit" sentinels
_MAX_PLAUSIBLE_LENGTH: Final[int] = 1_000_000

# special_tokens_map.json / tokenizer_config.json keys tried per slot, in order
_SIDE_SLOT_KEYS: Final[dict[str, tuple[str, ...]]] = {
    "unk": ("unk_token",),
    "pad": ("pad_token",),
    "bos": ("bos_token", "cls_token"),
    "eos": ("eos_token", "sep_token"),
    "mask": ("mask_token",),
}


class TokenizerFormat(str, Enum):
    """Artifact layouts the factory recognizes, in detection order."""

    DESCRIPTOR = "descriptor"
    BPE_FILES = "bpe-files"
    PIECE_MODEL = "piece-model"
    WORDPIECE_VOCAB = "wordpiece-vocab"


# Tokenizer registry
# ===================================================================================

_TOKENIZER_REGISTRY: Final[dict[str, type[Tokenizer]]] = {
    WordPieceTokenizer.TOKENIZER_TYPE: WordPieceTokenizer,
    BPETokenizer.TOKENIZER_TYPE: BPETokenizer,
    UnigramTokenizer.TOKENIZER_TYPE: UnigramTokenizer,
}


def list_tokenizer_types() -> list[str]:
    """Return available tokenizer type names."""
    return list(_TOKENIZER_REGISTRY.keys())


def get_tokenizer_class(name: str) -> type[Tokenizer]:
    """
    Look up a tokenizer class by its type name.

    :raises ConfigError: If ``name`` is not a registered tokenizer type.
    """
    try:
        return _TOKENIZER_REGISTRY[name]
    except KeyError:
        raise ConfigError(
            "unknown tokenizer type",
            invalid_name=name,
            available=list_tokenizer_types(),
        ) from None


# Format detection
# ===================================================================================


def detect_format(directory: str | Path) -> TokenizerFormat:
    """
    Report which artifact layout ``load_tokenizer`` would use for ``directory``.

    :raises UnsupportedTokenizerFormat: If the directory is missing or holds no
        recognized artifacts.
    """
    return _resolve(directory)[1]


def _match_format(directory: Path) -> TokenizerFormat | None:
    if (directory / DESCRIPTOR_FILE).is_file():
        return TokenizerFormat.DESCRIPTOR
    if (directory / VOCAB_JSON_FILE).is_file() and (directory / MERGES_FILE).is_file():
        return TokenizerFormat.BPE_FILES
    if _find_piece_model(directory) is not None:
        return TokenizerFormat.PIECE_MODEL
    if (directory / VOCAB_TXT_FILE).is_file():
        return TokenizerFormat.WORDPIECE_VOCAB
    return None


def _find_piece_model(directory: Path) -> Path | None:
    for name in PIECE_MODEL_FILES:
        path = directory / name
        if path.is_file():
            return path
    return None


def _resolve(directory: str | Path) -> tuple[Path, TokenizerFormat]:
    """Return the directory holding the artifacts and their format."""
    root = Path(directory)
    if not root.is_dir():
        raise UnsupportedTokenizerFormat(
            "tokenizer directory does not exist", path=str(root)
        )

    fmt = _match_format(root)
    if fmt is not None:
        log.debug(f"detected {fmt.value} artifacts in {root}")
        return root, fmt

    # some model repos keep the tokenizer next to the weights in a subdirectory
    nested = root / TOKENIZER_SUBDIR
    if nested.is_dir():
        fmt = _match_format(nested)
        if fmt is not None:
            log.debug(f"detected {fmt.value} artifacts in {nested}")
            return nested, fmt

    raise UnsupportedTokenizerFormat(
        "no recognized tokenizer artifacts",
        path=str(root),
        found=sorted(p.name for p in root.iterdir()),
    )


# Side files
# ===================================================================================


@dataclass(frozen=True)
class _SideInfo:
    """Hints read from ``special_tokens_map.json`` and ``tokenizer_config.json``."""

    special: Mapping[str, str] = field(default_factory=dict)
    lowercase: bool | None = None
    max_length: int | None = None
    add_bos: bool | None = None
    add_eos: bool | None = None


def _read_side_info(directory: Path) -> _SideInfo:
    tok_config = _read_optional_json(directory / TOKENIZER_CONFIG_FILE)
    special_map = _read_optional_json(directory / SPECIAL_TOKENS_MAP_FILE)

    special: dict[str, str] = {}
    # special_tokens_map.json wins over tokenizer_config.json
    for source in (tok_config, special_map):
        for slot, keys in _SIDE_SLOT_KEYS.items():
            for key in keys:
                content = _token_content(source.get(key))
                if content is not None:
                    special[slot] = content
                    break

    max_length = tok_config.get("model_max_length")
    if (
        isinstance(max_length, bool)
        or not isinstance(max_length, (int, float))
        or not 0 < max_length <= _MAX_PLAUSIBLE_LENGTH
    ):
        max_length = None

    return _SideInfo(
        special=special,
        lowercase=_optional_bool(tok_config.get("do_lower_case")),
        max_length=int(max_length) if max_length is not None else None,
        add_bos=_optional_bool(tok_config.get("add_bos_token")),
        add_eos=_optional_bool(tok_config.get("add_eos_token")),
    )


def _read_optional_json(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    data = read_json(path)
    if not isinstance(data, dict):
        log.warning(f"ignoring {path.name}: expected a JSON object")
        return {}
    return data


def _token_content(value: object) -> str | None:
    # either "[CLS]" or {"content": "[CLS]", ...}
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict) and isinstance(value.get("content"), str):
        return value["content"] or None
    return None


def _optional_bool(value: object) -> bool | None:
    return value if isinstance(value, bool) else None


# Construction helpers
# ===================================================================================


def _slot_specs(
    cls: type[Tokenizer], side: _SideInfo, **named: str | None
) -> dict[str, SlotSpec]:
    """
    Combine a tokenizer's default candidates with tokens named by artifacts.

    Named tokens are tried first; the defaults remain as fallbacks.
    """
    slots: dict[str, SlotSpec] = dict(cls.DEFAULT_SPECIAL_TOKENS)
    for source in (side.special, named):
        for slot, token in source.items():
            if token is not None:
                slots[slot] = _prefer(token, slots.get(slot))
    return slots


def _prefer(token: str, spec: SlotSpec) -> SlotSpec:
    if spec is None or isinstance(spec, int):
        return token
    rest = (spec,) if isinstance(spec, str) else tuple(spec)
    return (token, *(cand for cand in rest if cand != token))


def _default_config(
    side: _SideInfo,
    *,
    lowercase: bool | None = None,
    lowercase_default: bool = False,
    max_length: int | None = None,
    padding_side: str | None = None,
    truncation_side: str | None = None,
    fixed_padding: bool = False,
) -> TokenizerConfig:
    """Build the config used when the caller does not pass one."""
    if lowercase is None:
        lowercase = side.lowercase if side.lowercase is not None else lowercase_default
    return TokenizerConfig(
        max_sequence_length=max_length or side.max_length or DEFAULT_MAX_SEQUENCE_LENGTH,
        lowercase=lowercase,
        padding_side=Side.get(padding_side or Side.RIGHT),
        truncation_side=Side.get(truncation_side or Side.RIGHT),
        padding=Padding.MAX_LENGTH if fixed_padding else Padding.LONGEST,
    )


def _wrapping_flags(side: _SideInfo, default: bool) -> tuple[bool, bool]:
    return (
        side.add_bos if side.add_bos is not None else default,
        side.add_eos if side.add_eos is not None else default,
    )


def _has_distinct_wrapping(vocab: Vocabulary) -> bool:
    # GPT-2 style vocabularies only have <|endoftext|>, which is not a wrapper
    special = vocab.special_tokens
    return special.bos is not None and special.eos is not None and special.bos != special.eos


def _with_added_tokens(
    mapping: Mapping[str, object], added: tuple[AddedToken, ...], path: Path
) -> dict[str, object]:
    """Merge descriptor added tokens into a token -> id map."""
    merged = dict(mapping)
    for tok in added:
        existing = merged.get(tok.content)
        if existing is None:
            merged[tok.content] = tok.id
        elif existing != tok.id:
            raise VocabularyLoadError(
                f"added token id {tok.id} conflicts with vocabulary id {existing}",
                path=str(path),
                token=tok.content,
            )
    return merged


# Builders, one per artifact layout
# ===================================================================================

type _Builder = Callable[[Path, _SideInfo, TokenizerConfig | None], Tokenizer]


def _build_from_descriptor(
    directory: Path, side: _SideInfo, config: TokenizerConfig | None
) -> Tokenizer:
    path = directory / DESCRIPTOR_FILE
    desc = parse_descriptor(read_json(path), str(path))

    kind = MODEL_TYPES.get(desc.model_type)
    if kind is None:
        raise UnsupportedTokenizerFormat(
            f"unsupported descriptor model type {desc.model_type!r}",
            path=str(path),
            found=[desc.model_type],
        )
    cls = get_tokenizer_class(kind)

    start, end = desc.wrapping if desc.wrapping is not None else (None, None)
    unk = desc.model.get("unk_token")
    slots = _slot_specs(
        cls,
        side,
        unk=unk if isinstance(unk, str) else None,
        pad=desc.pad_token,
        bos=start,
        eos=end,
    )
    extra = [tok.content for tok in desc.added_tokens if tok.special]
    cfg = config or _default_config(
        side,
        lowercase=desc.lowercase,
        max_length=desc.max_length or desc.fixed_length,
        padding_side=desc.padding_side,
        truncation_side=desc.truncation_side,
        fixed_padding=desc.fixed_padding,
    )

    match kind:
        case "wordpiece":
            vocab = Vocabulary.from_mapping(
                _vocab_mapping(desc, path), slots, extra_special=extra
            )
            add_bos, add_eos = _descriptor_wrapping(desc, side, default=True)
            return WordPieceTokenizer(
                vocab,
                cfg,
                continuing_subword_prefix=desc.model.get("continuing_subword_prefix")
                or "##",
                max_input_chars_per_word=desc.model.get("max_input_chars_per_word")
                or 100,
                strip_accents=desc.strip_accents,
                add_bos=add_bos,
                add_eos=add_eos,
            )
        case "bpe":
            vocab = Vocabulary.from_mapping(
                _vocab_mapping(desc, path), slots, extra_special=extra
            )
            try:
                merges = MergeTable.from_descriptor(desc.model.get("merges") or [])
            except VocabularyLoadError as e:
                raise VocabularyLoadError(str(e).strip(), path=str(path)) from e
            if desc.metaspace:
                log.warning(
                    "Metaspace pre-tokenizer on a BPE model is not supported, "
                    "splitting with the regex pattern instead"
                )
            add_bos, add_eos = _descriptor_wrapping(
                desc, side, default=_has_distinct_wrapping(vocab)
            )
            return BPETokenizer(
                vocab,
                merges,
                cfg,
                pattern=desc.split_pattern,
                byte_level=desc.byte_level,
                add_prefix_space=desc.add_prefix_space,
                end_of_word_suffix=desc.model.get("end_of_word_suffix") or None,
                add_bos=add_bos,
                add_eos=add_eos,
            )
        case _:
            pieces, scores = _unigram_table(desc, path)
            unk_id = desc.model.get("unk_id")
            if isinstance(unk_id, int) and not isinstance(unk_id, bool):
                slots["unk"] = unk_id
            vocab = Vocabulary.from_mapping(
                _with_added_tokens(
                    {piece: idx for idx, piece in enumerate(pieces)},
                    desc.added_tokens,
                    path,
                ),
                slots,
                extra_special=extra,
            )
            # added tokens beyond the piece table score like unseen pieces
            scores = scores + [0.0] * (len(vocab) - len(scores))
            add_bos, add_eos = _descriptor_wrapping(desc, side, default=True)
            return UnigramTokenizer(
                vocab,
                scores,
                cfg,
                add_dummy_prefix=desc.metaspace_prefix,
                byte_fallback=bool(desc.model.get("byte_fallback")),
                add_bos=add_bos,
                add_eos=add_eos,
            )


def _vocab_mapping(desc: Descriptor, path: Path) -> dict[str, object]:
    vocab = desc.model.get("vocab")
    if not isinstance(vocab, dict):
        raise VocabularyLoadError(
            f"{desc.model_type} model vocab must be a token -> id object", path=str(path)
        )
    return _with_added_tokens(vocab, desc.added_tokens, path)


def _unigram_table(desc: Descriptor, path: Path) -> tuple[list[str], list[float]]:
    entries = desc.model.get("vocab")
    if not isinstance(entries, list):
        raise VocabularyLoadError(
            "Unigram model vocab must be a list of [piece, score] pairs", path=str(path)
        )
    pieces: list[str] = []
    scores: list[float] = []
    seen: set[str] = set()
    for idx, entry in enumerate(entries):
        if (
            not isinstance(entry, list)
            or len(entry) != 2
            or not isinstance(entry[0], str)
            or isinstance(entry[1], bool)
            or not isinstance(entry[1], (int, float))
        ):
            raise VocabularyLoadError(
                f"malformed piece entry {entry!r}", path=str(path), line=idx
            )
        if entry[0] in seen:
            raise VocabularyLoadError("duplicate piece", path=str(path), token=entry[0])
        seen.add(entry[0])
        pieces.append(entry[0])
        scores.append(float(entry[1]))
    return pieces, scores


def _descriptor_wrapping(
    desc: Descriptor, side: _SideInfo, *, default: bool
) -> tuple[bool, bool]:
    if desc.wrapping is None:
        return _wrapping_flags(side, default)
    start, end = desc.wrapping
    return start is not None, end is not None


def _build_from_bpe_files(
    directory: Path, side: _SideInfo, config: TokenizerConfig | None
) -> Tokenizer:
    vocab_map = read_vocab_map(directory / VOCAB_JSON_FILE)
    merges = read_merges(directory / MERGES_FILE)
    vocab = Vocabulary.from_mapping(vocab_map, _slot_specs(BPETokenizer, side))

    # CLIP-style vocabularies mark word ends instead of leading spaces
    clip_style = any(tok.endswith(CLIP_SUFFIX) for tok in vocab_map)
    if clip_style:
        log.debug(f"vocabulary uses the {CLIP_SUFFIX!r} end-of-word suffix")

    cfg = config or _default_config(
        side,
        lowercase_default=clip_style,
        max_length=CLIP_MAX_LENGTH if clip_style and side.max_length is None else None,
        fixed_padding=clip_style,
    )
    add_bos, add_eos = _wrapping_flags(side, _has_distinct_wrapping(vocab))
    return BPETokenizer(
        vocab,
        merges,
        cfg,
        pattern=TokenPattern.CLIP.value if clip_style else None,
        end_of_word_suffix=CLIP_SUFFIX if clip_style else None,
        add_bos=add_bos,
        add_eos=add_eos,
    )


def _build_from_piece_model(
    directory: Path, side: _SideInfo, config: TokenizerConfig | None
) -> Tokenizer:
    path = _find_piece_model(directory)
    assert path is not None
    model = read_piece_model(path)

    slots: dict[str, SlotSpec] = {
        "unk": model.unk_id,
        "pad": model.pad_id,
        "bos": model.bos_id,
        "eos": model.eos_id,
        "mask": UnigramTokenizer.DEFAULT_SPECIAL_TOKENS["mask"],
    }
    vocab = Vocabulary(model.pieces, slots, extra_special=model.control_ids)
    add_bos, add_eos = _wrapping_flags(side, True)
    return UnigramTokenizer(
        vocab,
        model.scores,
        config or _default_config(side),
        byte_fallback=model.byte_fallback,
        add_bos=add_bos,
        add_eos=add_eos,
    )


def _build_from_vocab_txt(
    directory: Path, side: _SideInfo, config: TokenizerConfig | None
) -> Tokenizer:
    lines = read_vocab_lines(directory / VOCAB_TXT_FILE)
    vocab = Vocabulary.from_lines(lines, _slot_specs(WordPieceTokenizer, side))
    # bare vocab.txt checkpoints are overwhelmingly uncased
    cfg = config or _default_config(side, lowercase_default=True)
    add_bos, add_eos = _wrapping_flags(side, True)
    return WordPieceTokenizer(vocab, cfg, add_bos=add_bos, add_eos=add_eos)


_FORMAT_BUILDERS: Final[dict[TokenizerFormat, _Builder]] = {
    TokenizerFormat.DESCRIPTOR: _build_from_descriptor,
    TokenizerFormat.BPE_FILES: _build_from_bpe_files,
    TokenizerFormat.PIECE_MODEL: _build_from_piece_model,
    TokenizerFormat.WORDPIECE_VOCAB: _build_from_vocab_txt,
}


# Public entry point
# ===================================================================================


@measure_time
def load_tokenizer(
    directory: str | Path,
    config: TokenizerConfig | None = None,
    *,
    strategy: SpecialTokenStrategy | StrategyName | None = None,
) -> Tokenizer:
    """
    Build a tokenizer from the artifacts in a model directory.

    :param directory: Directory holding tokenizer artifacts, directly or in a
        ``tokenizer/`` subdirectory.
    :param config: Default options for the tokenizer. When omitted they are
        seeded from the artifacts.
    :param strategy: Default handling of special token literals in text,
        as an instance or a strategy name other than ``"custom"``.
    :returns: A WordPiece, BPE or Unigram tokenizer.
    :raises UnsupportedTokenizerFormat: If no supported artifacts are found.
    :raises VocabularyLoadError: If the artifacts are malformed.

    .. code-block:: python

        tok = load_tokenizer("models/bert-base-uncased")
        batch = tok.encode_batch(["hello world", "hi"])
    """
    root, fmt = _resolve(directory)
    log.info(f"loading {fmt.value} tokenizer from {root}")

    side = _read_side_info(root)
    tokenizer = _FORMAT_BUILDERS[fmt](root, side, config)

    if strategy is not None:
        if isinstance(strategy, str):
            strategy = get_strategy(strategy)
        tokenizer = tokenizer.with_strategy(strategy)

    log.info(f"loaded {tokenizer!r}")
    return tokenizer


__all__ = [
    "TokenizerFormat",
    "load_tokenizer",
    "detect_format",
    "list_tokenizer_types",
    "get_tokenizer_class",
]
