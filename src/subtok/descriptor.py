"""
Interpretation of the unified ``tokenizer.json`` descriptor.

Only the parts that affect the three supported families are read: the model
block, added tokens, normalizer casing flags, pre-tokenizer split settings,
the post-processor's wrapping tokens, and padding/truncation defaults.
"""

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import VocabularyLoadError
from .types import Token

log = logging.getLogger(__name__)

# descriptor model.type -> tokenizer TOKENIZER_TYPE
MODEL_TYPES = {"WordPiece": "wordpiece", "BPE": "bpe", "Unigram": "unigram"}

_SEQUENCE_KEYS = ("normalizers", "pretokenizers", "processors", "decoders")


@dataclass(frozen=True)
class AddedToken:
    id: Token
    content: str
    special: bool = False


@dataclass(frozen=True)
class Descriptor:
    """Options extracted from a parsed ``tokenizer.json``."""

    model_type: str
    model: Mapping[str, Any]
    added_tokens: tuple[AddedToken, ...] = ()
    lowercase: bool | None = None
    strip_accents: bool | None = None
    split_pattern: str | None = None
    byte_level: bool = False
    add_prefix_space: bool = False
    metaspace: bool = False
    metaspace_prefix: bool = True
    # (start, end) wrapping tokens; None when the post-processor says nothing
    wrapping: tuple[str | None, str | None] | None = None
    pad_token: str | None = None
    padding_side: str | None = None
    fixed_padding: bool = False
    # width of "Fixed" padding, when the descriptor gives one
    fixed_length: int | None = None
    max_length: int | None = None
    truncation_side: str | None = None


def parse_descriptor(data: object, path: str | None = None) -> Descriptor:
    """
    Extract tokenizer options from a parsed descriptor document.

    :raises VocabularyLoadError: If the document has no usable model block.
    """
    if not isinstance(data, dict):
        raise VocabularyLoadError("descriptor must be a JSON object", path=path)
    model = data.get("model")
    if not isinstance(model, dict):
        raise VocabularyLoadError("descriptor has no model block", path=path)

    model_type = model.get("type")
    if model_type is None:
        model_type = _infer_model_type(model)
        log.debug(f"descriptor model type not set, inferred {model_type!r}")

    added = tuple(_parse_added_tokens(data.get("added_tokens") or [], path))

    lowercase: bool | None = None
    strip_accents: bool | None = None
    for norm in _components(data.get("normalizer")):
        kind = norm.get("type")
        if kind == "BertNormalizer":
            lowercase = bool(norm.get("lowercase", True))
            if norm.get("strip_accents") is not None:
                strip_accents = bool(norm["strip_accents"])
        elif kind == "Lowercase":
            lowercase = True
        elif kind == "StripAccents":
            strip_accents = True

    split_pattern: str | None = None
    byte_level = False
    add_prefix_space = False
    metaspace = False
    metaspace_prefix = True
    for pre in _components(data.get("pre_tokenizer")):
        kind = pre.get("type")
        if kind == "Split":
            pattern = pre.get("pattern") or {}
            if "Regex" in pattern:
                split_pattern = pattern["Regex"]
            else:
                log.warning(f"ignoring non-regex split pattern {pattern!r}")
        elif kind == "ByteLevel":
            byte_level = True
            add_prefix_space = bool(pre.get("add_prefix_space", False))
        elif kind == "Metaspace":
            metaspace = True
            scheme = pre.get("prepend_scheme")
            if scheme is not None:
                metaspace_prefix = scheme != "never"
            else:
                metaspace_prefix = bool(pre.get("add_prefix_space", True))

    wrapping = _parse_post_processor(data.get("post_processor"))

    padding = data.get("padding") or {}
    truncation = data.get("truncation") or {}
    max_length = truncation.get("max_length")
    strategy = padding.get("strategy")
    fixed = strategy.get("Fixed") if isinstance(strategy, dict) else None

    return Descriptor(
        model_type=model_type,
        model=model,
        added_tokens=added,
        lowercase=lowercase,
        strip_accents=strip_accents,
        split_pattern=split_pattern,
        byte_level=byte_level,
        add_prefix_space=add_prefix_space,
        metaspace=metaspace,
        metaspace_prefix=metaspace_prefix,
        wrapping=wrapping,
        pad_token=padding.get("pad_token"),
        padding_side=_direction(padding.get("direction")),
        fixed_padding=fixed is not None,
        fixed_length=fixed if type(fixed) is int and fixed > 0 else None,
        max_length=max_length if isinstance(max_length, int) else None,
        truncation_side=_direction(truncation.get("direction")),
    )


def _infer_model_type(model: Mapping[str, Any]) -> str:
    # older descriptors omit model.type
    if "merges" in model:
        return "BPE"
    if isinstance(model.get("vocab"), list):
        return "Unigram"
    return "WordPiece"


def _components(node: object) -> Iterator[Mapping[str, Any]]:
    """Yield components of a normalizer/pre-tokenizer/processor, flattening sequences."""
    if not isinstance(node, dict):
        return
    if node.get("type") == "Sequence":
        for key in _SEQUENCE_KEYS:
            for child in node.get(key) or []:
                yield from _components(child)
    else:
        yield node


def _parse_added_tokens(items: list[object], path: str | None) -> Iterator[AddedToken]:
    for item in items:
        if not isinstance(item, dict) or "id" not in item or "content" not in item:
            raise VocabularyLoadError(f"malformed added token {item!r}", path=path)
        tok = item["id"]
        if isinstance(tok, bool) or not isinstance(tok, int):
            raise VocabularyLoadError(
                f"non-integer id {tok!r}", path=path, token=str(item["content"])
            )
        yield AddedToken(id=tok, content=item["content"], special=bool(item.get("special")))


def _parse_post_processor(node: object) -> tuple[str | None, str | None] | None:
    """Return the tokens a post-processor places around a single sequence."""
    if not isinstance(node, dict):
        return None
    components = list(_components(node))
    for proc in components:
        kind = proc.get("type")
        if kind in ("BertProcessing", "RobertaProcessing"):
            cls_tok = (proc.get("cls") or [None])[0]
            sep_tok = (proc.get("sep") or [None])[0]
            return cls_tok, sep_tok
        if kind == "TemplateProcessing":
            return _template_wrapping(proc.get("single") or [])
    # byte-level offset trimming only: nothing wraps the sequence
    if any(proc.get("type") == "ByteLevel" for proc in components):
        return None, None
    return None


def _template_wrapping(single: list[Mapping[str, Any]]) -> tuple[str | None, str | None]:
    start: str | None = None
    end: str | None = None
    seen_sequence = False
    for piece in single:
        if "Sequence" in piece:
            seen_sequence = True
        elif "SpecialToken" in piece:
            tok = piece["SpecialToken"].get("id")
            if seen_sequence:
                end = end or tok
            else:
                start = tok
    return start, end


def _direction(value: object) -> str | None:
    if isinstance(value, str):
        return value.lower()
    return None
