"""
Readers for on-disk tokenizer artifacts.

Every reader turns I/O and parse failures into ``VocabularyLoadError`` with
the offending path attached.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import VocabularyLoadError
from .merges import MergeTable
from .types import Token

log = logging.getLogger(__name__)


def read_vocab_lines(path: Path) -> list[str]:
    """Read a line-per-token vocabulary; the final empty line is not a token."""
    text = _read_text(path)
    # str.splitlines would also split on \x1c, \x85 and friends, which are tokens
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    log.debug(f"read {len(lines)} vocabulary lines from {path}")
    return lines


def read_json(path: Path) -> object:
    """Read and parse a JSON document."""
    try:
        return json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise VocabularyLoadError(
            f"malformed JSON: {e.msg} at line {e.lineno}", path=str(path)
        ) from e


def read_vocab_map(path: Path) -> dict[str, object]:
    """Read a token -> id JSON object."""
    data = read_json(path)
    if not isinstance(data, dict):
        raise VocabularyLoadError(
            f"expected a JSON object of token ids, got {type(data).__name__}",
            path=str(path),
        )
    log.debug(f"read {len(data)} vocabulary entries from {path}")
    return data


def read_merges(path: Path) -> MergeTable:
    """Read a ``merges.txt`` file."""
    text = _read_text(path)
    try:
        return MergeTable.from_lines(text.split("\n"))
    except VocabularyLoadError as e:
        raise VocabularyLoadError(str(e).strip(), path=str(path)) from e


@dataclass(frozen=True)
class PieceModel:
    """Piece table read from a SentencePiece model file."""

    pieces: list[str]
    scores: list[float]
    unk_id: Token
    bos_id: Token | None = None
    eos_id: Token | None = None
    pad_id: Token | None = None
    control_ids: frozenset[Token] = field(default_factory=frozenset)
    byte_fallback: bool = False


def read_piece_model(path: Path) -> PieceModel:
    """
    Read pieces and scores from a SentencePiece ``.model`` file.

    :raises VocabularyLoadError: If the file cannot be parsed.
    """
    import sentencepiece as spm

    if not path.is_file():
        raise VocabularyLoadError("piece model file does not exist", path=str(path))

    try:
        sp = spm.SentencePieceProcessor(model_file=str(path))
    except (OSError, RuntimeError) as e:
        raise VocabularyLoadError(f"cannot parse piece model: {e}", path=str(path)) from e

    size = sp.get_piece_size()
    pieces = [sp.id_to_piece(i) for i in range(size)]
    scores = [float(sp.get_score(i)) for i in range(size)]
    control_ids = frozenset(i for i in range(size) if sp.is_control(i))
    byte_fallback = any(sp.is_byte(i) for i in range(size))

    def optional(tok: int) -> Token | None:
        # sentencepiece reports disabled ids as -1
        return tok if tok >= 0 else None

    log.debug(f"read {size} pieces from {path}")
    return PieceModel(
        pieces=pieces,
        scores=scores,
        unk_id=sp.unk_id(),
        bos_id=optional(sp.bos_id()),
        eos_id=optional(sp.eos_id()),
        pad_id=optional(sp.pad_id()),
        control_ids=control_ids,
        byte_fallback=byte_fallback,
    )


def _read_text(path: Path) -> str:
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError as e:
        raise VocabularyLoadError("file does not exist", path=str(path)) from e
    except (OSError, UnicodeDecodeError) as e:
        raise VocabularyLoadError(f"cannot read file: {e}", path=str(path)) from e
