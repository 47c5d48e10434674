"""Shared fixtures: small in-memory vocabularies and on-disk artifacts."""

import json

import pytest

import subtok as stok
from subtok._bytelevel import to_symbols


WORDPIECE_TOKENS = [
    "[PAD]",  # 0
    "[UNK]",  # 1
    "[CLS]",  # 2
    "[SEP]",  # 3
    "[MASK]",  # 4
    "hello",  # 5
    "world",  # 6
    "un",  # 7
    "##aff",  # 8
    "##able",  # 9
    "!",  # 10
    ",",  # 11
    "the",  # 12
    "##s",  # 13
    "a",  # 14
]

BPE_TOKENS = [
    "<unk>",  # 0
    "l",  # 1
    "o",  # 2
    "w",  # 3
    "e",  # 4
    "r",  # 5
    "Ġ",  # 6
    "lo",  # 7
    "low",  # 8
    "Ġl",  # 9
    "er",  # 10
    "<s>",  # 11
    "</s>",  # 12
    "<pad>",  # 13
]

BPE_MERGES = [("l", "o"), ("lo", "w"), ("Ġ", "l"), ("e", "r")]

UNIGRAM_PIECES = [
    ("<unk>", 0.0),  # 0
    ("<s>", 0.0),  # 1
    ("</s>", 0.0),  # 2
    ("▁", -2.0),  # 3
    ("▁hello", -3.0),  # 4
    ("▁he", -4.0),  # 5
    ("llo", -4.0),  # 6
    ("▁world", -3.0),  # 7
    ("h", -5.0),  # 8
    ("e", -5.0),  # 9
    ("l", -5.0),  # 10
    ("o", -5.0),  # 11
]


# In-memory tokenizers
# ---------------------------------------------------------------------------


@pytest.fixture
def wordpiece_vocab():
    """Return the WordPiece test vocabulary."""
    return stok.Vocabulary.from_lines(
        WORDPIECE_TOKENS, stok.WordPieceTokenizer.DEFAULT_SPECIAL_TOKENS
    )


@pytest.fixture
def wordpiece(wordpiece_vocab):
    """Return an uncased WordPiece tokenizer."""
    return stok.WordPieceTokenizer(
        wordpiece_vocab, stok.TokenizerConfig(lowercase=True)
    )


@pytest.fixture
def bpe():
    """Return a byte-level BPE tokenizer wrapped with <s> ... </s>."""
    vocab = stok.Vocabulary(BPE_TOKENS, stok.BPETokenizer.DEFAULT_SPECIAL_TOKENS)
    return stok.BPETokenizer(vocab, stok.MergeTable(BPE_MERGES))


@pytest.fixture
def unigram():
    """Return a Unigram tokenizer without wrapping tokens."""
    vocab = stok.Vocabulary(
        [piece for piece, _ in UNIGRAM_PIECES],
        stok.UnigramTokenizer.DEFAULT_SPECIAL_TOKENS,
    )
    return stok.UnigramTokenizer(
        vocab,
        [score for _, score in UNIGRAM_PIECES],
        stok.TokenizerConfig(add_special_tokens=False),
    )


# On-disk artifacts
# ---------------------------------------------------------------------------


def write_json(path, data):
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


@pytest.fixture
def vocab_txt_dir(tmp_path):
    """Directory holding a bare vocab.txt."""
    (tmp_path / "vocab.txt").write_text(
        "\n".join(WORDPIECE_TOKENS) + "\n", encoding="utf-8"
    )
    return tmp_path


@pytest.fixture
def bpe_files_dir(tmp_path):
    """Directory holding vocab.json and merges.txt."""
    write_json(tmp_path / "vocab.json", {tok: i for i, tok in enumerate(BPE_TOKENS)})
    lines = ["#version: 0.2"] + [f"{a} {b}" for a, b in BPE_MERGES]
    (tmp_path / "merges.txt").write_text("\n".join(lines) + "\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def clip_dir(tmp_path):
    """Directory holding a CLIP-style vocabulary with </w> word ends."""
    vocab = {
        "<|startoftext|>": 0,
        "<|endoftext|>": 1,
        "h": 2,
        "i": 3,
        "h</w>": 4,
        "i</w>": 5,
        "hi</w>": 6,
    }
    write_json(tmp_path / "vocab.json", vocab)
    (tmp_path / "merges.txt").write_text("#version: 0.2\nh i</w>\n", encoding="utf-8")
    return tmp_path


def wordpiece_descriptor():
    """Return a BERT-style tokenizer.json document."""
    return {
        "added_tokens": [
            {"id": i, "content": tok, "special": True}
            for i, tok in enumerate(WORDPIECE_TOKENS[:5])
        ],
        "normalizer": {"type": "BertNormalizer", "lowercase": True},
        "pre_tokenizer": {"type": "BertPreTokenizer"},
        "post_processor": {
            "type": "TemplateProcessing",
            "single": [
                {"SpecialToken": {"id": "[CLS]", "type_id": 0}},
                {"Sequence": {"id": "A", "type_id": 0}},
                {"SpecialToken": {"id": "[SEP]", "type_id": 0}},
            ],
        },
        "model": {
            "type": "WordPiece",
            "unk_token": "[UNK]",
            "continuing_subword_prefix": "##",
            "max_input_chars_per_word": 100,
            "vocab": {tok: i for i, tok in enumerate(WORDPIECE_TOKENS)},
        },
    }


def bpe_descriptor():
    """Return a byte-level BPE tokenizer.json document."""
    return {
        "added_tokens": [{"id": 0, "content": "<unk>", "special": True}],
        "pre_tokenizer": {"type": "ByteLevel", "add_prefix_space": False},
        "post_processor": {"type": "ByteLevel", "trim_offsets": True},
        "model": {
            "type": "BPE",
            "unk_token": "<unk>",
            "vocab": {tok: i for i, tok in enumerate(BPE_TOKENS)},
            "merges": [f"{a} {b}" for a, b in BPE_MERGES],
        },
    }


def unigram_descriptor():
    """Return a Metaspace Unigram tokenizer.json document."""
    return {
        "pre_tokenizer": {
            "type": "Metaspace",
            "replacement": "▁",
            "prepend_scheme": "always",
        },
        "model": {
            "type": "Unigram",
            "unk_id": 0,
            "vocab": [[piece, score] for piece, score in UNIGRAM_PIECES],
        },
    }


@pytest.fixture
def descriptor_dir(tmp_path):
    """Directory holding a WordPiece tokenizer.json."""
    write_json(tmp_path / "tokenizer.json", wordpiece_descriptor())
    return tmp_path


@pytest.fixture
def byte_symbols():
    """Map text to byte-level symbols."""
    return lambda text: "".join(to_symbols(text))


@pytest.fixture
def documents():
    """Return fresh tokenizer.json documents keyed by model family."""
    return {
        "wordpiece": wordpiece_descriptor(),
        "bpe": bpe_descriptor(),
        "unigram": unigram_descriptor(),
    }


@pytest.fixture
def dump_json():
    """Return a helper that writes a JSON document to a path."""
    return write_json
