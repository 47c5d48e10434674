"""Unit tests for WordPiece normalization, greedy segmentation and decoding."""

import pytest

import subtok as stok


# Segmentation
# ---------------------------------------------------------------------------


def test_greedy_longest_match_with_prefix(wordpiece):
    """A word splits into the longest pieces, continuations carry ##."""
    assert wordpiece.tokenize("unaffable") == ["un", "##aff", "##able"]
    assert wordpiece.encode("unaffable").ids == (2, 7, 8, 9, 3)


def test_punctuation_splits_into_own_words(wordpiece):
    """Punctuation becomes a separate coarse word."""
    assert wordpiece.encode("Hello, World!").ids == (2, 5, 11, 6, 10, 3)


def test_unknown_word(wordpiece):
    """A word with no matching prefix becomes a single unknown token."""
    assert wordpiece.encode("hello xyz").ids == (2, 5, 1, 3)


def test_partial_match_falls_back_to_unknown(wordpiece):
    """A word that fails mid-way becomes one unknown token, not a partial split."""
    assert wordpiece.tokenize("unx") == ["[UNK]"]


def test_word_longer_than_limit_is_unknown(wordpiece_vocab):
    """Words above max_input_chars_per_word become unknown."""
    tok = stok.WordPieceTokenizer(
        wordpiece_vocab,
        stok.TokenizerConfig(lowercase=True),
        max_input_chars_per_word=5,
    )
    assert tok.tokenize("unaffable") == ["[UNK]"]
    assert tok.tokenize("hello") == ["hello"]


def test_cjk_characters_stand_alone(wordpiece):
    """Each CJK ideograph is its own coarse word."""
    assert wordpiece.tokenize("你好") == ["[UNK]", "[UNK]"]


def test_empty_text_gives_only_wrapping(wordpiece):
    """Empty input encodes to [CLS] [SEP]."""
    enc = wordpiece.encode("")
    assert enc.ids == (2, 3)
    assert enc.special_tokens_mask == (1, 1)


# Normalization
# ---------------------------------------------------------------------------


def test_lowercase_strips_accents(wordpiece):
    """Lowercasing also removes combining marks."""
    assert wordpiece.tokenize("Héllo") == ["hello"]


def test_cased_tokenizer_keeps_case(wordpiece_vocab):
    """Without lowercasing, capitalized words miss the uncased vocabulary."""
    tok = stok.WordPieceTokenizer(wordpiece_vocab)
    assert tok.tokenize("Hello") == ["[UNK]"]


def test_explicit_strip_accents_without_lowercase(wordpiece_vocab):
    """strip_accents=True applies even when text is not lowercased."""
    tok = stok.WordPieceTokenizer(wordpiece_vocab, strip_accents=True)
    assert tok.tokenize("hé") == ["[UNK]"]
    assert tok.tokenize("wörld") == ["world"]


def test_control_characters_and_whitespace(wordpiece):
    """Tabs act as spaces and control characters are removed."""
    assert wordpiece.tokenize("hello\tworld") == ["hello", "world"]
    assert wordpiece.tokenize("hel\x00lo") == ["hello"]


# Decoding
# ---------------------------------------------------------------------------


def test_decode_joins_continuations(wordpiece):
    """Continuation pieces join without a space, special tokens are skipped."""
    assert wordpiece.decode([2, 7, 8, 9, 3]) == "unaffable"


def test_decode_keeps_special_tokens_on_request(wordpiece):
    """skip_special_tokens=False emits special tokens as words."""
    assert wordpiece.decode([2, 5, 6, 3], skip_special_tokens=False) == (
        "[CLS] hello world [SEP]"
    )


def test_decode_spaces_between_words(wordpiece):
    """Every non-continuation token after the first gets one leading space."""
    assert wordpiece.decode([5, 11, 6, 10]) == "hello , world !"


def test_decode_roundtrip_is_stable(wordpiece):
    """A second encode/decode cycle reproduces the first decoded text."""
    once = wordpiece.decode(wordpiece.encode("Hello, world! unaffable").ids)
    assert once == "hello , world ! unaffable"
    assert wordpiece.decode(wordpiece.encode(once).ids) == once


def test_encode_is_deterministic(wordpiece):
    """Encoding the same text twice gives the same ids."""
    text = "Hello, world! unaffable"
    assert wordpiece.encode(text).ids == wordpiece.encode(text).ids


def test_decode_invalid_id_raises(wordpiece):
    """Ids outside the vocabulary raise InvalidId."""
    with pytest.raises(stok.InvalidId):
        wordpiece.decode([5, 99])
    with pytest.raises(stok.InvalidId):
        wordpiece.decode([-1])


def test_decode_batch(wordpiece):
    """decode_batch decodes each row independently."""
    assert wordpiece.decode_batch([[2, 5, 3], [6]]) == ["hello", "world"]


# Truncation and wrapping
# ---------------------------------------------------------------------------


def test_truncation_right_keeps_wrapping(wordpiece):
    """Right truncation drops trailing content, never [CLS]/[SEP]."""
    cfg = stok.TokenizerConfig(max_sequence_length=4, lowercase=True)
    enc = wordpiece.encode("hello, world!", cfg)
    assert enc.ids == (2, 5, 11, 3)
    assert enc.num_truncated == 2


def test_truncation_left(wordpiece):
    """Left truncation drops leading content."""
    cfg = stok.TokenizerConfig(
        max_sequence_length=4, lowercase=True, truncation_side="left"
    )
    assert wordpiece.encode("hello, world!", cfg).ids == (2, 6, 10, 3)


def test_cap_below_wrapping_raises(wordpiece):
    """A cap smaller than the number of wrapping tokens is a config error."""
    cfg = stok.TokenizerConfig(max_sequence_length=1)
    with pytest.raises(stok.ConfigError):
        wordpiece.encode("hello", cfg)


def test_no_special_tokens(wordpiece):
    """add_special_tokens=False leaves content unwrapped."""
    cfg = stok.TokenizerConfig(lowercase=True, add_special_tokens=False)
    assert wordpiece.encode("hello world", cfg).ids == (5, 6)
    assert wordpiece.num_special_tokens_to_add(cfg) == 0


def test_count_tokens(wordpiece):
    """count_tokens matches the encoded length, wrapping included."""
    assert wordpiece.count_tokens("hello world") == 4


def test_special_ids(wordpiece):
    """Slot ids resolve to the BERT special tokens."""
    assert wordpiece.unk_id == 1
    assert wordpiece.pad_id == 0
    assert wordpiece.bos_id == 2
    assert wordpiece.eos_id == 3
    assert wordpiece.mask_id == 4
    assert wordpiece.stop_token_ids == (3,)


def test_with_config_shares_tables(wordpiece):
    """with_config returns a tokenizer with new defaults and the same vocab."""
    cased = wordpiece.with_config(stok.TokenizerConfig(lowercase=False))
    assert cased.vocab is wordpiece.vocab
    assert cased.tokenize("Hello") == ["[UNK]"]
    assert wordpiece.tokenize("Hello") == ["hello"]
