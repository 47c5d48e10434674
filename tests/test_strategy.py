"""Unit tests for special token strategies during encoding."""

import pytest

import subtok as stok


@pytest.fixture
def no_wrap():
    """Config without wrapping tokens."""
    return stok.TokenizerConfig(lowercase=True, add_special_tokens=False)


def test_default_treats_literals_as_text(wordpiece, no_wrap):
    """Without a strategy special literals are ordinary text."""
    assert wordpiece.encode("hello [MASK]", no_wrap).ids == (5, 1, 1, 1)


def test_allow_all(wordpiece, no_wrap):
    """The all strategy maps every special literal to its id."""
    strategy = stok.get_strategy("all")
    assert wordpiece.encode("hello [MASK] [SEP]", no_wrap, strategy).ids == (5, 4, 3)


def test_longest_literal_matches_first(no_wrap):
    """Overlapping literals resolve to the longest one."""
    vocab = stok.Vocabulary(
        ["[UNK]", "<a>", "<a><b>"], {"unk": "[UNK]"}, ["<a>", "<a><b>"]
    )
    tok = stok.WordPieceTokenizer(vocab)
    assert tok.encode("<a><b><a>", no_wrap, stok.get_strategy("all")).ids == (2, 1)


def test_allow_none_warns(wordpiece, no_wrap, caplog):
    """The none strategy encodes literals as text and logs a warning."""
    ids = wordpiece.encode("[MASK]", no_wrap, stok.get_strategy("none")).ids
    assert ids == (1, 1, 1)
    assert "special tokens found" in caplog.text


def test_none_raise(wordpiece, no_wrap):
    """The none-raise strategy rejects text with special literals."""
    with pytest.raises(stok.SpecialTokenError) as exc_info:
        wordpiece.encode("hello [MASK]", no_wrap, stok.get_strategy("none-raise"))
    assert exc_info.value.found_tokens == {"[MASK]"}


def test_none_raise_allows_clean_text(wordpiece, no_wrap):
    """Text without special literals passes none-raise."""
    strategy = stok.get_strategy("none-raise")
    assert wordpiece.encode("hello", no_wrap, strategy).ids == (5,)


def test_custom_subset(wordpiece, no_wrap):
    """The custom strategy only maps the allowed literals."""
    strategy = stok.get_strategy("custom", allowed_subset={"[MASK]"})
    assert wordpiece.encode("[MASK] [SEP]", no_wrap, strategy).ids == (4, 1, 1, 1)


def test_custom_requires_subset():
    """custom without allowed_subset is a config error."""
    with pytest.raises(stok.ConfigError):
        stok.get_strategy("custom")


def test_unknown_strategy():
    """Unknown names list the available strategies."""
    with pytest.raises(stok.ConfigError) as exc_info:
        stok.get_strategy("some")
    assert exc_info.value.available == stok.list_strategies()


def test_with_strategy_sets_default(wordpiece, no_wrap):
    """with_strategy changes the default for encode and batches."""
    tok = wordpiece.with_strategy(stok.get_strategy("all"))
    assert tok.encode("[MASK]", no_wrap).ids == (4,)
    assert tok.encode_batch(["[MASK]"], no_wrap).ids.tolist() == [[4]]
    assert wordpiece.encode("[MASK]", no_wrap).ids == (1, 1, 1)
