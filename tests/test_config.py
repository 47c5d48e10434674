"""Unit tests for TokenizerConfig validation and option enums."""

import dataclasses

import pytest

import subtok as stok


def test_defaults():
    """Defaults match the documented values."""
    cfg = stok.TokenizerConfig()
    assert cfg.max_sequence_length == 512
    assert not cfg.lowercase
    assert cfg.add_special_tokens
    assert cfg.padding_side is stok.Side.RIGHT
    assert cfg.truncation_side is stok.Side.RIGHT
    assert cfg.padding is stok.Padding.LONGEST


def test_strings_become_enums():
    """String options are converted case-insensitively."""
    cfg = stok.TokenizerConfig(padding_side="LEFT", padding="max-length")
    assert cfg.padding_side is stok.Side.LEFT
    assert cfg.padding is stok.Padding.MAX_LENGTH


@pytest.mark.parametrize("length", [0, -3, 2.5, True, "512"])
def test_invalid_max_sequence_length(length):
    """The cap must be a positive integer or None."""
    with pytest.raises(stok.ConfigError):
        stok.TokenizerConfig(max_sequence_length=length)


def test_no_cap_allowed():
    """None disables truncation."""
    assert stok.TokenizerConfig(max_sequence_length=None).max_sequence_length is None


def test_invalid_side():
    """Unknown sides list the valid ones."""
    with pytest.raises(stok.ConfigError) as exc_info:
        stok.TokenizerConfig(padding_side="middle")
    assert exc_info.value.available == ["left", "right"]


def test_invalid_padding():
    """Unknown padding policies are rejected."""
    with pytest.raises(stok.ConfigError):
        stok.TokenizerConfig(padding="bucket")


def test_max_length_padding_needs_cap():
    """max_length padding without a cap is contradictory."""
    with pytest.raises(stok.ConfigError):
        stok.TokenizerConfig(max_sequence_length=None, padding="max_length")


def test_config_is_frozen():
    """Configs cannot be mutated after construction."""
    cfg = stok.TokenizerConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.lowercase = True


def test_per_call_override(wordpiece):
    """A config passed to encode overrides the tokenizer default."""
    cased = stok.TokenizerConfig(lowercase=False)
    assert wordpiece.encode("Hello", cased).ids == (2, 1, 3)
    assert wordpiece.encode("Hello").ids == (2, 5, 3)
