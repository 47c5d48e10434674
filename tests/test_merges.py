"""Unit tests for merge table parsing and the merge loop."""

import pytest

import subtok as stok
from subtok.merges import apply_merges


def test_from_lines_skips_header_and_blanks():
    """The #version header and blank lines are not rules."""
    table = stok.MergeTable.from_lines(["#version: 0.2", "a b", "", "ab c", ""])
    assert list(table) == [("a", "b"), ("ab", "c")]
    assert table.rank(("ab", "c")) == 1
    assert table.rank(("c", "d")) is None


def test_from_lines_rejects_malformed_line():
    """Each rule line holds exactly two symbols."""
    with pytest.raises(stok.VocabularyLoadError) as exc_info:
        stok.MergeTable.from_lines(["a b", "a b c"])
    assert exc_info.value.line == 2


def test_duplicate_rule_rejected():
    """A pair may appear once."""
    with pytest.raises(stok.VocabularyLoadError):
        stok.MergeTable([("a", "b"), ("a", "b")])


def test_from_descriptor_accepts_both_forms():
    """Descriptor merges may be "a b" strings or [a, b] lists."""
    table = stok.MergeTable.from_descriptor(["a b", ["ab", "c"]])
    assert len(table) == 2
    assert ("ab", "c") in table


def test_from_descriptor_rejects_bad_entry():
    """Entries that are not two symbols are rejected."""
    with pytest.raises(stok.VocabularyLoadError):
        stok.MergeTable.from_descriptor([["a", "b", "c"]])
    with pytest.raises(stok.VocabularyLoadError):
        stok.MergeTable.from_descriptor([42])


def test_apply_merges_leftmost_on_tie():
    """Among equal-rank occurrences the leftmost merges first."""
    table = stok.MergeTable([("a", "a")])
    assert apply_merges(["a", "a", "a"], table) == ["aa", "a"]


def test_apply_merges_lowest_rank_first():
    """A lower-rank pair merges before a higher-rank one to its left."""
    table = stok.MergeTable([("b", "c"), ("a", "b")])
    assert apply_merges(["a", "b", "c"], table) == ["a", "bc"]


def test_apply_merges_single_symbol():
    """A single symbol is returned as is."""
    assert apply_merges(["a"], stok.MergeTable([("a", "a")])) == ["a"]
