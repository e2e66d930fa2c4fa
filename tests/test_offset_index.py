"""
Tests for TextBuffer and the text offset index

Author: Engie contributors | 2025-06-10
"""

import pytest

from engie_core.offset_index import find_all, resolve_best
from engie_core.text_buffer import TextBuffer, TextRange


class TestTextRange:
    """Tests for TextRange."""

    def test_length(self):
        """Test half-open length."""
        assert len(TextRange(2, 9)) == 7
        assert len(TextRange(4, 4)) == 0

    def test_invalid_range_rejected(self):
        """Test negative start and reversed bounds raise."""
        with pytest.raises(ValueError):
            TextRange(-1, 3)
        with pytest.raises(ValueError):
            TextRange(5, 4)

    def test_overlaps(self):
        """Test adjacent ranges do not overlap."""
        assert TextRange(0, 5).overlaps(TextRange(4, 8))
        assert not TextRange(0, 5).overlaps(TextRange(5, 8))
        assert not TextRange(5, 8).overlaps(TextRange(0, 5))


class TestTextBuffer:
    """Tests for TextBuffer snapshots."""

    def test_with_text_bumps_version(self):
        """Test every new snapshot gets the next version."""
        buf = TextBuffer("abc")
        nxt = buf.with_text("abcd")
        assert nxt.version == buf.version + 1
        assert buf.text == "abc"

    def test_replace(self):
        """Test replacing a range."""
        buf = TextBuffer("I recieve emails.", version=4)
        nxt = buf.replace(TextRange(2, 9), "receive")
        assert nxt.text == "I receive emails."
        assert nxt.version == 5

    def test_replace_outside_buffer(self):
        """Test replacing past the end raises."""
        with pytest.raises(ValueError):
            TextBuffer("abc").replace(TextRange(2, 10), "x")

    def test_slice(self):
        """Test slicing by range."""
        assert TextBuffer("hello world").slice(TextRange(6, 11)) == "world"


class TestFindAll:
    """Tests for find_all."""

    def test_single_occurrence(self):
        """Test a fragment found once."""
        assert find_all(TextBuffer("I recieve emails."), "recieve") == [TextRange(2, 9)]

    def test_every_occurrence_left_to_right(self):
        """Test all occurrences are returned in order."""
        ranges = find_all("the cat and the dog", "the")
        assert ranges == [TextRange(0, 3), TextRange(12, 15)]

    def test_occurrences_do_not_overlap(self):
        """Test scanning resumes after each match."""
        assert find_all("aaaa", "aa") == [TextRange(0, 2), TextRange(2, 4)]

    def test_case_sensitive(self):
        """Test matching is exact."""
        assert find_all("Recieve recieve", "recieve") == [TextRange(8, 15)]

    def test_not_found(self):
        """Test a missing fragment yields no ranges."""
        assert find_all("hello", "world") == []

    def test_empty_fragment(self):
        """Test the empty fragment never matches."""
        assert find_all("hello", "") == []

    def test_whitespace_fragment(self):
        """Test a whitespace-only fragment never matches."""
        assert find_all("a  b", "  ") == []

    def test_fragment_longer_than_text(self):
        """Test an over-long fragment never matches."""
        assert find_all("abc", "abcd") == []

    def test_empty_text(self):
        """Test searching an empty buffer."""
        assert find_all(TextBuffer(""), "a") == []


class TestResolveBest:
    """Tests for resolve_best."""

    def test_no_hint_takes_first(self):
        """Test the first occurrence wins without a hint."""
        assert resolve_best("the cat and the dog", "the") == TextRange(0, 3)

    def test_hint_takes_nearest(self):
        """Test the occurrence nearest the hint wins."""
        assert resolve_best("the cat and the dog", "the", hint=10) == TextRange(12, 15)

    def test_equal_distance_takes_earlier(self):
        """Test ties go to the earlier occurrence."""
        # occurrences start at 0 and 10, hint at 5
        assert resolve_best("abc.......abc", "abc", hint=5) == TextRange(0, 3)

    def test_missing_fragment(self):
        """Test None when nothing matches."""
        assert resolve_best("hello", "world", hint=2) is None

    def test_hint_past_end(self):
        """Test a hint beyond the text still resolves."""
        assert resolve_best("ab ab", "ab", hint=100) == TextRange(3, 5)
