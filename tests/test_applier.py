"""
Tests for applying suggestions and shifting anchors

Author: Engie contributors | 2025-05-20
"""

import pytest

from conftest import make_suggestion
from engie_core.anchors import anchor
from engie_core.applier import apply_suggestion, shift_anchors
from engie_core.errors import AnchorMismatch
from engie_core.suggestions import Anchor, SuggestionKind, SuggestionStatus
from engie_core.text_buffer import TextBuffer, TextRange


class TestApplySuggestion:
    """Tests for apply_suggestion."""

    def test_same_length_replacement(self, recieve_buffer, recieve_suggestion):
        """Test 'recieve' -> 'receive' has delta 0."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        result = apply_suggestion(recieve_buffer, placed)

        assert result.new_buffer.text == "I receive emails."
        assert result.new_buffer.version == recieve_buffer.version + 1
        assert result.delta == 0
        assert result.applied_range == TextRange(2, 9)
        assert result.suggestion.status == SuggestionStatus.APPLIED

    def test_growing_replacement(self):
        """Test 'ts' -> "it's" grows the text by two."""
        buf = TextBuffer("ts a test")
        placed = anchor(make_suggestion("ts", "it's", SuggestionKind.GRAMMAR), buf)
        result = apply_suggestion(buf, placed)

        assert result.new_buffer.text == "it's a test"
        assert result.delta == 2
        assert result.replacement_range == TextRange(0, 4)
        assert result.new_buffer.slice(result.replacement_range) == "it's"

    def test_shrinking_replacement(self):
        """Test removing a filler word."""
        buf = TextBuffer("It is very good.")
        placed = anchor(make_suggestion("very ", "", SuggestionKind.STYLE), buf)
        result = apply_suggestion(buf, placed)
        assert result.new_buffer.text == "It is good."
        assert result.delta == -5

    def test_stale_anchor_raises_without_mutation(self, recieve_buffer, recieve_suggestion):
        """Test a changed fragment raises AnchorMismatch."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        edited = recieve_buffer.with_text("I receive emails.")

        with pytest.raises(AnchorMismatch) as exc:
            apply_suggestion(edited, placed)

        assert exc.value.expected == "recieve"
        assert exc.value.found == "receive"
        assert edited.text == "I receive emails."

    def test_anchor_past_end_raises(self, recieve_buffer, recieve_suggestion):
        """Test an anchor beyond a shrunken buffer raises."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        with pytest.raises(AnchorMismatch) as exc:
            apply_suggestion(TextBuffer("I", version=5), placed)
        assert exc.value.found is None

    def test_unanchored_raises(self, recieve_buffer, recieve_suggestion):
        """Test applying an unanchored suggestion raises."""
        with pytest.raises(AnchorMismatch):
            apply_suggestion(recieve_buffer, recieve_suggestion)


class TestShiftAnchors:
    """Tests for shift_anchors."""

    def _anchored(self, start, end, id, original="word"):
        return make_suggestion(original, "x", id=id).with_anchor(Anchor(start, end, 1))

    def test_anchor_after_moves_by_delta(self):
        """Test an anchor at [10,14) after a +2 edit at [2,5) moves to [12,16)."""
        later = self._anchored(10, 14, "later")
        shifted = shift_anchors([later], TextRange(2, 5), 2)
        assert shifted[0].anchor.range == TextRange(12, 16)

    def test_anchor_before_stays(self):
        """Test anchors ending before the applied range keep their offsets."""
        earlier = self._anchored(0, 4, "earlier")
        shifted = shift_anchors([earlier], TextRange(10, 12), 5)
        assert shifted[0].anchor.range == TextRange(0, 4)

    def test_adjacent_anchors_survive(self):
        """Test anchors touching the applied range are not invalidated."""
        left = self._anchored(0, 5, "left")
        right = self._anchored(8, 12, "right")
        shifted = shift_anchors([left, right], TextRange(5, 8), -1)
        assert shifted[0].anchor.range == TextRange(0, 5)
        assert shifted[1].anchor.range == TextRange(7, 11)

    def test_overlapping_anchor_invalidated(self):
        """Test overlapping anchors are invalidated, never shifted."""
        overlapping = self._anchored(3, 9, "overlap")
        shifted = shift_anchors([overlapping], TextRange(5, 7), 4)
        assert shifted[0].status == SuggestionStatus.INVALIDATED
        assert shifted[0].anchor is None

    def test_contained_anchor_invalidated(self):
        """Test an anchor inside the applied range is invalidated."""
        inner = self._anchored(4, 6, "inner")
        shifted = shift_anchors([inner], TextRange(2, 10), -3)
        assert shifted[0].status == SuggestionStatus.INVALIDATED

    def test_restamps_version(self):
        """Test surviving anchors take the new buffer version."""
        s = self._anchored(10, 14, "later")
        shifted = shift_anchors([s], TextRange(0, 2), 0, buffer_version=7)
        assert shifted[0].anchor.buffer_version == 7

    def test_order_preserved(self):
        """Test output order matches input order."""
        items = [self._anchored(20, 24, "c"), self._anchored(0, 2, "a"), self._anchored(10, 12, "b")]
        shifted = shift_anchors(items, TextRange(5, 6), 1)
        assert [s.id for s in shifted] == ["c", "a", "b"]

    def test_shifted_anchor_points_at_same_text(self):
        """Test the 'ts a test' scenario end to end."""
        buf = TextBuffer("ts a test recieve")
        first = anchor(make_suggestion("ts", "it's", SuggestionKind.GRAMMAR, id="g"), buf)
        second = anchor(make_suggestion("recieve", "receive", id="s"), buf)

        result = apply_suggestion(buf, first)
        (moved,) = shift_anchors([second], result.applied_range, result.delta,
                                 buffer_version=result.new_buffer.version)

        assert result.new_buffer.slice(moved.anchor.range) == "recieve"
        assert apply_suggestion(result.new_buffer, moved).new_buffer.text == "it's a test receive"
