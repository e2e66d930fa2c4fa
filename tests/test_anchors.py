"""
Tests for suggestion anchoring and the suggestion data model

Author: Engie contributors | 2025-05-15
"""

import pytest

from conftest import make_suggestion
from engie_core.anchors import anchor, is_valid, require_anchor, text_matches
from engie_core.errors import AnchorResolutionFailure
from engie_core.suggestions import (
    Anchor,
    Severity,
    SuggestionKind,
    SuggestionSet,
    SuggestionStatus,
)
from engie_core.text_buffer import TextBuffer


class TestEnums:
    """Tests for kind and severity parsing."""

    def test_kind_case_insensitive(self):
        """Test capitalised kinds are accepted."""
        assert SuggestionKind.parse("Spelling") == SuggestionKind.SPELLING
        assert SuggestionKind.parse(" GRAMMAR ") == SuggestionKind.GRAMMAR

    def test_unknown_kind(self):
        """Test unknown kinds parse to None."""
        assert SuggestionKind.parse("tone") is None
        assert SuggestionKind.parse(3) is None

    def test_severity_synonyms(self):
        """Test error/warning/suggestion map onto high/medium/low."""
        assert Severity.parse("error") == Severity.HIGH
        assert Severity.parse("Warning") == Severity.MEDIUM
        assert Severity.parse("suggestion") == Severity.LOW
        assert Severity.parse("urgent") is None


class TestSuggestion:
    """Tests for Suggestion values."""

    def test_generated_ids_are_unique(self):
        """Test suggestions get distinct ids."""
        a = make_suggestion("teh", "the")
        b = make_suggestion("teh", "the")
        assert a.id != b.id
        assert a.id.startswith("sug-")

    def test_signature(self):
        """Test the dedup signature."""
        s = make_suggestion("teh", "the")
        assert s.signature == ("teh", "the", SuggestionKind.SPELLING)

    def test_with_anchor_sets_status(self):
        """Test anchoring moves the suggestion to ANCHORED."""
        s = make_suggestion("teh", "the").with_anchor(Anchor(0, 3, 0))
        assert s.status == SuggestionStatus.ANCHORED
        assert s.is_anchored

    def test_to_dict(self):
        """Test serialisation of an anchored suggestion."""
        s = make_suggestion("teh", "the", id="s1").with_anchor(Anchor(4, 7, 2))
        data = s.to_dict()
        assert data["id"] == "s1"
        assert data["kind"] == "spelling"
        assert data["anchor"] == {"startIndex": 4, "endIndex": 7, "bufferVersion": 2}


class TestSuggestionSet:
    """Tests for SuggestionSet."""

    def test_insertion_order_preserved(self):
        """Test display order is insertion order."""
        s = SuggestionSet([make_suggestion("a1", "b", id="x"), make_suggestion("a2", "b", id="y")])
        s = s.with_added(make_suggestion("a3", "b", id="z"))
        assert s.ids() == ["x", "y", "z"]

    def test_without_returns_new_set(self):
        """Test removal leaves the original set untouched."""
        s = SuggestionSet([make_suggestion("a1", "b", id="x")])
        t = s.without("x")
        assert "x" in s
        assert "x" not in t
        assert len(t) == 0


class TestAnchor:
    """Tests for anchor() and friends."""

    def test_anchor_first_occurrence(self, recieve_buffer, recieve_suggestion):
        """Test a fresh suggestion anchors on its fragment."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        assert placed.anchor == Anchor(2, 9, recieve_buffer.version)
        assert placed.status == SuggestionStatus.ANCHORED

    def test_anchor_uses_reported_offset(self):
        """Test the service-reported offset picks among duplicates."""
        buf = TextBuffer("teh cat and teh dog")
        placed = anchor(make_suggestion("teh", "the", hint=11), buf)
        assert placed.anchor.start_index == 12

    def test_anchor_prefers_previous_position(self):
        """Test re-anchoring stays near the previous anchor."""
        buf = TextBuffer("teh cat and teh dog", version=3)
        s = make_suggestion("teh", "the").with_anchor(Anchor(12, 15, 2))
        placed = anchor(s, buf)
        assert placed.anchor == Anchor(12, 15, 3)

    def test_anchor_failure_leaves_unanchored(self, recieve_suggestion):
        """Test a missing fragment yields no anchor."""
        placed = anchor(recieve_suggestion, TextBuffer("I receive emails."))
        assert placed.anchor is None
        assert placed.status == SuggestionStatus.PROPOSED

    def test_require_anchor_raises(self, recieve_suggestion):
        """Test require_anchor raises AnchorResolutionFailure."""
        with pytest.raises(AnchorResolutionFailure) as exc:
            require_anchor(recieve_suggestion, TextBuffer("nothing here"))
        assert exc.value.suggestion_id == "s1"
        assert exc.value.fragment == "recieve"


class TestIsValid:
    """Tests for anchor validity."""

    def test_valid_on_same_version(self, recieve_buffer, recieve_suggestion):
        """Test an anchor is valid on the version it was taken on."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        assert is_valid(placed, recieve_buffer)

    def test_valid_after_edit_elsewhere(self, recieve_buffer, recieve_suggestion):
        """Test an edit outside the range keeps the anchor valid."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        edited = recieve_buffer.with_text("I recieve emails. Often.")
        assert is_valid(placed, edited)
        assert text_matches(placed, edited)

    def test_invalid_after_edit_inside(self, recieve_buffer, recieve_suggestion):
        """Test an edit inside the range invalidates the anchor."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        edited = recieve_buffer.with_text("I receive emails.")
        assert not is_valid(placed, edited)

    def test_invalid_after_edit_before(self, recieve_buffer, recieve_suggestion):
        """Test an insertion before the range moves the text out from under the anchor."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        edited = recieve_buffer.with_text("Yesterday I recieve emails.")
        assert not is_valid(placed, edited)

    def test_invalid_when_buffer_shrinks(self, recieve_buffer, recieve_suggestion):
        """Test an anchor past the end of the buffer is invalid."""
        placed = anchor(recieve_suggestion, recieve_buffer)
        assert not is_valid(placed, recieve_buffer.with_text("I"))

    def test_unanchored_is_invalid(self, recieve_buffer, recieve_suggestion):
        """Test unanchored suggestions are never valid."""
        assert not is_valid(recieve_suggestion, recieve_buffer)
