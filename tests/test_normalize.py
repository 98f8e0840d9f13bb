"""
Tests for handle normalization and fuzzy matching.
"""

from gityap.normalize import handle_key, is_high_confidence_match, levenshtein_distance, normalize_handle


class TestNormalizeHandle:

    def test_strips_at_and_whitespace(self):
        assert normalize_handle("  @@durov ") == "durov"

    def test_keeps_case(self):
        assert normalize_handle("@Durov") == "Durov"
        assert handle_key("@Durov") == "durov"

    def test_empty(self):
        assert normalize_handle("@") == ""
        assert normalize_handle(None) == ""


class TestLevenshtein:

    def test_known_distances(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3
        assert levenshtein_distance("same", "same") == 0
        assert levenshtein_distance("abc", "abd") == 1

    def test_symmetric(self):
        assert levenshtein_distance("flaw", "lawn") == levenshtein_distance("lawn", "flaw") == 2


class TestHighConfidenceMatch:

    def test_exact_ignoring_case_and_at(self):
        assert is_high_confidence_match("@Durov", "durov")

    def test_prefix_within_two(self):
        assert is_high_confidence_match("durov", "durov42")
        assert is_high_confidence_match("durov42", "durov")
        assert not is_high_confidence_match("durov", "durov123")

    def test_one_edit(self):
        assert is_high_confidence_match("durov", "durav")
        assert not is_high_confidence_match("durov", "dorav")

    def test_empty_never_matches(self):
        assert not is_high_confidence_match("", "durov")
        assert not is_high_confidence_match("durov", "@")
