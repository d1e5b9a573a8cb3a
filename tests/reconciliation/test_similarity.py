"""Tests for the bigram Dice similarity used to compare training notes."""

import pytest

from reconciliation.similarity import SIMILARITY_THRESHOLD, dice_similarity, is_similar


class TestDiceSimilarity:
    """Exact values of the Dice coefficient; the 0.90 threshold depends on them."""

    def test_identical_strings(self):
        assert dice_similarity("Good session", "Good session") == 1.0

    def test_case_insensitive(self):
        assert dice_similarity("NIGHT", "night") == 1.0

    def test_known_value(self):
        """night/nacht share only the 'ht' bigram: 2*1 / (4+4)."""
        assert dice_similarity("night", "nacht") == pytest.approx(0.25)

    def test_one_bigram_differs(self):
        """abc/abd share 'ab' out of two bigrams each."""
        assert dice_similarity("abc", "abd") == pytest.approx(0.5)

    def test_repeated_bigrams_consumed_once(self):
        """'aa' in the second string can only consume one of the three 'aa' in the first."""
        assert dice_similarity("aaaa", "aa") == pytest.approx(0.5)

    def test_disjoint_strings(self):
        assert dice_similarity("abcdef", "uvwxyz") == 0.0

    def test_both_empty_are_identical(self):
        assert dice_similarity("", "") == 1.0

    def test_single_characters_equal(self):
        assert dice_similarity("a", "A") == 1.0

    @pytest.mark.parametrize("a,b", [
        ("a", "b"),
        ("", "some notes"),
        ("x", "xy"),
    ])
    def test_too_short_to_compare(self, a, b):
        """A string without bigrams scores 0 unless it equals the other."""
        assert dice_similarity(a, b) == 0.0

    def test_symmetric(self):
        a = "Needs work on phraseology"
        b = "Need work on phraseology!"
        assert dice_similarity(a, b) == pytest.approx(dice_similarity(b, a))


class TestIsSimilar:
    """Boundary behaviour of the 0.90 threshold."""

    def test_threshold_value(self):
        assert SIMILARITY_THRESHOLD == 0.90

    def test_exactly_at_threshold_is_similar(self):
        """9 of 10 bigrams shared: 2*9 / 20 = 0.90."""
        assert dice_similarity("abcdefghijk", "abcdefghijx") == pytest.approx(0.9)
        assert is_similar("abcdefghijk", "abcdefghijx") is True

    def test_below_threshold_is_not_similar(self):
        """8 of 10 bigrams shared: 0.80."""
        assert is_similar("abcdefghijk", "abcdefghixy") is False

    def test_custom_threshold(self):
        assert is_similar("night", "nacht", threshold=0.2) is True
