"""Tests for name normalization and Jaro/Jaro-Winkler similarity."""

import pytest

from vaultlink.similarity import jaro, jaro_winkler, normalize


class TestNormalize:
    """Tests for normalize()."""

    def test_lowercases_and_collapses_whitespace(self):
        assert normalize("  Clare   ATTWELL \t") == "clare attwell"

    def test_strips_punctuation_but_keeps_apostrophes_and_hyphens(self):
        assert normalize("O’Brien-Smith, Jr.") == "o'brien-smith jr"

    def test_curly_double_quotes_are_removed(self):
        assert normalize("“Salmon” Habitat!") == "salmon habitat"

    @pytest.mark.parametrize(
        "value",
        ["C. Attwell", "  A . B  ", "Fisheries & Oceans", "naïve café", "x - y"],
    )
    def test_idempotent(self, value):
        once = normalize(value)
        assert normalize(once) == once

    def test_empty(self):
        assert normalize("") == ""


class TestJaro:
    """Tests for jaro()."""

    def test_identical_strings(self):
        assert jaro("attwell", "attwell") == 1.0
        assert jaro("", "") == 1.0

    def test_empty_against_non_empty(self):
        assert jaro("attwell", "") == 0.0
        assert jaro("", "attwell") == 0.0

    def test_no_common_characters(self):
        assert jaro("abc", "xyz") == 0.0

    def test_known_values(self):
        assert jaro("martha", "marhta") == pytest.approx(0.9444, abs=1e-3)
        assert jaro("dixon", "dicksonx") == pytest.approx(0.7667, abs=1e-3)

    def test_symmetric(self):
        assert jaro("clare atwell", "clare attwell") == pytest.approx(jaro("clare attwell", "clare atwell"))


class TestJaroWinkler:
    """Tests for jaro_winkler()."""

    def test_known_values(self):
        assert jaro_winkler("martha", "marhta") == pytest.approx(0.9611, abs=1e-3)
        assert jaro_winkler("dixon", "dicksonx") == pytest.approx(0.8133, abs=1e-3)

    @pytest.mark.parametrize(
        ("a", "b"),
        [("clare atwell", "clare attwell"), ("dfo", "dfa"), ("abc", "xyz"), ("salmon", "")],
    )
    def test_never_below_jaro_and_within_unit_interval(self, a, b):
        score = jaro_winkler(a, b)
        assert jaro(a, b) <= score <= 1.0

    def test_prefix_capped_at_four_characters(self):
        j = jaro("abcdefgh", "abcdefxy")
        assert jaro_winkler("abcdefgh", "abcdefxy") == pytest.approx(j + 4 * 0.1 * (1 - j))

    def test_no_shared_prefix_equals_jaro(self):
        assert jaro_winkler("xartha", "marhta") == pytest.approx(jaro("xartha", "marhta"))
