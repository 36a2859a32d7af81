"""Tests for the Levenshtein helpers."""

import pytest

from modflow.resolution.similarity import levenshtein_distance, similarity


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("", "", 0),
        ("", "abc", 3),
        ("abc", "", 3),
        ("kitten", "sitting", 3),
        ("member.ban", "member.ban", 0),
        ("flaw", "lawn", 2),
    ],
)
def test_levenshtein_distance(a, b, expected):
    assert levenshtein_distance(a, b) == expected
    assert levenshtein_distance(b, a) == expected


def test_similarity_bounds():
    assert similarity("", "") == 1.0
    assert similarity("abc", "abc") == 1.0
    assert similarity("abc", "xyz") == 0.0


def test_similarity_of_typo():
    assert similarity("memeber.timeot", "member.timeout") == pytest.approx(12 / 14)
