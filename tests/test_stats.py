import pytest
from clarity.stats import clamp, coefficient_of_variation, estimate_syllables, words_per_minute

def test_clamp():
    assert clamp(120) == 100 and clamp(-3) == 0 and clamp(42.5) == 42.5
    assert clamp(1.4, 0.0, 1.0) == 1.0

def test_coefficient_of_variation():
    assert coefficient_of_variation([]) == 0.0
    assert coefficient_of_variation([5]) == 0.0
    assert coefficient_of_variation([0, 0, 0]) == 0.0
    assert coefficient_of_variation([10, 10, 10]) == 0.0
    # population std of [1, 3] is 1, mean 2
    assert coefficient_of_variation([1, 3]) == pytest.approx(0.5)

def test_estimate_syllables():
    assert estimate_syllables("recording") == 3
    assert estimate_syllables("hmm") == 1
    assert estimate_syllables("") == 0

def test_words_per_minute():
    assert words_per_minute(13, 6000) == pytest.approx(130.0)
    assert words_per_minute(0, 6000) == 0.0
    assert words_per_minute(10, 0) == 0.0
