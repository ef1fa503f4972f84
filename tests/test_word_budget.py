"""Tests for the word-count budget calculator."""
import random

import pytest

from app.models.schemas import LengthOptions
from app.services.word_budget import compute_word_budget, pick_total_word_count

ONLY = {
    "short": LengthOptions(short=True, medium=False),
    "medium": LengthOptions(medium=True),
    "long": LengthOptions(long=True, medium=False),
    "super long": LengthOptions(super_long=True, medium=False),
}

RANGES = {
    "short": (300, 500),
    "medium": (800, 1200),
    "long": (1500, 2000),
    "super long": (2500, 3000),
}


@pytest.mark.parametrize("label", list(ONLY))
def test_total_stays_inside_bucket(label):
    low, high = RANGES[label]
    rng = random.Random(7)
    for _ in range(200):
        picked_label, total = pick_total_word_count(ONLY[label], rng)
        assert picked_label == label
        assert low <= total <= high


def test_first_selected_bucket_wins():
    length = LengthOptions(short=True, medium=True, long=True)
    label, total = pick_total_word_count(length, random.Random(1))
    assert label == "short"
    assert 300 <= total <= 500


def test_no_bucket_falls_back_to_medium_default():
    length = LengthOptions(short=False, medium=False, long=False, super_long=False)
    label, total = pick_total_word_count(length, random.Random(3))
    assert label == "medium (default)"
    assert 800 <= total <= 1200


@pytest.mark.parametrize("sections", [1, 3, 7, 10])
def test_budget_split(sections):
    rng = random.Random(sections)
    for length in ONLY.values():
        budget = compute_word_budget(length, sections, rng)
        assert budget.intro_and_conclusion == int(budget.total * 0.2)
        assert budget.remaining == budget.total - budget.intro_and_conclusion
        assert budget.per_section == budget.remaining // sections
        assert budget.per_section * sections <= budget.remaining
        assert budget.per_section > 0
        assert budget.section_count == sections


def test_budget_is_deterministic_for_a_seed():
    a = compute_word_budget(LengthOptions(), 4, random.Random(42))
    b = compute_word_budget(LengthOptions(), 4, random.Random(42))
    assert a == b


def test_zero_sections_rejected():
    with pytest.raises(ValueError):
        compute_word_budget(LengthOptions(), 0)
