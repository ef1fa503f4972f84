"""
Word-count budget for a generated article.

The length bucket selects a randomised total; roughly a fifth of it is
reserved for the introduction and conclusion and the rest is split evenly
across the body sections.
"""
from __future__ import annotations

import dataclasses
import random
from typing import Optional, Tuple

from app.models.schemas import LengthOptions

# (flag attribute, label published on the run, inclusive word range)
LENGTH_BUCKETS: Tuple[Tuple[str, str, Tuple[int, int]], ...] = (
    ("short", "short", (300, 500)),
    ("medium", "medium", (800, 1200)),
    ("long", "long", (1500, 2000)),
    ("super_long", "super long", (2500, 3000)),
)
DEFAULT_BUCKET_LABEL = "medium (default)"
DEFAULT_RANGE = (800, 1200)

INTRO_AND_CONCLUSION_SHARE = 0.2


@dataclasses.dataclass(frozen=True)
class WordBudget:
    length_label: str
    total: int
    intro_and_conclusion: int
    remaining: int
    per_section: int
    section_count: int


def pick_total_word_count(
    length: LengthOptions, rng: Optional[random.Random] = None
) -> Tuple[str, int]:
    """Return ``(bucket_label, total)`` for the first selected bucket."""
    rng = rng or random
    for attr, label, (low, high) in LENGTH_BUCKETS:
        if getattr(length, attr):
            return label, rng.randint(low, high)
    low, high = DEFAULT_RANGE
    return DEFAULT_BUCKET_LABEL, rng.randint(low, high)


def compute_word_budget(
    length: LengthOptions,
    section_count: int,
    rng: Optional[random.Random] = None,
) -> WordBudget:
    if section_count < 1:
        raise ValueError("section_count must be at least 1")

    label, total = pick_total_word_count(length, rng)
    intro_and_conclusion = int(total * INTRO_AND_CONCLUSION_SHARE)
    remaining = total - intro_and_conclusion
    return WordBudget(
        length_label=label,
        total=total,
        intro_and_conclusion=intro_and_conclusion,
        remaining=remaining,
        per_section=remaining // section_count,
        section_count=section_count,
    )
