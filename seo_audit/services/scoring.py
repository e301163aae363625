"""Score aggregation for rule check results.

All functions here are pure: they are called for live progress
estimates as well as for the final persisted scores.
"""

import math
from typing import Dict, Iterable, Mapping

from seo_audit.schemas.rules import Category, RuleCheckResult

MAX_SCORE = 100


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's built-in round() uses banker's rounding (round(2.5) == 2),
    which would make 62.5% display as 62.
    """
    return int(math.floor(value + 0.5))


def total_score(results: Mapping[str, RuleCheckResult]) -> int:
    """Sum every rule score, capped at 100.

    The catalog may temporarily weigh more than 100 points; the cap
    keeps the total on the 0-100 scale.

    Args:
        results: Rule check results keyed by rule id.

    Returns:
        Total score from 0-100.
    """
    raw = sum(result.score for result in results.values())
    return round_half_up(max(0.0, min(float(MAX_SCORE), raw)))


def category_scores(
    results: Mapping[str, RuleCheckResult],
    rule_category_of: Mapping[str, Category],
    category_weight_totals: Mapping[Category, int],
) -> Dict[Category, int]:
    """Normalize rule scores into a 0-100 score per category.

    Args:
        results: Rule check results keyed by rule id.
        rule_category_of: Category of each rule id.
        category_weight_totals: Sum of active rule weights per category.

    Returns:
        A score for every category. Categories without configured
        weight score 0.
    """
    sums: Dict[Category, float] = {category: 0.0 for category in Category}

    for rule_id, result in results.items():
        category = rule_category_of.get(rule_id)
        if category is not None:
            sums[category] += result.score

    scores: Dict[Category, int] = {}
    for category in Category:
        max_score = category_weight_totals.get(category, 0)
        if max_score <= 0:
            scores[category] = 0
            continue
        normalized = round_half_up(sums[category] / max_score * 100)
        scores[category] = max(0, min(MAX_SCORE, normalized))

    return scores


def category_weight_totals(rules: Iterable) -> Dict[Category, int]:
    """Sum the weights of active rules per category.

    Args:
        rules: Objects with ``category``, ``weight`` and ``is_active``.

    Returns:
        Total weight for every category, zero when it has no active rules.
    """
    totals: Dict[Category, int] = {category: 0 for category in Category}
    for rule in rules:
        if rule.is_active:
            totals[rule.category] += rule.weight
    return totals


def score_grade(score: int) -> str:
    """Letter grade for a 0-100 score."""
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"
