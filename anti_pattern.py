"""
Anti-pattern analysis

Scores numbers and full bets for the biases people show when picking by hand
(birthdays, round numbers, runs, one decade). Penalties are configuration.
"""

from typing import Iterable, List

from config import BIRTHDAY_MAX, MAX_PATTERN_SCORE, PENALTIES, SCORE_WEIGHTS, SEVERITY_POINTS


def penalty_for(number: int) -> int:
    penalty = 0
    if 1 <= number <= BIRTHDAY_MAX:
        penalty += PENALTIES["birthday"]
    if number % 5 == 0:
        penalty += PENALTIES["multiple_of_5"]
    if number % 10 == 0:
        penalty += PENALTIES["multiple_of_10"]
    return min(penalty, SCORE_WEIGHTS["anti_pattern"])


def _pattern(type_: str, severity: str, message: str, count: int) -> dict:
    return {"type": type_, "severity": severity, "message": message, "count": count}


def longest_run(numbers: Iterable[int]) -> int:
    ordered = sorted(set(numbers))
    if not ordered:
        return 0
    best = current = 1
    for prev, n in zip(ordered, ordered[1:]):
        current = current + 1 if n == prev + 1 else 1
        best = max(best, current)
    return best


def detect_patterns(numbers: Iterable[int]) -> List[dict]:
    """
    Detect human-bias patterns in a bet. Every check runs independently and
    results come back in a fixed order:
    birthday, sequential, parity, multiples of 5, multiples of 10, same decade.
    """
    numbers = list(numbers)
    total = len(numbers)
    if total == 0:
        return []

    patterns: List[dict] = []

    birthday = sum(1 for n in numbers if n <= BIRTHDAY_MAX)
    if birthday == total:
        patterns.append(_pattern("birthday_bias", "high", f"All numbers are <= {BIRTHDAY_MAX} (birthday bias)", birthday))
    elif birthday / total > 0.7:
        patterns.append(_pattern("birthday_bias_partial", "medium", f"{birthday} of {total} numbers are <= {BIRTHDAY_MAX}", birthday))

    run = longest_run(numbers)
    if run >= 4:
        severity = "high" if run >= 5 else "medium"
        patterns.append(_pattern("sequential", severity, f"Run of {run} consecutive numbers", run))

    evens = sum(1 for n in numbers if n % 2 == 0)
    odds = total - evens
    if evens == 0:
        patterns.append(_pattern("all_odd", "low", "All numbers are odd", odds))
    elif odds == 0:
        patterns.append(_pattern("all_even", "low", "All numbers are even", evens))

    mult5 = sum(1 for n in numbers if n % 5 == 0)
    if mult5 / total >= 0.5:
        patterns.append(_pattern("multiples_of_5", "medium", f"{mult5} of {total} numbers are multiples of 5", mult5))

    mult10 = sum(1 for n in numbers if n % 10 == 0)
    if mult10 >= 3:
        patterns.append(_pattern("multiples_of_10", "high", f"{mult10} numbers are multiples of 10", mult10))

    if len({n // 10 for n in numbers}) == 1:
        patterns.append(_pattern("same_decade", "high", "All numbers are in the same decade", 1))

    return patterns


def pattern_score(numbers: Iterable[int]) -> int:
    """0-100, higher means the bet looks more hand-picked."""
    score = sum(SEVERITY_POINTS[p["severity"]] for p in detect_patterns(numbers))
    return min(score, MAX_PATTERN_SCORE)
