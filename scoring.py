"""
Number scoring

final_score = historical frequency (0-40) + popularity (0-40, inverted) - anti-pattern penalty (0-20)

Rows live in the "numberscore" collection, one per (bolao_id, number).
Historical frequency and penalties never change while a pool is open, so
selection changes only refresh the popularity component.
"""

import logging
import math
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List

from anti_pattern import penalty_for
from config import ALL_NUMBERS, MAX_NUMBER, MIN_NUMBER, PAYMENT_CONFIRMED, SCORE_WEIGHTS
from database import now_utc
from errors import IntegrityError
from schemas import NumberScore

logger = logging.getLogger(__name__)


# ---------- Components ----------
def round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def count_occurrences(rows: Iterable[Iterable[int]]) -> Dict[int, int]:
    counts = Counter(n for row in rows for n in row if MIN_NUMBER <= n <= MAX_NUMBER)
    return {n: counts.get(n, 0) for n in ALL_NUMBERS}


def normalize_historical(counts: Dict[int, int], weight: int = SCORE_WEIGHTS["historical"]) -> Dict[int, float]:
    lowest = min(counts.values())
    highest = max(counts.values())
    if highest == lowest:
        return {n: weight / 2 for n in counts}
    span = highest - lowest
    return {n: round_half_up((c - lowest) / span * weight) for n, c in counts.items()}


def normalize_popularity(counts: Dict[int, int], weight: int = SCORE_WEIGHTS["popularity"]) -> Dict[int, int]:
    """Inverted: a number nobody picked gets the full weight."""
    top = max(max(counts.values()), 1)
    return {n: round_half_up((1 - c / top) * weight) for n, c in counts.items()}


def historical_frequency(db) -> Dict[int, float]:
    draws = db["historicaldraw"].find({}, {"numbers": 1})
    return normalize_historical(count_occurrences(d.get("numbers", []) for d in draws))


def popularity(db, bolao_id: str) -> Dict[int, int]:
    participations = db["participation"].find(
        {"bolao_id": bolao_id, "payment_status": PAYMENT_CONFIRMED},
        {"selected_numbers": 1},
    )
    # a set per participant so each one votes once per number
    return normalize_popularity(count_occurrences(set(p.get("selected_numbers") or []) for p in participations))


# ---------- Persistence ----------
def _score_row(bolao_id: str, number: int, historical: float, current_popularity: int, penalty: int) -> dict:
    return NumberScore(
        bolao_id=bolao_id,
        number=number,
        historical_frequency=historical,
        current_popularity=current_popularity,
        anti_pattern_penalty=penalty,
        final_score=historical + current_popularity - penalty,
        last_updated=now_utc(),
    ).model_dump()


def _save(db, rows: List[dict]) -> None:
    collection = db["numberscore"]
    for row in rows:
        collection.update_one({"bolao_id": row["bolao_id"], "number": row["number"]}, {"$set": row}, upsert=True)


def _load(db, bolao_id: str) -> List[dict]:
    return list(db["numberscore"].find({"bolao_id": bolao_id}, {"_id": 0}).sort("number", 1))


def _check_complete(rows: List[dict]) -> None:
    if sorted(r["number"] for r in rows) != list(ALL_NUMBERS):
        raise IntegrityError(f"Expected {len(ALL_NUMBERS)} score rows, found {len(rows)}")


def recompute_all(db, bolao_id: str) -> List[dict]:
    logger.info("Calculating scores for bolão %s", bolao_id)
    with ThreadPoolExecutor(max_workers=2) as pool:
        historical_job = pool.submit(historical_frequency, db)
        popularity_job = pool.submit(popularity, db, bolao_id)
        historical = historical_job.result()
        current = popularity_job.result()

    rows = [_score_row(bolao_id, n, historical[n], current[n], penalty_for(n)) for n in ALL_NUMBERS]
    _save(db, rows)
    return rows


def recompute_popularity_only(db, bolao_id: str) -> List[dict]:
    rows = _load(db, bolao_id)
    try:
        _check_complete(rows)
    except IntegrityError as e:
        logger.warning("%s for bolão %s, running a full recompute", e, bolao_id)
        return recompute_all(db, bolao_id)

    current = popularity(db, bolao_id)
    updated = [
        _score_row(bolao_id, r["number"], r["historical_frequency"], current[r["number"]], r["anti_pattern_penalty"])
        for r in rows
    ]
    _save(db, updated)
    return updated


def get_scores(db, bolao_id: str, force_recalculate: bool = False) -> List[dict]:
    if force_recalculate:
        return recompute_all(db, bolao_id)

    rows = _load(db, bolao_id)
    if not rows:
        logger.info("No scores found for bolão %s, calculating", bolao_id)
        return recompute_all(db, bolao_id)
    try:
        _check_complete(rows)
    except IntegrityError as e:
        logger.warning("%s for bolão %s, running a full recompute", e, bolao_id)
        return recompute_all(db, bolao_id)
    return rows
