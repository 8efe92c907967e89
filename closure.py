"""
Bolão closure

Closing freezes the pool, fills in picks for confirmed participants who never
chose, consolidates everyone's votes into the main bet, spends the surplus on
extra 6-number bets, and stores a hashed closure record.

Closure holds an advisory lock on the pool document ("closing_until") from the
first read to the final status flip. The status flip is always the last write,
so a failed closure leaves the pool open and can simply be retried. Participation
versions are snapshotted after the claim and checked again before writing, so
a selection or payment that slips in mid-closure aborts it instead of leaving
the record out of step with the stored data.
"""

import logging
import random
import time
from collections import Counter
from typing import Dict, Iterable, List, Optional

from pymongo import ReturnDocument

from bet_level import financials
from bolao import confirmed_participations, get_bolao
from closure_hash import closure_hash, verify_closure_hash
from config import ALL_NUMBERS, BOLAO_CLOSED, BOLAO_OPEN, CLOSURE_LOCK_SECONDS, NUMBERS_PER_BET, SURPLUS_BET_COST
from database import clean, create_document, now_utc
from errors import ConcurrencyError, InsufficientFundsError, NotFoundError
from schemas import FinalBet
from scoring import get_scores
from weighted_random import generate_numbers

logger = logging.getLogger(__name__)


# ---------- Consolidation ----------
def consolidate_main_bet(selections: Iterable[Iterable[int]], scores: Iterable[dict], bet_level: int) -> List[int]:
    """
    Rank 1..60 by votes, then score, then the number itself, and keep the
    top `bet_level`. Returned ascending.
    """
    votes = Counter(n for numbers in selections for n in set(numbers))
    score_map = {s["number"]: s["final_score"] for s in scores}
    ranked = sorted(ALL_NUMBERS, key=lambda n: (-votes[n], -score_map.get(n, 0), n))
    return sorted(ranked[:bet_level])


def generate_surplus_bets(main_bet: Iterable[int], scores: Iterable[dict], count: int, rng: Optional[random.Random] = None) -> List[List[int]]:
    score_map = {s["number"]: s["final_score"] for s in scores}
    used = set(main_bet)
    bets: List[List[int]] = []

    for i in range(count):
        available = [n for n in ALL_NUMBERS if n not in used]
        if len(available) < NUMBERS_PER_BET:
            logger.info("Surplus bet %d: only %d unused numbers left, allowing reuse", i + 1, len(available))
            used.clear()
            available = list(ALL_NUMBERS)

        candidates = sorted((n for n in available if n in score_map), key=lambda n: (-score_map[n], n))
        if len(candidates) < NUMBERS_PER_BET:
            logger.warning("Surplus bet %d: only %d scored numbers available, using weighted random", i + 1, len(candidates))
            bet = generate_numbers(
                [{"number": n, "final_score": score_map.get(n, 0)} for n in ALL_NUMBERS],
                NUMBERS_PER_BET,
                rng,
            )
        else:
            bet = sorted(candidates[:NUMBERS_PER_BET])

        bets.append(bet)
        used.update(bet)

    return bets


def build_number_index(participants: List[dict]) -> Dict[str, List[str]]:
    """number -> names of the participants who picked it. Keys are strings so the index can be stored."""
    index: Dict[str, List[str]] = {}
    for n in ALL_NUMBERS:
        names = [p["name"] for p in participants if n in p["selected_numbers"]]
        if names:
            index[str(n)] = names
    return index


# ---------- Lock ----------
def _claim(db, bolao_id: str) -> dict:
    now = time.time()
    bolao = db["bolao"].find_one_and_update(
        {
            "bolao_id": bolao_id,
            "status": BOLAO_OPEN,
            "$or": [{"closing_until": None}, {"closing_until": {"$lt": now}}],
        },
        {"$set": {"closing_until": now + CLOSURE_LOCK_SECONDS}},
        return_document=ReturnDocument.AFTER,
    )
    if bolao:
        return clean(bolao)

    existing = get_bolao(db, bolao_id)
    if existing["status"] == BOLAO_CLOSED:
        raise ConcurrencyError("Bolão is already closed")
    raise ConcurrencyError("Bolão is already being closed")


def _release(db, bolao_id: str, token: float) -> None:
    db["bolao"].update_one({"bolao_id": bolao_id, "closing_until": token}, {"$unset": {"closing_until": ""}})


def _participation_versions(db, bolao_id: str) -> Dict[str, int]:
    cursor = db["participation"].find({"bolao_id": bolao_id}, {"participation_id": 1, "version": 1})
    return {p["participation_id"]: p.get("version", 0) for p in cursor}


# ---------- Closure ----------
def close_bolao(db, bolao_id: str, admin_id: str, rng: Optional[random.Random] = None) -> dict:
    logger.info("Closing bolão %s", bolao_id)
    bolao = _claim(db, bolao_id)
    token = bolao["closing_until"]
    try:
        return _close(db, bolao, admin_id, token, rng)
    except Exception as e:
        logger.warning("Closing bolão %s failed, it stays open: %s", bolao_id, e)
        _release(db, bolao_id, token)
        raise


def _close(db, bolao: dict, admin_id: str, token: float, rng: Optional[random.Random]) -> dict:
    bolao_id = bolao["bolao_id"]
    # every participation write after this point makes the closure abort
    versions = _participation_versions(db, bolao_id)

    funds = financials(db, bolao)
    if funds["bet_level"] == 0:
        raise InsufficientFundsError(funds["error"], funds["total_funds"], funds["shortfall"])
    logger.info(
        "Total R$ %.2f: %d-number bet (R$ %.2f), %d surplus bets, R$ %.2f left",
        funds["total_funds"], funds["bet_level"], funds["bet_cost"], funds["surplus_bets"], funds["remaining_funds"],
    )

    participations = confirmed_participations(db, bolao_id)
    scores = get_scores(db, bolao_id)

    auto_filled: Dict[str, List[int]] = {}
    for p in participations:
        if not p.get("selected_numbers"):
            generated = generate_numbers(scores, NUMBERS_PER_BET, rng)
            logger.info("Auto-generating numbers for %s: %s", p["user_name"], generated)
            p["selected_numbers"] = generated
            auto_filled[p["participation_id"]] = generated

    participants = [
        {"user_id": p["user_id"], "name": p["user_name"], "selected_numbers": sorted(p["selected_numbers"])}
        for p in participations
    ]

    main_bet = consolidate_main_bet((p["selected_numbers"] for p in participants), scores, funds["bet_level"])
    surplus_bets = generate_surplus_bets(main_bet, scores, funds["surplus_bets"], rng)
    logger.info("Main bet %s, %d surplus bets", main_bet, len(surplus_bets))

    closed_at = now_utc()
    record = {
        "bolao_id": bolao_id,
        "bolao_name": bolao.get("name"),
        "closed_at": closed_at.isoformat(),
        "closed_by": admin_id,
        "total_funds": funds["total_funds"],
        "quota_value": funds["quota_value"],
        "participant_count": len(participants),
        "participants": participants,
        "number_to_users": build_number_index(participants),
        "financials": {
            "bet_level": funds["bet_level"],
            "bet_cost": funds["bet_cost"],
            "surplus_bets": funds["surplus_bets"],
            "remaining_funds": funds["remaining_funds"],
        },
        "final_bets": [{"type": f"{funds['bet_level']} numbers", "numbers": main_bet, "cost": funds["bet_cost"]}]
        + [{"type": "6 numbers (surplus)", "numbers": nums, "cost": SURPLUS_BET_COST} for nums in surplus_bets],
    }

    digest = closure_hash(record)
    logger.info("Closure hash for bolão %s: %s", bolao_id, digest)

    _persist(db, bolao_id, admin_id, token, versions, record, digest, auto_filled, closed_at)
    return {"hash": digest, "closure_data": record, "final_bets": record["final_bets"]}


def _check_unchanged(db, bolao_id: str, versions: Dict[str, int]) -> None:
    if _participation_versions(db, bolao_id) != versions:
        raise ConcurrencyError("Participations changed while the bolão was being closed")


def _persist(db, bolao_id, admin_id, token, versions, record, digest, auto_filled, closed_at) -> None:
    held = {"bolao_id": bolao_id, "status": BOLAO_OPEN, "closing_until": token}
    if not db["bolao"].find_one(held):
        raise ConcurrencyError("Closure lock was lost")
    _check_unchanged(db, bolao_id, versions)

    expected = dict(versions)
    for participation_id, numbers in auto_filled.items():
        result = db["participation"].update_one(
            {"participation_id": participation_id, "version": expected[participation_id]},
            {"$set": {"selected_numbers": numbers, "updated_at": closed_at}, "$inc": {"version": 1}},
        )
        if result.matched_count == 0:
            raise ConcurrencyError("Participations changed while the bolão was being closed")
        expected[participation_id] += 1

    # replace, so a retried closure never duplicates bets
    db["finalbet"].delete_many({"bolao_id": bolao_id})
    for position, bet in enumerate(record["final_bets"]):
        create_document(db, "finalbet", FinalBet(bolao_id=bolao_id, position=position, bet_type=bet["type"], numbers=bet["numbers"], cost=bet["cost"]))

    _check_unchanged(db, bolao_id, expected)
    result = db["bolao"].update_one(
        held,
        {
            "$set": {
                "status": BOLAO_CLOSED,
                "closure_hash": digest,
                "closure_data": record,
                "closed_at": closed_at,
                "closed_by": admin_id,
                "updated_at": closed_at,
            },
            "$unset": {"closing_until": ""},
        },
    )
    if result.matched_count == 0:
        raise ConcurrencyError("Closure lock was lost")


# ---------- Reads ----------
def get_final_bets(db, bolao_id: str) -> List[dict]:
    return list(db["finalbet"].find({"bolao_id": bolao_id}, {"_id": 0}).sort("position", 1))


def get_closure_info(db, bolao_id: str) -> dict:
    bolao = get_bolao(db, bolao_id)
    if bolao["status"] != BOLAO_CLOSED:
        raise NotFoundError("Bolão is not closed")
    return {
        "bolao_id": bolao_id,
        "status": bolao["status"],
        "hash": bolao["closure_hash"],
        "closed_at": bolao.get("closed_at"),
        "closure_data": bolao["closure_data"],
        "final_bets": get_final_bets(db, bolao_id),
        "verified": verify_closure_hash(bolao["closure_data"], bolao["closure_hash"]),
    }
