"""
Pool and selection access

Looks up pools, keeps the one-open-pool rule, and handles participations:
joining, payment confirmation and number selections (the last two refresh the
popularity part of the scores).

Every participation write bumps a version counter so a running closure can
tell that its snapshot went stale.
"""

import logging
import time
from typing import List

from config import BOLAO_CLOSED, BOLAO_OPEN, MAX_NUMBER, MAX_QUOTA_QUANTITY, MIN_NUMBER, NUMBERS_PER_BET, PAYMENT_CONFIRMED
from database import clean, create_document, now_utc
from errors import ConcurrencyError, NotFoundError, ValidationError
from schemas import Bolao, Participation
from scoring import recompute_popularity_only

logger = logging.getLogger(__name__)


def get_bolao(db, bolao_id: str) -> dict:
    bolao = db["bolao"].find_one({"bolao_id": bolao_id})
    if not bolao:
        raise NotFoundError("Bolão not found")
    return clean(bolao)


def get_open_bolao(db) -> dict:
    bolao = db["bolao"].find_one({"status": BOLAO_OPEN})
    if not bolao:
        raise NotFoundError("No open bolão found")
    return clean(bolao)


def latest_closed_bolao(db) -> dict:
    docs = list(db["bolao"].find({"status": BOLAO_CLOSED}).sort("closed_at", -1).limit(1))
    if not docs:
        raise NotFoundError("No closed bolão found")
    return clean(docs[0])


def current_bolao(db) -> dict:
    """The open pool, or the most recently created one when none is open."""
    open_bolao = db["bolao"].find_one({"status": BOLAO_OPEN})
    if open_bolao:
        return clean(open_bolao)
    docs = list(db["bolao"].find({}).sort("created_at", -1).limit(1))
    if not docs:
        raise NotFoundError("No bolão found")
    return clean(docs[0])


def is_closing(bolao: dict) -> bool:
    return (bolao.get("closing_until") or 0) > time.time()


def create_bolao(db, name: str, quota_value: float) -> dict:
    if db["bolao"].find_one({"status": BOLAO_OPEN}):
        raise ConcurrencyError("Another bolão is already open")
    doc = create_document(db, "bolao", Bolao(name=name, quota_value=quota_value))
    logger.info("Created bolão %s (%s), quota R$ %.2f", doc["bolao_id"], name, quota_value)
    return doc


def confirmed_participations(db, bolao_id: str) -> List[dict]:
    cursor = db["participation"].find({"bolao_id": bolao_id, "payment_status": PAYMENT_CONFIRMED}).sort("created_at", 1)
    return [clean(p) for p in cursor]


def validate_numbers(numbers) -> List[int]:
    """Return the numbers sorted, or raise ValidationError listing every problem."""
    if not isinstance(numbers, (list, tuple)):
        raise ValidationError("Numbers must be a list")
    if not numbers:
        raise ValidationError("At least one number is required")

    errors = []
    if len(numbers) > NUMBERS_PER_BET:
        errors.append(f"At most {NUMBERS_PER_BET} numbers can be selected")
    if len(set(numbers)) != len(numbers):
        errors.append("Duplicate numbers are not allowed")
    for n in numbers:
        if isinstance(n, bool) or not isinstance(n, int) or not MIN_NUMBER <= n <= MAX_NUMBER:
            errors.append(f"Invalid number: {n} (must be between {MIN_NUMBER} and {MAX_NUMBER})")

    if errors:
        raise ValidationError("Invalid selection", errors)
    return sorted(numbers)


def get_participation(db, participation_id: str) -> dict:
    participation = db["participation"].find_one({"participation_id": participation_id})
    if not participation:
        raise NotFoundError("Participation not found")
    return clean(participation)


def _check_writable(bolao: dict) -> None:
    if bolao["status"] != BOLAO_OPEN:
        raise ConcurrencyError("Bolão is closed")
    if is_closing(bolao):
        raise ConcurrencyError("Bolão is being closed")


def _update_participation(db, participation: dict, changes: dict) -> None:
    """
    Apply `changes` to a participation, guarded against a concurrent closure.

    The write is conditioned on the version that was read and bumps it, so a
    closure that already took its snapshot sees the change and aborts. If a
    closure claimed the pool while the write was in flight, the write is
    rolled back and ConcurrencyError is raised.
    """
    participation_id = participation["participation_id"]
    version = participation.get("version", 0)
    _check_writable(get_bolao(db, participation["bolao_id"]))

    result = db["participation"].update_one(
        {"participation_id": participation_id, "version": version},
        {"$set": {**changes, "updated_at": now_utc()}, "$inc": {"version": 1}},
    )
    if result.matched_count == 0:
        raise ConcurrencyError("Participation was changed by another request")

    try:
        _check_writable(get_bolao(db, participation["bolao_id"]))
    except ConcurrencyError:
        logger.warning("Closure started during a write to participation %s, rolling back", participation_id)
        db["participation"].update_one(
            {"participation_id": participation_id, "version": version + 1},
            {"$set": {k: participation.get(k) for k in changes}, "$inc": {"version": 1}},
        )
        raise


def join_bolao(db, user_id: str, user_name: str, quota_quantity: int = 1) -> dict:
    """Create a pending participation in the open pool, or return the user's existing one."""
    if isinstance(quota_quantity, bool) or not isinstance(quota_quantity, int) or not 1 <= quota_quantity <= MAX_QUOTA_QUANTITY:
        raise ValidationError(f"Invalid quota quantity (minimum 1, maximum {MAX_QUOTA_QUANTITY})")

    bolao = get_open_bolao(db)
    _check_writable(bolao)
    existing = db["participation"].find_one({"bolao_id": bolao["bolao_id"], "user_id": user_id})
    if existing:
        participation, already_joined = clean(existing), True
    else:
        participation = create_document(db, "participation", Participation(
            bolao_id=bolao["bolao_id"],
            user_id=user_id,
            user_name=user_name,
            quota_quantity=quota_quantity,
        ))
        already_joined = False
        try:
            _check_writable(get_bolao(db, bolao["bolao_id"]))
        except ConcurrencyError:
            db["participation"].delete_one({"participation_id": participation["participation_id"]})
            raise
        logger.info("%s joined bolão %s with %d quota(s)", user_name, bolao["bolao_id"], quota_quantity)

    return {
        "already_joined": already_joined,
        "participation": participation,
        "quota_value": bolao["quota_value"],
        "total_amount": round(bolao["quota_value"] * participation["quota_quantity"], 2),
    }


def confirm_payment(db, participation_id: str) -> dict:
    participation = get_participation(db, participation_id)
    if participation["payment_status"] != PAYMENT_CONFIRMED:
        _update_participation(db, participation, {"payment_status": PAYMENT_CONFIRMED, "payment_confirmed_at": now_utc()})
        logger.info("Confirmed payment for participation %s", participation_id)
        # a newly confirmed participant's picks now count
        recompute_popularity_only(db, participation["bolao_id"])
    return get_participation(db, participation_id)


def list_participants(db, bolao_id: str) -> List[dict]:
    bolao = get_bolao(db, bolao_id)
    cursor = db["participation"].find({"bolao_id": bolao_id}).sort("created_at", 1)
    participants = []
    for p in cursor:
        quotas = p.get("quota_quantity") or 1
        numbers = sorted(p.get("selected_numbers") or [])
        participants.append({
            "participation_id": p["participation_id"],
            "user_id": p["user_id"],
            "name": p["user_name"],
            "quota_quantity": quotas,
            "total_amount": round(quotas * bolao["quota_value"], 2),
            "payment_status": p["payment_status"],
            "confirmed_at": p.get("payment_confirmed_at"),
            "joined_at": p.get("created_at"),
            "selected_numbers_count": len(numbers),
            "selected_numbers": numbers,
        })
    return participants


def save_selection(db, participation_id: str, numbers) -> List[int]:
    numbers = validate_numbers(numbers)
    participation = get_participation(db, participation_id)
    if participation["payment_status"] != PAYMENT_CONFIRMED:
        raise ValidationError("Only participants with a confirmed payment can select numbers")

    _update_participation(db, participation, {"selected_numbers": numbers})
    recompute_popularity_only(db, participation["bolao_id"])
    return numbers
