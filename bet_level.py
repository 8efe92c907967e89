"""
Bet level resolution

Maps collected funds to the largest affordable main bet plus surplus 6-number
bets paid from what is left over.
"""

import logging
import math
from typing import List, Optional

from config import BET_LEVELS, PAYMENT_CONFIRMED, SURPLUS_BET_COST

logger = logging.getLogger(__name__)


def _money(value: float) -> float:
    return round(float(value), 2)


def resolve(total_funds: float, tiers: Optional[List[dict]] = None) -> dict:
    tiers = tiers or BET_LEVELS
    total_funds = _money(total_funds)

    for tier in tiers:
        if total_funds >= tier["cost"]:
            surplus = _money(total_funds - tier["cost"])
            surplus_bets = int(math.floor(surplus / SURPLUS_BET_COST))
            remaining = _money(surplus - surplus_bets * SURPLUS_BET_COST)
            return {
                "bet_level": tier["numbers"],
                "bet_cost": _money(tier["cost"]),
                "surplus_funds": surplus,
                "surplus_bets": surplus_bets,
                "remaining_funds": remaining,
                "total_funds": total_funds,
                "breakdown": {
                    "main_bet": f"1 bet of {tier['numbers']} numbers (R$ {tier['cost']:.2f})",
                    "surplus": (
                        f"{surplus_bets} {'bet' if surplus_bets == 1 else 'bets'} of 6 numbers (R$ {surplus_bets * SURPLUS_BET_COST:.2f})"
                        if surplus_bets > 0
                        else "No extra bets"
                    ),
                    "remaining": f"R$ {remaining:.2f} unused",
                },
            }

    cheapest = min(t["cost"] for t in tiers)
    shortfall = _money(cheapest - total_funds)
    return {
        "bet_level": 0,
        "error": f"Insufficient funds for the minimum bet (R$ {cheapest:.2f})",
        "shortfall": shortfall,
        "total_funds": total_funds,
        "breakdown": {"message": f"Collected R$ {total_funds:.2f}. Need at least R$ {cheapest:.2f}"},
    }


def total_funds(db, bolao: dict) -> float:
    participations = db["participation"].find(
        {"bolao_id": bolao["bolao_id"], "payment_status": PAYMENT_CONFIRMED},
        {"quota_quantity": 1},
    )
    quotas = sum(p.get("quota_quantity") or 1 for p in participations)
    return _money(quotas * float(bolao["quota_value"]))


def financials(db, bolao: dict) -> dict:
    confirmed = db["participation"].count_documents({"bolao_id": bolao["bolao_id"], "payment_status": PAYMENT_CONFIRMED})
    funds = total_funds(db, bolao)
    result = resolve(funds)
    logger.info("Bolão %s: R$ %.2f from %d confirmed, bet level %s", bolao["bolao_id"], funds, confirmed, result["bet_level"])
    return {
        "quota_value": _money(bolao["quota_value"]),
        "confirmed_count": confirmed,
        "status": bolao.get("status"),
        **result,
    }
