import copy

from closure_hash import canonical_json, closure_hash, verify_closure_hash

RECORD = {
    "bolao_id": "abc",
    "closed_at": "2026-01-01T00:00:00+00:00",
    "total_funds": 174.0,
    "number_to_users": {"7": ["Ana", "João"]},
    "final_bets": [
        {"type": "8 numbers", "numbers": [1, 2, 3, 4, 5, 6, 7, 8], "cost": 168.0},
        {"type": "6 numbers (surplus)", "numbers": [9, 10, 11, 12, 13, 14], "cost": 6.0},
    ],
}


def test_round_trip():
    digest = closure_hash(RECORD)
    assert len(digest) == 64
    assert digest == digest.lower()
    assert verify_closure_hash(RECORD, digest)


def test_key_order_does_not_matter():
    reordered = dict(reversed(list(RECORD.items())))
    assert closure_hash(reordered) == closure_hash(RECORD)


def test_any_mutation_breaks_verification():
    digest = closure_hash(RECORD)

    changed_bet = copy.deepcopy(RECORD)
    changed_bet["final_bets"][1]["numbers"][0] = 15
    assert not verify_closure_hash(changed_bet, digest)

    changed_funds = copy.deepcopy(RECORD)
    changed_funds["total_funds"] = 175.0
    assert not verify_closure_hash(changed_funds, digest)

    changed_names = copy.deepcopy(RECORD)
    changed_names["number_to_users"]["7"].append("Bia")
    assert not verify_closure_hash(changed_names, digest)


def test_canonical_json_keeps_accents():
    assert "João" in canonical_json(RECORD)
