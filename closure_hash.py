"""
Closure record hashing

SHA-256 over a canonical JSON rendering of the record. Any change to any field
of the record changes the hash.
"""

import hashlib
import json


def canonical_json(record: dict) -> str:
    return json.dumps(record, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def closure_hash(record: dict) -> str:
    return hashlib.sha256(canonical_json(record).encode("utf-8")).hexdigest()


def verify_closure_hash(record: dict, claimed_hash: str) -> bool:
    return closure_hash(record) == claimed_hash
