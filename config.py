"""
Application configuration

Environment settings are read from the process environment (a local .env file
is loaded first). Domain constants for the Mega-Sena bolão live here too so the
scoring weights and penalties stay configuration, not logic.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ---------- Environment ----------
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 8000))

BOLAO_NAME = os.getenv("BOLAO_NAME", "Bolão Mega da Virada 2026")
DEFAULT_QUOTA = float(os.getenv("DEFAULT_QUOTA", "10.00"))

HISTORY_URL = os.getenv(
    "HISTORY_URL",
    "https://servicebus3.caixa.gov.br/portaldeloterias/api/resultados/download?modalidade=Mega-Sena",
)

# Seconds after which an unreleased closure lock is treated as abandoned
CLOSURE_LOCK_SECONDS = int(os.getenv("CLOSURE_LOCK_SECONDS", 120))

# ---------- Mega-Sena ----------
MIN_NUMBER = 1
MAX_NUMBER = 60
ALL_NUMBERS = range(MIN_NUMBER, MAX_NUMBER + 1)
NUMBERS_PER_BET = 6

# Ordered by descending cost
BET_LEVELS = [
    {"numbers": 9, "cost": 504.0},
    {"numbers": 8, "cost": 168.0},
    {"numbers": 7, "cost": 42.0},
    {"numbers": 6, "cost": 6.0},
]
SURPLUS_BET_COST = 6.0

# Quotas one participant may buy in a single pool
MAX_QUOTA_QUANTITY = 10

# ---------- Scoring ----------
SCORE_WEIGHTS = {
    "historical": 40,    # 0-40, frequency in past draws
    "popularity": 40,    # 0-40, inverted: less picked scores higher
    "anti_pattern": 20,  # 0-20, subtracted
}

PENALTIES = {
    "birthday": 10,        # 1-31
    "multiple_of_5": 5,
    "multiple_of_10": 5,   # on top of multiple_of_5
}
BIRTHDAY_MAX = 31

SEVERITY_POINTS = {"high": 30, "medium": 15, "low": 5}
MAX_PATTERN_SCORE = 100

# ---------- Statuses ----------
PAYMENT_PENDING = "pending"
PAYMENT_CLAIMED = "claimed"
PAYMENT_CONFIRMED = "confirmed"

BOLAO_OPEN = "open"
BOLAO_CLOSED = "closed"
