import logging
import os
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from anti_pattern import detect_patterns, pattern_score
from bet_level import financials
from bolao import (
    confirm_payment,
    create_bolao,
    current_bolao,
    get_bolao,
    get_open_bolao,
    get_participation,
    join_bolao,
    latest_closed_bolao,
    list_participants,
    save_selection,
    validate_numbers,
)
from closure import close_bolao, get_closure_info
from closure_hash import verify_closure_hash
from config import BOLAO_NAME, DEFAULT_QUOTA, LOG_LEVEL, PAYMENT_CONFIRMED, PORT
from database import db
from errors import BolaoError, NotFoundError
from scoring import get_scores
from weighted_random import generate_numbers

logging.basicConfig(
    format="%(asctime)s - %(levelname)s - %(message)s",
    level=LOG_LEVEL,
)
logger = logging.getLogger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BolaoError)
async def bolao_error_handler(request: Request, exc: BolaoError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------- Models ----------
class CreateBolaoRequest(BaseModel):
    name: str = Field(BOLAO_NAME, min_length=1)
    quota_value: float = Field(DEFAULT_QUOTA, gt=0)


class JoinRequest(BaseModel):
    user_id: str
    user_name: str = Field(..., min_length=1)
    quota_quantity: int = 1


class ConfirmPaymentRequest(BaseModel):
    participation_id: str


class SelectRequest(BaseModel):
    participation_id: str
    numbers: List[int]


class AnalyzeRequest(BaseModel):
    numbers: List[int]


class CloseRequest(BaseModel):
    admin_id: str = Field(..., description="User closing the bolão")
    bolao_id: Optional[str] = Field(None, description="Defaults to the open bolão, or the latest one")


class VerifyRequest(BaseModel):
    hash: str


# ---------- Helpers ----------
def score_view(s: dict) -> dict:
    return {
        "number": s["number"],
        "historical_frequency": s["historical_frequency"],
        "current_popularity": s["current_popularity"],
        "anti_pattern_penalty": s["anti_pattern_penalty"],
        "final_score": s["final_score"],
        "last_updated": s["last_updated"],
    }


# ---------- Routes ----------
@app.get("/")
def read_root():
    return {"message": "Bolão Backend Running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        if db is not None:
            response["database"] = "✅ Connected"
            response["connection_status"] = "Connected"
            try:
                response["collections"] = db.list_collection_names()[:10]
            except Exception as e:
                response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


@app.post("/api/bolao")
def create_bolao_route(body: CreateBolaoRequest):
    return create_bolao(db, body.name, body.quota_value)


@app.get("/api/bolao/info")
def bolao_info():
    try:
        bolao = get_open_bolao(db)
    except NotFoundError:
        closed = latest_closed_bolao(db)
        return {"status": closed["status"], "bolao": {"bolao_id": closed["bolao_id"], "name": closed["name"], "closed_at": closed.get("closed_at")}}

    participants = list(db["participation"].find({"bolao_id": bolao["bolao_id"]}, {"payment_status": 1}))
    return {
        "status": bolao["status"],
        "bolao": {
            "bolao_id": bolao["bolao_id"],
            "name": bolao["name"],
            "quota_value": bolao["quota_value"],
            "participant_count": len(participants),
            "confirmed_count": sum(1 for p in participants if p.get("payment_status") == PAYMENT_CONFIRMED),
            "created_at": bolao.get("created_at"),
        },
    }


@app.get("/api/bolao/closure")
def latest_closure():
    bolao = latest_closed_bolao(db)
    return get_closure_info(db, bolao["bolao_id"])


@app.get("/api/bolao/{bolao_id}/closure")
def bolao_closure(bolao_id: str):
    return get_closure_info(db, bolao_id)


@app.post("/api/bolao/{bolao_id}/verify")
def verify_closure(bolao_id: str, body: VerifyRequest):
    info = get_closure_info(db, bolao_id)
    return {"bolao_id": bolao_id, "valid": verify_closure_hash(info["closure_data"], body.hash)}


@app.post("/api/payments/join")
def join(body: JoinRequest):
    return join_bolao(db, body.user_id, body.user_name, body.quota_quantity)


@app.get("/api/numbers/scores")
def number_scores(recalculate: bool = False):
    bolao = get_open_bolao(db)
    return {"scores": [score_view(s) for s in get_scores(db, bolao["bolao_id"], recalculate)]}


@app.get("/api/numbers/generate")
def generate():
    bolao = get_open_bolao(db)
    numbers = generate_numbers(get_scores(db, bolao["bolao_id"]))
    logger.info("Generated numbers %s", numbers)
    return {"numbers": numbers}


@app.post("/api/numbers/select")
def select_numbers(body: SelectRequest):
    numbers = save_selection(db, body.participation_id, body.numbers)
    return {"selections": numbers, "patterns": detect_patterns(numbers), "pattern_score": pattern_score(numbers)}


@app.get("/api/numbers/selections/{participation_id}")
def my_selections(participation_id: str):
    participation = get_participation(db, participation_id)
    return {"numbers": sorted(participation.get("selected_numbers") or [])}


@app.post("/api/numbers/analyze")
def analyze(body: AnalyzeRequest):
    numbers = validate_numbers(body.numbers)
    return {"numbers": numbers, "patterns": detect_patterns(numbers), "pattern_score": pattern_score(numbers)}


@app.get("/api/admin/participants")
def participants(bolao_id: Optional[str] = None):
    bolao = get_bolao(db, bolao_id) if bolao_id else get_open_bolao(db)
    return {"bolao_id": bolao["bolao_id"], "participants": list_participants(db, bolao["bolao_id"])}


@app.post("/api/admin/confirm-payment")
def confirm(body: ConfirmPaymentRequest):
    return confirm_payment(db, body.participation_id)


@app.get("/api/admin/totals")
def totals():
    bolao = get_open_bolao(db)
    return financials(db, bolao)


@app.post("/api/admin/close-bolao")
def close(body: CloseRequest):
    bolao_id = body.bolao_id or current_bolao(db)["bolao_id"]
    return close_bolao(db, bolao_id, body.admin_id)


@app.get("/api/bolao/{bolao_id}")
def bolao_detail(bolao_id: str):
    return get_bolao(db, bolao_id)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
