"""
Database Schemas

Bolão schemas for MongoDB using Pydantic models.
Each Pydantic model represents a collection in your database.
Model name is converted to lowercase for the collection name.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from config import BOLAO_OPEN, MAX_NUMBER, MIN_NUMBER, NUMBERS_PER_BET, PAYMENT_PENDING


def new_id() -> str:
    return uuid.uuid4().hex


def _check_numbers(numbers: List[int], exact: Optional[int] = None) -> List[int]:
    if len(set(numbers)) != len(numbers):
        raise ValueError("numbers must be unique")
    if any(n < MIN_NUMBER or n > MAX_NUMBER for n in numbers):
        raise ValueError(f"numbers must be between {MIN_NUMBER} and {MAX_NUMBER}")
    if exact is not None and len(numbers) != exact:
        raise ValueError(f"exactly {exact} numbers are required")
    return sorted(numbers)


class Bolao(BaseModel):
    """
    Collection: "bolao"
    A single pool with one quota value and one open -> closed lifecycle
    """
    bolao_id: str = Field(default_factory=new_id, description="Pool id")
    name: str = Field(..., min_length=1)
    quota_value: float = Field(..., gt=0, description="Price of one quota")
    status: str = Field(BOLAO_OPEN, description="open | closed")
    closure_hash: Optional[str] = Field(None, description="SHA-256 of the closure record")
    closure_data: Optional[Dict[str, Any]] = Field(None, description="Immutable closure record")
    closed_at: Optional[datetime] = None


class Participation(BaseModel):
    """
    Collection: "participation"
    A user's stake in a pool, with the numbers they picked
    """
    participation_id: str = Field(default_factory=new_id)
    bolao_id: str
    user_id: str
    user_name: str
    payment_status: str = Field(PAYMENT_PENDING, description="pending | claimed | confirmed")
    quota_quantity: int = Field(1, ge=1)
    selected_numbers: List[int] = Field(default_factory=list, max_length=NUMBERS_PER_BET)
    payment_confirmed_at: Optional[datetime] = None
    version: int = Field(0, ge=0, description="Bumped on every write, checked by closure")

    @field_validator("selected_numbers")
    @classmethod
    def valid_selection(cls, v: List[int]) -> List[int]:
        return _check_numbers(v)


class HistoricalDraw(BaseModel):
    """
    Collection: "historicaldraw"
    One official Mega-Sena result
    """
    contest_number: int = Field(..., ge=1)
    draw_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    numbers: List[int]

    @field_validator("numbers")
    @classmethod
    def six_numbers(cls, v: List[int]) -> List[int]:
        return _check_numbers(v, exact=NUMBERS_PER_BET)


class NumberScore(BaseModel):
    """
    Collection: "numberscore"
    Composite ranking signal for one number inside one pool
    """
    bolao_id: str
    number: int = Field(..., ge=MIN_NUMBER, le=MAX_NUMBER)
    historical_frequency: float = Field(..., ge=0)
    current_popularity: int = Field(..., ge=0)
    anti_pattern_penalty: int = Field(..., ge=0)
    final_score: float
    last_updated: datetime


class FinalBet(BaseModel):
    """
    Collection: "finalbet"
    A ticket produced when a pool closes
    """
    bolao_id: str
    position: int = Field(..., ge=0, description="0 is the main bet")
    bet_type: str
    numbers: List[int]
    cost: float
