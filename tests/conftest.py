import mongomock
import pytest

from bolao import create_bolao
from database import create_document
from history import import_draws
from schemas import HistoricalDraw, Participation

DRAWS = [
    [1, 2, 3, 4, 5, 6],
    [1, 2, 3, 10, 20, 30],
    [1, 7, 13, 44, 52, 60],
]


@pytest.fixture
def db():
    return mongomock.MongoClient()["bolao_test"]


@pytest.fixture
def bolao(db):
    return create_bolao(db, "Bolão Teste", 10.0)


@pytest.fixture
def draws(db):
    import_draws(db, [
        HistoricalDraw(contest_number=i + 1, draw_date=f"2024-01-0{i + 1}", numbers=numbers)
        for i, numbers in enumerate(DRAWS)
    ])
    return DRAWS


@pytest.fixture
def add_participant(db, bolao):
    def _add(name, numbers=(), status="confirmed", quotas=1):
        return create_document(db, "participation", Participation(
            bolao_id=bolao["bolao_id"],
            user_id=f"user-{name.lower()}",
            user_name=name,
            payment_status=status,
            quota_quantity=quotas,
            selected_numbers=list(numbers),
        ))
    return _add
