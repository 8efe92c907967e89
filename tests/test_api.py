import pytest
from fastapi.testclient import TestClient

import main


@pytest.fixture
def client(db, monkeypatch):
    monkeypatch.setattr(main, "db", db)
    return TestClient(main.app)


def test_root(client):
    assert client.get("/").json() == {"message": "Bolão Backend Running"}


def test_database_check(client):
    body = client.get("/test").json()
    assert body["connection_status"] == "Connected"


def test_create_bolao_once(client):
    resp = client.post("/api/bolao", json={"name": "Mega da Virada", "quota_value": 12.5})
    assert resp.status_code == 200
    assert resp.json()["status"] == "open"

    again = client.post("/api/bolao", json={"name": "Outro"})
    assert again.status_code == 409


def test_no_open_bolao(client):
    assert client.get("/api/numbers/scores").status_code == 404
    assert client.get("/api/bolao/info").status_code == 404


def test_info(client, bolao, add_participant):
    add_participant("Ana")
    add_participant("Bia", status="pending")
    body = client.get("/api/bolao/info").json()
    assert body["bolao"]["participant_count"] == 2
    assert body["bolao"]["confirmed_count"] == 1


def test_scores_and_generate(client, bolao, draws):
    scores = client.get("/api/numbers/scores", params={"recalculate": "true"}).json()["scores"]
    assert [s["number"] for s in scores] == list(range(1, 61))

    numbers = client.get("/api/numbers/generate").json()["numbers"]
    assert len(set(numbers)) == 6
    assert numbers == sorted(numbers)


def test_select_and_read_back(client, bolao, add_participant):
    ana = add_participant("Ana")
    resp = client.post("/api/numbers/select", json={"participation_id": ana["participation_id"], "numbers": [6, 5, 4, 3, 2, 1]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["selections"] == [1, 2, 3, 4, 5, 6]
    assert body["pattern_score"] == 90

    mine = client.get(f"/api/numbers/selections/{ana['participation_id']}").json()
    assert mine["numbers"] == [1, 2, 3, 4, 5, 6]


def test_select_invalid_numbers(client, bolao, add_participant):
    ana = add_participant("Ana")
    resp = client.post("/api/numbers/select", json={"participation_id": ana["participation_id"], "numbers": [1, 1, 99]})
    assert resp.status_code == 422
    assert len(resp.json()["errors"]) == 2


def test_analyze(client):
    body = client.post("/api/numbers/analyze", json={"numbers": [10, 20, 30, 40, 50, 60]}).json()
    assert [p["type"] for p in body["patterns"]] == ["all_even", "multiples_of_5", "multiples_of_10"]
    assert body["pattern_score"] == 50


def test_totals(client, bolao, add_participant):
    add_participant("Ana", quotas=17)
    add_participant("Bia", quotas=1)
    body = client.get("/api/admin/totals").json()
    assert body["total_funds"] == 180.0
    assert body["bet_level"] == 8
    assert body["surplus_bets"] == 2


def test_close_with_insufficient_funds(client, bolao):
    resp = client.post("/api/admin/close-bolao", json={"admin_id": "admin-1"})
    assert resp.status_code == 400
    assert resp.json()["shortfall"] == 6.0


def test_close_and_verify(client, bolao, draws, add_participant):
    add_participant("Ana", [1, 2, 3, 4, 5, 6], quotas=3)
    add_participant("Bia", [7, 8, 9, 10, 11, 12])

    closed = client.post("/api/admin/close-bolao", json={"admin_id": "admin-1"})
    assert closed.status_code == 200
    digest = closed.json()["hash"]
    assert len(closed.json()["final_bets"]) == 1 + 5

    info = client.get("/api/bolao/closure").json()
    assert info["hash"] == digest
    assert info["verified"] is True
    assert client.get(f"/api/bolao/{bolao['bolao_id']}/closure").json()["hash"] == digest

    ok = client.post(f"/api/bolao/{bolao['bolao_id']}/verify", json={"hash": digest}).json()
    assert ok["valid"] is True
    bad = client.post(f"/api/bolao/{bolao['bolao_id']}/verify", json={"hash": "0" * 64}).json()
    assert bad["valid"] is False

    assert client.get("/api/bolao/info").json()["status"] == "closed"
    assert client.post("/api/admin/close-bolao", json={"admin_id": "admin-1"}).status_code == 409


def test_closure_of_open_bolao(client, bolao):
    assert client.get(f"/api/bolao/{bolao['bolao_id']}/closure").status_code == 404


def test_join_confirm_and_select(client, bolao):
    joined = client.post("/api/payments/join", json={"user_id": "u1", "user_name": "Ana", "quota_quantity": 2})
    assert joined.status_code == 200
    participation_id = joined.json()["participation"]["participation_id"]
    assert joined.json()["total_amount"] == 20.0

    again = client.post("/api/payments/join", json={"user_id": "u1", "user_name": "Ana"}).json()
    assert again["already_joined"] is True

    pending = client.post("/api/numbers/select", json={"participation_id": participation_id, "numbers": [1, 2, 3]})
    assert pending.status_code == 422

    confirmed = client.post("/api/admin/confirm-payment", json={"participation_id": participation_id})
    assert confirmed.json()["payment_status"] == "confirmed"
    assert client.post("/api/numbers/select", json={"participation_id": participation_id, "numbers": [1, 2, 3]}).status_code == 200

    rows = client.get("/api/admin/participants").json()["participants"]
    assert len(rows) == 1
    assert rows[0]["quota_quantity"] == 2
    assert rows[0]["selected_numbers"] == [1, 2, 3]


def test_join_invalid_quotas(client, bolao):
    resp = client.post("/api/payments/join", json={"user_id": "u1", "user_name": "Ana", "quota_quantity": 0})
    assert resp.status_code == 422


def test_close_by_id(client, bolao, add_participant):
    add_participant("Ana", [1, 2, 3, 4, 5, 6])
    resp = client.post("/api/admin/close-bolao", json={"admin_id": "admin-1", "bolao_id": bolao["bolao_id"]})
    assert resp.status_code == 200
    again = client.post("/api/admin/close-bolao", json={"admin_id": "admin-1", "bolao_id": bolao["bolao_id"]})
    assert again.status_code == 409
