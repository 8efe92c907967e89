from datetime import date, datetime

import pytest
from openpyxl import Workbook

import history
from history import download_results, import_draws, load_draws_from_xlsx, parse_date_br


@pytest.fixture
def results_xlsx(tmp_path):
    wb = Workbook()
    ws = wb.active
    ws.append(["Mega-Sena - resultados"])
    ws.append(["Concurso", "Data do Sorteio", "Bola1", "Bola2", "Bola3", "Bola4", "Bola5", "Bola6", "Ganhadores 6 acertos"])
    ws.append([1, "11/03/1996", 41, 5, 4, 52, 30, 33, 0])
    ws.append([2, "18/03/1996", 9, 39, 37, 49, 43, 41, 1])
    ws.append([3, datetime(1996, 3, 25), "36", "30", "10", "11", "29", "47", 0])
    ws.append([4, "01/04/1996", 1, 2, 3, 4, 5, 61, 0])
    ws.append([5, "08/04/1996", 1, 1, 3, 4, 5, 6, 0])
    ws.append([6, None, 1, 2, 3, 4, 5, 6, 0])
    path = tmp_path / "Mega-Sena.xlsx"
    wb.save(path)
    return path


def test_parse_date_br():
    assert parse_date_br("11/03/1996") == date(1996, 3, 11)
    assert parse_date_br("1996-03-11") == date(1996, 3, 11)
    assert parse_date_br(datetime(1996, 3, 11, 20, 0)) == date(1996, 3, 11)
    assert parse_date_br("soon") is None
    assert parse_date_br(None) is None


def test_load_draws_skips_invalid_rows(results_xlsx):
    draws = load_draws_from_xlsx(results_xlsx)
    assert [d.contest_number for d in draws] == [1, 2, 3]
    assert draws[0].numbers == [4, 5, 30, 33, 41, 52]
    assert draws[0].draw_date == "1996-03-11"
    assert draws[2].draw_date == "1996-03-25"


def test_missing_header(tmp_path):
    wb = Workbook()
    wb.active.append(["nothing", "here"])
    path = tmp_path / "empty.xlsx"
    wb.save(path)
    with pytest.raises(ValueError):
        load_draws_from_xlsx(path)


def test_import_is_idempotent(db, results_xlsx):
    draws = load_draws_from_xlsx(results_xlsx)
    assert import_draws(db, draws) == 3
    import_draws(db, draws)
    assert db["historicaldraw"].count_documents({}) == 3


class FakeResponse:
    def __init__(self, content, status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code != 200:
            raise RuntimeError(f"HTTP {self.status_code}")


def test_download_results(tmp_path, monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse(b"xlsx-bytes")

    monkeypatch.setattr(history.requests, "get", fake_get)
    dest = download_results(tmp_path / "out.xlsx", url="https://example.test/results")
    assert dest.read_bytes() == b"xlsx-bytes"
    assert calls == ["https://example.test/results"]


def test_download_empty_body(tmp_path, monkeypatch):
    monkeypatch.setattr(history.requests, "get", lambda url, timeout: FakeResponse(b""))
    with pytest.raises(ValueError):
        download_results(tmp_path / "out.xlsx", url="https://example.test/results")
