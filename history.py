"""
Historical draws

Downloads the official Mega-Sena results spreadsheet, parses it, and upserts
the draws into the "historicaldraw" collection that feeds the historical
frequency score.
"""

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import requests
from openpyxl import load_workbook
from pydantic import ValidationError as SchemaError

from config import HISTORY_URL, NUMBERS_PER_BET
from database import now_utc
from schemas import HistoricalDraw

logger = logging.getLogger(__name__)


def download_results(dest: Union[str, Path], url: str = HISTORY_URL, timeout: int = 45) -> Path:
    dest = Path(dest)
    logger.info("Downloading results from %s", url)
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    if not resp.content:
        raise ValueError("Empty results download")
    dest.write_bytes(resp.content)
    logger.info("Saved %d bytes to %s", len(resp.content), dest)
    return dest


# ---------- XLSX parsing ----------
def _norm(v: object) -> str:
    if v is None:
        return ""
    return str(v).strip().lower().replace(" ", "").replace("_", "")


def parse_date_br(value: object) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    txt = str(value).strip()
    m = re.match(r"^(\d{2})/(\d{2})/(\d{4})$", txt)
    if m:
        d, mo, y = map(int, m.groups())
        return date(y, mo, d)
    m = re.match(r"^(\d{4})-(\d{2})-(\d{2})", txt)
    if m:
        y, mo, d = map(int, m.groups())
        return date(y, mo, d)
    return None


def find_header_row(ws, max_scan_rows: int = 25) -> Tuple[int, Dict[str, int]]:
    """Locate the row holding Concurso, Data do Sorteio and Bola1..Bola6."""
    for r in range(1, max_scan_rows + 1):
        cols: Dict[str, int] = {}
        for c in range(1, (ws.max_column or 1) + 1):
            key = _norm(ws.cell(r, c).value)
            if key:
                cols[key] = c

        if "concurso" in cols and all(f"bola{i}" in cols for i in range(1, NUMBERS_PER_BET + 1)):
            out = {"concurso": cols["concurso"]}
            for name in ("datadosorteio", "datasorteio", "data"):
                if name in cols:
                    out["data"] = cols[name]
                    break
            for i in range(1, NUMBERS_PER_BET + 1):
                out[f"bola{i}"] = cols[f"bola{i}"]
            return r, out

    raise ValueError("Could not find the results header (Concurso, Bola1..Bola6)")


def load_draws_from_xlsx(path: Union[str, Path]) -> List[HistoricalDraw]:
    wb = load_workbook(path, data_only=True)
    ws = wb[wb.sheetnames[0]]
    header_row, cols = find_header_row(ws)

    draws: List[HistoricalDraw] = []
    skipped = 0
    for r in range(header_row + 1, ws.max_row + 1):
        contest = ws.cell(r, cols["concurso"]).value
        if contest is None:
            continue
        try:
            draw_date = parse_date_br(ws.cell(r, cols["data"]).value) if "data" in cols else None
            if draw_date is None:
                raise ValueError("missing draw date")
            draws.append(HistoricalDraw(
                contest_number=int(str(contest).strip()),
                draw_date=draw_date.isoformat(),
                numbers=[int(str(ws.cell(r, cols[f"bola{i}"]).value).strip()) for i in range(1, NUMBERS_PER_BET + 1)],
            ))
        except (ValueError, SchemaError) as e:
            skipped += 1
            logger.debug("Skipping row %d: %s", r, e)

    logger.info("Parsed %d draws from %s (%d rows skipped)", len(draws), path, skipped)
    return draws


def import_draws(db, draws: List[HistoricalDraw]) -> int:
    collection = db["historicaldraw"]
    for draw in draws:
        doc = draw.model_dump()
        doc["updated_at"] = now_utc()
        collection.update_one({"contest_number": draw.contest_number}, {"$set": doc}, upsert=True)
    logger.info("Imported %d historical draws", len(draws))
    return len(draws)
