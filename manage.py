#!/usr/bin/env python3
"""
manage.py

Admin commands for the bolão backend:
- create-bolao     opens a new pool (only one can be open at a time)
- import-history   loads Mega-Sena results from the official XLSX (downloads it with --download)
- recalculate      recomputes all number scores for the open pool
"""

import argparse
import logging
import sys
from pathlib import Path

from bolao import create_bolao, get_open_bolao
from config import BOLAO_NAME, DEFAULT_QUOTA, LOG_LEVEL
from database import db
from errors import BolaoError
from history import download_results, import_draws, load_draws_from_xlsx
from scoring import recompute_all

logging.basicConfig(
    format="%(asctime)s - %(levelname)s - %(message)s",
    level=LOG_LEVEL,
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Bolão admin commands")
    sub = ap.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-bolao", help="Open a new bolão")
    create.add_argument("--name", default=BOLAO_NAME)
    create.add_argument("--quota", type=float, default=DEFAULT_QUOTA)

    history = sub.add_parser("import-history", help="Import historical draws")
    history.add_argument("path", nargs="?", default="Mega-Sena.xlsx")
    history.add_argument("--download", action="store_true", help="Download the results file first")

    sub.add_parser("recalculate", help="Recompute scores for the open bolão")
    return ap


def run(args, db) -> int:
    if args.command == "create-bolao":
        bolao = create_bolao(db, args.name, args.quota)
        print(f"Created bolão {bolao['bolao_id']}: {bolao['name']} (R$ {bolao['quota_value']:.2f})")
    elif args.command == "import-history":
        path = Path(args.path)
        if args.download:
            download_results(path)
        count = import_draws(db, load_draws_from_xlsx(path))
        print(f"Imported {count} draws")
    elif args.command == "recalculate":
        bolao = get_open_bolao(db)
        rows = recompute_all(db, bolao["bolao_id"])
        print(f"Recomputed {len(rows)} scores for {bolao['name']}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if db is None:
        logger.error("DATABASE_URL and DATABASE_NAME must be set")
        return 2
    try:
        return run(args, db)
    except BolaoError as e:
        logger.error("%s", e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
