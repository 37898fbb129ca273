"""
Storefront catalog pipeline: ingest candidates, re-check the catalog.

  ingest   read {url, source} candidates from a JSONL or CSV file and run
           them through canonicalize -> dedup -> verify -> classify -> upsert
  recheck  re-verify, strictly verify and health-probe stores that are due
  init-db  create the catalog tables (local runs; production uses Alembic)

Usage:
  python scripts/canonical/run_catalog_pipeline.py init-db
  python scripts/canonical/run_catalog_pipeline.py ingest candidates.jsonl
  python scripts/canonical/run_catalog_pipeline.py ingest candidates.csv --source reddit
  python scripts/canonical/run_catalog_pipeline.py recheck --limit 200

Both passes are idempotent and safe to re-run; ingestion skips stores the
catalog already knows.
"""
import sys
import os
sys.path.append(os.getcwd())

import argparse
import asyncio
import csv
import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from rich.console import Console
from rich.table import Table

from storefront_radar.core.config import settings

settings.logs_dir.mkdir(parents=True, exist_ok=True)
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(settings.logs_dir / "catalog_pipeline.log", mode="a"),
    ],
)
logger = logging.getLogger("storefront_radar.catalog_pipeline")

console = Console()


def read_candidates(path: Path, default_source: Optional[str] = None) -> Iterator[Dict[str, str]]:
    """
    Candidates from a .jsonl file (one object per line) or a .csv file with a
    ``url`` column and an optional ``source`` column. Unreadable lines are
    skipped with a warning.
    """
    if path.suffix.lower() == ".csv":
        with path.open(newline="", encoding="utf-8") as f:
            for row in csv.DictReader(f):
                url = (row.get("url") or "").strip()
                if url:
                    yield {"url": url, "source": row.get("source") or default_source or path.stem}
        return

    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except ValueError:
                logger.warning(f"{path}:{line_no}: not JSON, skipped")
                continue
            if isinstance(data, str):
                data = {"url": data}
            if not isinstance(data, dict):
                logger.warning(f"{path}:{line_no}: expected an object, skipped")
                continue
            data.setdefault("source", default_source or path.stem)
            yield data


def print_summary(title: str, rows: Dict[str, object]) -> None:
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="magenta")
    for key, value in rows.items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items()) or "-"
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)


async def cmd_ingest(args) -> int:
    from storefront_radar.catalog.workflow import CatalogPipeline

    path = Path(args.file)
    if not path.exists():
        logger.error(f"Candidate file not found: {path}")
        return 1

    candidates: List[Dict[str, str]] = list(read_candidates(path, args.source))
    logger.info(f"Loaded {len(candidates)} candidates from {path}")
    pipeline = CatalogPipeline(concurrency=args.concurrency)
    report = await pipeline.ingest(candidates)
    print_summary("Catalog ingestion", report.to_dict())

    if report.unsaved and args.unsaved_out:
        out = Path(args.unsaved_out)
        with out.open("a", encoding="utf-8") as f:
            for record in report.unsaved:
                f.write(json.dumps({"url": record.canonical_url, "source": record.source}) + "\n")
        logger.warning(f"{len(report.unsaved)} unsaved records written to {out}")
    return 0


async def cmd_recheck(args) -> int:
    from storefront_radar.catalog.recheck import RecheckPass
    from storefront_radar.catalog.service import stores_due_for_recheck
    from storefront_radar.core.database import get_async_db

    async with get_async_db() as session:
        urls = await stores_due_for_recheck(session, limit=args.limit)
    report = await RecheckPass(concurrency=args.concurrency).run(urls)
    print_summary("Catalog re-check", report.to_dict())
    for change in report.status_changes.changes:
        console.print(f"  {change.summary()}")
    return 0


async def cmd_init_db(args) -> int:
    from storefront_radar.core.database import init_db

    await init_db()
    logger.info("Catalog tables created")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Storefront catalog pipeline")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest candidates from a JSONL or CSV file")
    ingest.add_argument("file", help="Path to a .jsonl or .csv candidate file")
    ingest.add_argument("--source", help="Source label for rows that carry none")
    ingest.add_argument("--concurrency", type=int, help="Worker pool size (default: INGEST_CONCURRENCY)")
    ingest.add_argument("--unsaved-out", help="Append records that could not be saved to this JSONL file")

    recheck = sub.add_parser("recheck", help="Re-check stores that are due")
    recheck.add_argument("--limit", type=int, default=500, help="Max stores per run")
    recheck.add_argument("--concurrency", type=int, help="Worker pool size (default: RECHECK_CONCURRENCY)")

    sub.add_parser("init-db", help="Create catalog tables")

    args = parser.parse_args(argv)
    handlers = {"ingest": cmd_ingest, "recheck": cmd_recheck, "init-db": cmd_init_db}
    return asyncio.run(handlers[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
