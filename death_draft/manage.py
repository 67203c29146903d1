import argparse
import asyncio
import csv
import logging
from pathlib import Path
from typing import List, Tuple

from redis.asyncio import Redis

from death_draft.db import Session, engine
from death_draft.load_secrets import redis_host, redis_port
from death_draft.models.schemas import Base
from death_draft.services import draft_db

logging.basicConfig(level=logging.INFO)


def read_celebrity_csv(path: Path) -> List[Tuple[str, int]]:
    """Read `name,age` rows from a CSV file with a header line

    Args:
        path (Path): CSV file

    Returns:
        List[Tuple[str, int]]: (name, age) pairs, blank names skipped
    """
    celebrities: List[Tuple[str, int]] = []
    with path.open(newline="", encoding="utf-8") as f:
        for line_number, row in enumerate(csv.DictReader(f), start=2):
            name = (row.get("name") or "").strip()
            if not name:
                continue
            try:
                age = int(row.get("age") or "")
            except ValueError:
                raise ValueError(f"{path}:{line_number}: age must be an integer") from None
            celebrities.append((name, age))
    return celebrities


async def load_celebrities(path: Path):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await draft_db.seed_draft_state(Session)
    added = await draft_db.load_celebrities(Session, read_celebrity_csv(path))
    print(f"Loaded {added} celebrities from {path}")


async def undo_last_pick():
    redis = Redis(host=redis_host, port=redis_port, decode_responses=True)
    try:
        removed = await draft_db.undo_last_pick(Session, redis)
    finally:
        await redis.aclose()
    if removed is None:
        print("No picks to undo")
    else:
        print(f"Removed pick #{removed.pick_number} (seat {removed.seat})")


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Celebrity death draft management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    load_parser = subparsers.add_parser("load-celebrities", help="Bulk-load the celebrity pool")
    load_parser.add_argument("path", type=Path, help="CSV file with name and age columns")

    subparsers.add_parser("undo-last-pick", help="Delete the most recent pick and rewind the turn")
    return parser


def main(argv=None):
    args = get_parser().parse_args(argv)
    if args.command == "load-celebrities":
        asyncio.run(load_celebrities(args.path))
    elif args.command == "undo-last-pick":
        asyncio.run(undo_last_pick())


if __name__ == "__main__":
    main()
