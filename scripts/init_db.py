#!/usr/bin/env python3
"""Initialize the page database and optionally seed it with pages from a YAML file.

Seed file format:

    pages:
      - url: https://www.objc.io
      - url: https://www.apple.com
        title: Apple
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import yaml

from pagestore.config import get_settings
from pagestore.db import PageStore, StoreError
from pagestore.models.page import NO_TITLE, AbsoluteURL, Page


def main() -> int:
    parser = argparse.ArgumentParser(description="Initialize the page database")
    parser.add_argument("--db-path", type=str, help="Override database path")
    parser.add_argument("--exist-ok", action="store_true", help="Tolerate an already-initialized database")
    parser.add_argument("--seed-pages", type=str, help="YAML file with page definitions")
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    if args.db_path:
        db_path = Path(args.db_path)
    else:
        db_path = settings.DATABASE_PATH
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)

    try:
        with PageStore(db_path, settings) as store:
            created = store.setup(exist_ok=args.exist_ok or settings.SETUP_EXIST_OK).result()
            print(f"Database {'initialized' if created else 'already initialized'} at: {db_path}")
            if args.seed_pages:
                _seed_pages(store, Path(args.seed_pages))
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("Done.")
    return 0


def _seed_pages(store: PageStore, path: Path) -> None:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    pages = []
    for p in data.get("pages", []):
        try:
            pages.append(Page(url=AbsoluteURL.parse(p["url"]), title=p.get("title") or NO_TITLE))
        except (KeyError, TypeError, ValueError) as e:
            print(f"  Skipping {p!r}: {e}")

    count = store.insert_many(pages).result()
    print(f"  Seeded {count} pages")


if __name__ == "__main__":
    sys.exit(main())
