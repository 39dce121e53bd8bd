#!/usr/bin/env python3
"""
build_routes.py — Bulgarian road routes polyline builder.

Stages:
  1. Fetch     — query Overpass for road route relations (or load cache)
  2. Aggregate — group relations by ref and stitch ways into chains
  3. Encode    — turn every chain into a Google polyline string
  4. Save      — write one JSON file per route, the routes.json index and
                 the routes-map.js lookup module

Usage:
    python3 build_routes.py                # full rebuild
    python3 build_routes.py --offline      # skip Overpass, use cached JSON
    python3 build_routes.py --out DIR      # write output files to DIR
    python3 build_routes.py --stats        # log route statistics
    python3 build_routes.py -h             # show this help

Any failure aborts the remaining stages and exits with status 1.  Files
already written by a failed save stage are left in place.
"""

import argparse
import json
import logging
import re
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

from config import (
    CACHE_FILE, OUTPUT_DIR, INDEX_FILE, LOOKUP_FILE, ROUTE_FILE_TEMPLATE, LOG_FILE,
)
from osm2routes import fetch_elements, aggregate_routes, encode_routes, route_statistics
from route_keys import RouteIndex

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def setup_logging(verbose: bool = False, log_file: str = LOG_FILE) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def route_filename(ref) -> str:
    """route-<ref>.json with whitespace runs in the ref replaced by '_'."""
    return ROUTE_FILE_TEMPLATE.format(ref=_WHITESPACE_RE.sub("_", str(ref)))


# ── Stage 1: Fetch ────────────────────────────────────────────────────

def fetch_routes(offline: bool, cache_file: str = CACHE_FILE) -> list:
    cache = Path(cache_file)

    if offline:
        if not cache.exists():
            raise FileNotFoundError(f"--offline requested but {cache_file} not found")
        logger.info(f"Offline mode, loading {cache_file}")
        return json.loads(cache.read_text(encoding="utf-8"))["elements"]

    elements = fetch_elements()
    cache.write_text(json.dumps({"elements": elements}), encoding="utf-8")
    logger.info(f"Raw response cached to {cache_file}")
    return elements


# ── Stage 4: Save ─────────────────────────────────────────────────────

def save_routes(index: RouteIndex, out_dir: Path) -> None:
    """Write per-route files, the index and the lookup module into ``out_dir``."""
    out_dir.mkdir(parents=True, exist_ok=True)

    for route in index.values():
        path = out_dir / route_filename(route["ref"])
        path.write_text(json.dumps(route, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Wrote {len(index)} route files to {out_dir}")

    summary = {
        "date": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "data": [
            {"ref": r["ref"], "type": r["type"], "name": r["name"]}
            for r in index.values()
        ],
    }
    (out_dir / INDEX_FILE).write_text(
        json.dumps(summary, indent=2, ensure_ascii=False), encoding="utf-8"
    )

    rows = ["export const routes_map = new Map();"]
    for key, route in index.items():
        rows.append(
            f"routes_map.set('{_js_string(str(key))}', "
            f"new URL('{_js_string(route_filename(route['ref']))}', import.meta.url));"
        )
    (out_dir / LOOKUP_FILE).write_text("\n".join(rows) + "\n", encoding="utf-8")
    logger.info(f"Wrote {INDEX_FILE} and {LOOKUP_FILE}")


def _js_string(value: str) -> str:
    """Escape a value for a single-quoted JS string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


# ── Main ─────────────────────────────────────────────────────────────

def build(offline: bool = False, out_dir: Path = Path(OUTPUT_DIR),
          cache_file: str = CACHE_FILE, stats: bool = False) -> RouteIndex:
    """Run fetch → aggregate → encode → save.  Exceptions propagate."""
    elements = fetch_routes(offline, cache_file)
    index = aggregate_routes(elements)
    if stats:
        logger.info(f"Route Statistics: {json.dumps(route_statistics(index), indent=2)}")
    encode_routes(index)
    save_routes(index, out_dir)
    return index


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Road routes polyline builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument("--offline", action="store_true",
                   help=f"Skip Overpass fetch, use cached {CACHE_FILE}")
    p.add_argument("--cache", metavar="FILE", default=CACHE_FILE,
                   help="Raw Overpass response cache file")
    p.add_argument("--out", metavar="DIR", default=OUTPUT_DIR,
                   help="Directory to write route files into")
    p.add_argument("--stats", action="store_true",
                   help="Log statistics about the stitched routes")
    p.add_argument("--verbose", action="store_true",
                   help="Enable debug logging")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    started = time.perf_counter()
    try:
        build(offline=args.offline, out_dir=Path(args.out),
              cache_file=args.cache, stats=args.stats)
    except Exception:
        logger.exception("Build failed")
        return 1

    logger.info(f"Data saved successfully. build: {time.perf_counter() - started:.3f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
