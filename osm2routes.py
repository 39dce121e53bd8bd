#!/usr/bin/env python3
"""
osm2routes.py — Fetch OSM road route relations and stitch them into polylines.

Importable usage (called by build_routes.py):
    from osm2routes import fetch_elements, aggregate_routes, encode_routes
    index = aggregate_routes(fetch_elements())
    encode_routes(index)

How it works:
  1. Queries Overpass for every road route relation in ROUTE_NETWORKS, with
     member geometry inlined ('out body geom;').
  2. Groups relations by their normalized ref (see route_keys.py).  The first
     relation seen for a ref fixes the route's type and name; every relation
     contributes its ways.
  3. Stitches ways end-to-start into chains (see route_stitcher.py).
  4. Encodes each chain as a Google polyline string.
"""

import logging
import math

import polyline
import requests

from config import OVERPASS_URL, OVERPASS_TIMEOUT, OVERPASS_QUERY, POLYLINE_PRECISION
from route_keys import RouteIndex, route_key
from route_stitcher import stitch_members

logger = logging.getLogger(__name__)


class OverpassError(RuntimeError):
    """The Overpass API could not be reached or returned an unusable response."""


# ── Overpass fetch ───────────────────────────────────────────────────

def fetch_elements(query: str = OVERPASS_QUERY, url: str = OVERPASS_URL) -> list:
    """POST ``query`` to Overpass and return the response's element list."""
    logger.info(f"Querying Overpass API at {url}")
    try:
        response = requests.post(url, data={"data": query}, timeout=OVERPASS_TIMEOUT)
    except requests.exceptions.RequestException as e:
        raise OverpassError(f"Network error: {e}") from e

    if response.status_code != 200:
        raise OverpassError(f"Overpass returned HTTP {response.status_code}")

    try:
        elements = response.json()["elements"]
    except (ValueError, KeyError, TypeError) as e:
        raise OverpassError(f"Malformed Overpass response: {e}") from e

    logger.info(f"Received {len(elements)} elements")
    return elements


# ── Aggregation ──────────────────────────────────────────────────────

def route_type(network: str | None) -> str | None:
    """'bg:national' -> 'national'."""
    if not network:
        return None
    parts = network.split(":")
    return parts[1] if len(parts) > 1 else None


def aggregate_routes(elements: list) -> RouteIndex:
    """
    Group route relations by ref and stitch their ways into chains.

    Relations without a ref are dropped.  Relations without members still
    register their route (type/name) on first sighting.
    """
    index = RouteIndex()
    skipped = 0

    for elem in elements:
        if elem.get("type", "relation") != "relation":
            continue
        tags = elem.get("tags") or {}
        key = route_key(tags.get("ref"))
        if key is None:
            skipped += 1
            logger.debug(f"Skipping relation {elem.get('id')} without ref")
            continue

        route = index.get_or_create(key, lambda: {
            "ref": key.value,
            "type": route_type(tags.get("network")),
            "name": tags.get("name") or None,
            "chains": [],
        })

        members = elem.get("members")
        if not members:
            continue
        stitch_members(route["chains"], members)

    if skipped:
        logger.info(f"Skipped {skipped} relations without a ref")
    logger.info(f"Aggregated {len(index)} routes")
    return index


# ── Encoding ─────────────────────────────────────────────────────────

def encode_routes(index: RouteIndex, precision: int = POLYLINE_PRECISION) -> RouteIndex:
    """Replace each route's ``chains`` with encoded ``polylines``, in place."""
    for route in index.values():
        route["polylines"] = [polyline.encode(chain, precision) for chain in route["chains"]]
        del route["chains"]
    return index


# ── Statistics ───────────────────────────────────────────────────────

def _haversine_km(lat1, lon1, lat2, lon2):
    """Return the great-circle distance in km between two points."""
    R = 6371.0  # Earth radius in km
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    return R * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _chain_length_km(chain):
    return sum(
        _haversine_km(chain[i][0], chain[i][1], chain[i + 1][0], chain[i + 1][1])
        for i in range(len(chain) - 1)
    )


def route_statistics(index: RouteIndex) -> dict:
    """Return summary statistics about stitched (not yet encoded) routes."""
    if not len(index):
        return {}

    route_types = {}
    total_chains = 0
    multi_chain = 0
    total_points = 0
    total_length_km = 0.0

    for route in index.values():
        rtype = route["type"] or "unknown"
        route_types[rtype] = route_types.get(rtype, 0) + 1
        chains = route["chains"]
        total_chains += len(chains)
        if len(chains) > 1:
            multi_chain += 1
        for chain in chains:
            total_points += len(chain)
            total_length_km += _chain_length_km(chain)

    return {
        "total_routes": len(index),
        "route_types": route_types,
        "total_chains": total_chains,
        "multi_chain_routes": multi_chain,
        "total_points": total_points,
        "total_length_km": round(total_length_km, 2),
    }
