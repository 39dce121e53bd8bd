"""
route_stitcher.py — Join a relation's way members into continuous chains.

Each way is appended to the first existing chain whose last point equals the
way's first point, otherwise it starts a new chain.  The scan is greedy and
order-dependent: there is no backtracking, no reverse-direction matching and
no later merging of chains that a subsequent way happens to bridge.
"""

import logging

logger = logging.getLogger(__name__)

Point = tuple[float, float]
Chain = list[Point]


def member_points(member: dict) -> list[Point]:
    """Extract (lat, lon) pairs from an Overpass ``out geom`` member."""
    points = []
    for node in member.get("geometry") or []:
        if node is None:
            continue
        lat, lon = node.get("lat"), node.get("lon")
        if lat is None or lon is None:
            continue
        points.append((lat, lon))
    return points


def find_chain(chains: list[Chain], first: Point) -> Chain | None:
    """Return the first chain ending at ``first``, or None."""
    for chain in chains:
        if chain and chain[-1] == first:
            return chain
    return None


def stitch_members(chains: list[Chain], members: list[dict]) -> list[Chain]:
    """
    Extend ``chains`` in place with the way members of one relation.

    Non-way members and ways without geometry are skipped.  The list is
    returned for convenience; it is the same object that was passed in.
    """
    for member in members:
        if member.get("type") != "way":
            continue
        points = member_points(member)
        if not points:
            logger.debug(f"Skipping way {member.get('ref')} with no geometry")
            continue

        chain = find_chain(chains, points[0])
        if chain is not None:
            # Seam point is already the chain's last point
            chain.extend(points[1:])
        else:
            chains.append(list(points))
    return chains
