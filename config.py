# config.py — Road routes build configuration
# Edit this file to change the Overpass endpoint, networks, output paths, etc.

# ── Overpass ─────────────────────────────────────────────────────────
OVERPASS_URL = "https://overpass-api.de/api/interpreter"
OVERPASS_TIMEOUT = 180

# Road route networks pulled from OSM.  The second colon segment
# ("motorway", "national", ...) becomes the route type in the output.
ROUTE_NETWORKS = ["bg:motorway", "bg:national", "bg:municipal"]

# Fixed query: road route relations with inline member geometry.
OVERPASS_QUERY = (
    "[out:json][timeout:25];"
    "("
    + "".join(
        f'relation["type"="route"]["route"="road"]["network"="{network}"];'
        for network in ROUTE_NETWORKS
    )
    + ");"
    "out body geom;"
)

# ── Cache / output files ─────────────────────────────────────────────
# Raw Overpass response, reused by --offline runs
CACHE_FILE = "road_routes.json"

OUTPUT_DIR = "output"
INDEX_FILE = "routes.json"
LOOKUP_FILE = "routes-map.js"
ROUTE_FILE_TEMPLATE = "route-{ref}.json"

# ── Encoding ─────────────────────────────────────────────────────────
# Decimal places kept by the polyline codec (5 = Google's standard)
POLYLINE_PRECISION = 5

# ── Logging ──────────────────────────────────────────────────────────
LOG_FILE = "build_routes.log"
