"""Shared constants for the track/topology conversion."""
from __future__ import annotations

from pathlib import Path

# Boundary snapping tolerance for "is this switch at the segment/track end".
POSITION_EPSILON = 1e-6

# Rounding used when grouping polyline end points into one location.
LOCATION_DECIMALS = 6

SCHEMA_JSON_PATH = Path(__file__).resolve().parents[1] / "data" / "network.schema.json"

LOG_FILE_NAME = "railtopo.log"
TOPOLOGY_FILE_NAME = "topology.json"
EXPORT_FILE_NAME = "network.export.json"

SCHEMA_VERSION = "1.0"
