"""Identifier helpers for exported tracks, terminals, switches and elements."""
from __future__ import annotations

from typing import Dict

from ..domain.models import ElementCategory
from ..domain.topology import AB, Point

ELEMENT_PREFIXES: Dict[ElementCategory, str] = {
    ElementCategory.SIGNAL: "sig",
    ElementCategory.BALISE: "bal",
    ElementCategory.TRAIN_DETECTOR: "tde",
    ElementCategory.TRACK_CIRCUIT_BORDER: "tcb",
    ElementCategory.DERAILER: "der",
    ElementCategory.TRAIN_PROTECTION_ELEMENT: "tpe",
    ElementCategory.TRAIN_PROTECTION_GROUP: "tpg",
    ElementCategory.PLATFORM_EDGE: "pe",
    ElementCategory.SPEED_CHANGE: "sc",
    ElementCategory.LEVEL_CROSSING: "lc",
    ElementCategory.CROSS_SECTION: "cs",
    ElementCategory.GEO_MAPPING: "gm",
}


def track_id(index: int) -> str:
    """Return the synthetic ID for the ``index``-th exported track (0-based)."""

    return f"tr{index + 1}"


def track_begin_id(track: str) -> str:
    return f"{track}tb"


def track_end_id(track: str) -> str:
    return f"{track}te"


def track_conn_id(track: str, end: AB) -> str:
    """Return the connection ID published by one end of an exported track."""

    return f"{track}c{1 if end is AB.A else 2}"


def segment_id(track: str, sequence: int, segment_count: int) -> str:
    """Return the ID of one piece of a source track split at its switches.

    A track that was never split keeps its own ID so single-segment tracks
    survive an export unchanged.
    """

    if segment_count <= 1:
        return track
    return f"{track}-s{sequence + 1}"


def _encode_coordinate(value: float) -> str:
    rounded = round(value, 6)
    token = str(int(rounded)) if float(rounded).is_integer() else repr(rounded).replace(".", "p")
    return f"m{token[1:]}" if token.startswith("-") else token


def location_node_id(prefix: str, point: Point) -> str:
    """Return the ID of a switch or crossing placed at ``point``, e.g. ``swi_12_m3``."""

    x, y = point
    return f"{prefix}_{_encode_coordinate(x)}_{_encode_coordinate(y)}"


def switch_conn_id(switch: str, index: int) -> str:
    return f"{switch}c{index + 1}"


def format_geo_coord(point: Point) -> str:
    return " ".join(_format_coord_value(v) for v in point)


def _format_coord_value(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return f"{value:.1f}"
    return repr(value)


class ElementIdCounter:
    """Per-track, per-category counters for synthesized element IDs."""

    def __init__(self, track: str) -> None:
        self.track = track
        self._counts: Dict[ElementCategory, int] = {}

    def next_id(self, category: ElementCategory) -> str:
        count = self._counts.get(category, 0) + 1
        self._counts[category] = count
        return f"{self.track}{ELEMENT_PREFIXES[category]}{count:02d}"
