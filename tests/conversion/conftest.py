from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Optional

import pytest

from railtopo.conversion.domain.models import (
    ConnectionOrientation,
    Course,
    Position,
    RailNetwork,
    Switch,
    SwitchConnection,
    Terminal,
    TerminalConnection,
    Track,
    TrackObjects,
)
from railtopo.conversion.domain.topology import AB, SchematicLayout, SegmentEnd, Topology
from railtopo.conversion.parser.network_loader import parse_network
from railtopo.conversion.utils.logging import release_logger

REFERENCE_DIR = Path(__file__).resolve().parents[2] / "data" / "reference"


@pytest.fixture(autouse=True)
def _release_package_logger():
    yield
    release_logger()


@pytest.fixture
def station_path() -> Path:
    return REFERENCE_DIR / "station_sample.json"


@pytest.fixture
def station_document(station_path) -> dict:
    return json.loads(station_path.read_text(encoding="utf-8"))


@pytest.fixture
def station_network(station_document) -> RailNetwork:
    return parse_network(station_document)


def _grid_layout(topology: Topology) -> SchematicLayout:
    """Node ``i`` sits at ``(10 * i, 0)``; each segment gets its own bend point."""

    ends = topology.endpoint_index()

    def node_point(segment: int, side: AB):
        node_port = ends[SegmentEnd(segment, side)]
        return (10.0 * node_port.node, 0.0)

    polylines = [
        [node_point(idx, AB.A), (1000.0 + idx, 500.0 + idx), node_point(idx, AB.B)]
        for idx in range(len(topology.segments))
    ]
    return SchematicLayout(polylines=polylines)


@pytest.fixture
def grid_layout():
    return _grid_layout


def _make_track(
    track_id: str,
    length: float,
    *,
    begin: Optional[TerminalConnection] = None,
    end: Optional[TerminalConnection] = None,
    switches: Iterable = (),
    objects: Optional[TrackObjects] = None,
    begin_mileage: Optional[float] = None,
    end_mileage: Optional[float] = None,
) -> Track:
    return Track(
        id=track_id,
        begin=Terminal(f"{track_id}b", Position(0.0, begin_mileage), begin or TerminalConnection.buffer_stop()),
        end=Terminal(f"{track_id}e", Position(float(length), end_mileage), end or TerminalConnection.buffer_stop()),
        switches=list(switches),
        objects=objects or TrackObjects(),
    )


@pytest.fixture
def make_track():
    return _make_track


def _make_switch(
    switch_id: str,
    offset: float,
    *,
    ref: str,
    course: Optional[Course] = Course.LEFT,
    orientation: ConnectionOrientation = ConnectionOrientation.OUTGOING,
    radius: Optional[float] = None,
    continue_course: Optional[Course] = None,
    continue_radius: Optional[float] = None,
) -> Switch:
    return Switch(
        id=switch_id,
        pos=Position(float(offset)),
        connections=[SwitchConnection(f"{switch_id}c", ref, orientation, course=course, radius=radius)],
        track_continue_course=continue_course,
        track_continue_radius=continue_radius,
    )


@pytest.fixture
def make_switch():
    return _make_switch
