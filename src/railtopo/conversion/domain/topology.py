"""Port-graph model produced by the forward conversion.

Nodes and segments live in ordered lists and are referenced by their integer
index. Indices are only meaningful for the :class:`Topology` they came from.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from ..utils.constants import LOCATION_DECIMALS
from .models import TrackObjects


class AB(str, Enum):
    A = "A"
    B = "B"

    def opposite(self) -> "AB":
        return AB.B if self is AB.A else AB.A


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    def opposite(self) -> "Side":
        return Side.RIGHT if self is Side.LEFT else Side.LEFT

    def to_port(self) -> "Port":
        return LEFT if self is Side.LEFT else RIGHT


class PortKind(str, Enum):
    TRUNK = "trunk"
    LEFT = "left"
    RIGHT = "right"
    CROSSING = "crossing"
    SINGLE = "single"
    CONT_A = "contA"
    CONT_B = "contB"


@dataclass(frozen=True)
class Port:
    """Attachment point on a node; ``end``/``rail`` are set for crossing ports only."""

    kind: PortKind
    end: Optional[AB] = None
    rail: Optional[int] = None

    def other_ports(self) -> List[Tuple["Port", int]]:
        """Topologically adjacent ports with their direction multiplier."""
        if self.kind == PortKind.TRUNK:
            return [(LEFT, 1), (RIGHT, 1)]
        if self.kind == PortKind.LEFT:
            return [(RIGHT, -1), (TRUNK, 1)]
        if self.kind == PortKind.RIGHT:
            return [(LEFT, -1), (TRUNK, 1)]
        if self.kind == PortKind.SINGLE:
            return []
        if self.kind == PortKind.CROSSING:
            return [(crossing_port(self.end.opposite(), self.rail), 1)]
        if self.kind == PortKind.CONT_A:
            return [(CONT_B, 1)]
        return [(CONT_A, 1)]

    @property
    def label(self) -> str:
        if self.kind == PortKind.CROSSING:
            return f"crossing.{self.end.value}.{self.rail}"
        return self.kind.value


TRUNK = Port(PortKind.TRUNK)
LEFT = Port(PortKind.LEFT)
RIGHT = Port(PortKind.RIGHT)
SINGLE = Port(PortKind.SINGLE)
CONT_A = Port(PortKind.CONT_A)
CONT_B = Port(PortKind.CONT_B)


def crossing_port(end: AB, rail: int) -> Port:
    return Port(PortKind.CROSSING, end=end, rail=rail)


class NodeKind(str, Enum):
    BUFFER_STOP = "bufferStop"
    OPEN_END = "openEnd"
    MACROSCOPIC_NODE = "macroscopicNode"
    SWITCH = "switch"
    CROSSING = "crossing"
    CONTINUATION = "continuation"


@dataclass(frozen=True)
class TopoNode:
    kind: NodeKind
    side: Optional[Side] = None
    name: Optional[str] = None

    @classmethod
    def switch(cls, side: Side) -> "TopoNode":
        return cls(NodeKind.SWITCH, side=side)


@dataclass
class TrackSegment:
    source_track: str
    sequence: int
    offset: float
    length: float = 0.0
    objects: TrackObjects = field(default_factory=TrackObjects)

    @property
    def end_offset(self) -> float:
        return self.offset + self.length


class SegmentEnd(NamedTuple):
    segment: int
    side: AB


class NodePort(NamedTuple):
    node: int
    port: Port


class Connection(NamedTuple):
    segment_end: SegmentEnd
    node_port: NodePort


@dataclass
class Topology:
    segments: List[TrackSegment] = field(default_factory=list)
    nodes: List[TopoNode] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)

    def add_node(self, node: TopoNode) -> int:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def add_segment(self, segment: TrackSegment) -> int:
        self.segments.append(segment)
        return len(self.segments) - 1

    def connect(self, segment_end: SegmentEnd, node_port: NodePort) -> None:
        self.connections.append(Connection(SegmentEnd(*segment_end), NodePort(*node_port)))

    def endpoint_index(self) -> Dict[SegmentEnd, NodePort]:
        """Map each connected segment end to its node port (first edge wins)."""
        index: Dict[SegmentEnd, NodePort] = {}
        for segment_end, node_port in self.connections:
            index.setdefault(segment_end, node_port)
        return index

    def segments_of(self, track_id: str) -> List[TrackSegment]:
        return [segment for segment in self.segments if segment.source_track == track_id]


Point = Tuple[float, float]


def location_key(point: Point) -> Point:
    return (round(float(point[0]), LOCATION_DECIMALS), round(float(point[1]), LOCATION_DECIMALS))


@dataclass(frozen=True)
class SchematicLayout:
    """Polyline geometry per segment, supplied by the layout collaborator."""

    polylines: Sequence[Sequence[Point]]

    def endpoint(self, segment: int, side: AB) -> Point:
        line = self.polylines[segment]
        return location_key(line[0] if side is AB.A else line[-1])

    def signature(self, segment: int) -> Tuple[Point, ...]:
        points = tuple(location_key(pt) for pt in self.polylines[segment])
        return min(points, tuple(reversed(points)))
