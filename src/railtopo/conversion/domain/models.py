"""Domain models for the track-centric network description."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from ..utils.constants import SCHEMA_JSON_PATH


class Course(str, Enum):
    STRAIGHT = "straight"
    LEFT = "left"
    RIGHT = "right"

    def opposite(self) -> Optional["Course"]:
        if self is Course.LEFT:
            return Course.RIGHT
        if self is Course.RIGHT:
            return Course.LEFT
        return None


class ConnectionOrientation(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    RIGHT_ANGLED = "rightAngled"
    UNKNOWN = "unknown"
    OTHER = "other"


class TrackDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class SignalType(str, Enum):
    MAIN = "main"
    DISTANT = "distant"
    REPEATER = "repeater"
    COMBINED = "combined"
    SHUNTING = "shunting"


class SignalFunction(str, Enum):
    EXIT = "exit"
    HOME = "home"
    BLOCKING = "blocking"
    INTERMEDIATE = "intermediate"
    OTHER = "other"


class TerminalKind(str, Enum):
    BUFFER_STOP = "bufferStop"
    OPEN_END = "openEnd"
    MACROSCOPIC_NODE = "macroscopicNode"
    CONNECTION = "connection"


@dataclass(frozen=True)
class Position:
    offset: float
    mileage: Optional[float] = None
    geo_coord: Optional[str] = None


@dataclass(frozen=True)
class TerminalConnection:
    """How a track end attaches to the rest of the network.

    ``own_id``/``ref`` are only set for :attr:`TerminalKind.CONNECTION`;
    ``name`` only for macroscopic boundary nodes.
    """

    kind: TerminalKind
    own_id: Optional[str] = None
    ref: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def buffer_stop(cls) -> "TerminalConnection":
        return cls(TerminalKind.BUFFER_STOP)

    @classmethod
    def open_end(cls) -> "TerminalConnection":
        return cls(TerminalKind.OPEN_END)

    @classmethod
    def macroscopic(cls, name: Optional[str] = None) -> "TerminalConnection":
        return cls(TerminalKind.MACROSCOPIC_NODE, name=name)

    @classmethod
    def connection(cls, own_id: str, ref: str) -> "TerminalConnection":
        return cls(TerminalKind.CONNECTION, own_id=own_id, ref=ref)

    @property
    def is_named(self) -> bool:
        return self.kind == TerminalKind.CONNECTION


@dataclass(frozen=True)
class Terminal:
    id: str
    pos: Position
    connection: TerminalConnection


@dataclass(frozen=True)
class SwitchConnection:
    id: str
    ref: str
    orientation: ConnectionOrientation
    course: Optional[Course] = None
    radius: Optional[float] = None
    max_speed: Optional[float] = None
    passable: Optional[bool] = None


@dataclass(frozen=True)
class Switch:
    id: str
    pos: Position
    connections: List[SwitchConnection] = field(default_factory=list)
    name: Optional[str] = None
    description: Optional[str] = None
    length: Optional[float] = None
    track_continue_course: Optional[Course] = None
    track_continue_radius: Optional[float] = None


@dataclass(frozen=True)
class Crossing:
    id: str
    pos: Position
    connections: List[SwitchConnection] = field(default_factory=list)
    track_continue_course: Optional[Course] = None
    track_continue_radius: Optional[float] = None
    normal_position: Optional[Course] = None
    length: Optional[float] = None


TrackSwitch = Union[Switch, Crossing]


# Positioned elements ---------------------------------------------------------


@dataclass(frozen=True)
class Signal:
    id: str
    pos: Position
    name: Optional[str] = None
    dir: TrackDirection = TrackDirection.UP
    sight: Optional[float] = None
    signal_type: SignalType = SignalType.MAIN
    function: Optional[SignalFunction] = None
    code: Optional[str] = None
    switchable: Optional[bool] = None
    ocp_station_ref: Optional[str] = None


@dataclass(frozen=True)
class Balise:
    id: str
    pos: Position
    name: Optional[str] = None


@dataclass(frozen=True)
class TrainDetector:
    id: str
    pos: Position
    axle_counting: Optional[bool] = None
    direction_detection: Optional[bool] = None
    medium: Optional[str] = None


@dataclass(frozen=True)
class TrackCircuitBorder:
    id: str
    pos: Position
    insulated_rail: Optional[str] = None


@dataclass(frozen=True)
class Derailer:
    id: str
    pos: Position
    dir: Optional[TrackDirection] = None
    derail_side: Optional[str] = None
    code: Optional[str] = None


@dataclass(frozen=True)
class TrainProtectionElement:
    id: str
    pos: Position
    dir: Optional[TrackDirection] = None
    medium: Optional[str] = None
    system: Optional[str] = None


@dataclass(frozen=True)
class TrainProtectionElementGroup:
    id: str
    pos: Position
    element_refs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PlatformEdge:
    id: str
    pos: Position
    name: Optional[str] = None
    dir: TrackDirection = TrackDirection.UP
    side: Optional[str] = None
    height: Optional[float] = None
    length: Optional[float] = None


@dataclass(frozen=True)
class SpeedChange:
    id: str
    pos: Position
    dir: TrackDirection = TrackDirection.UP
    vmax: Optional[str] = None
    signalised: Optional[bool] = None


@dataclass(frozen=True)
class LevelCrossing:
    id: str
    pos: Position
    protection: Optional[str] = None
    angle: Optional[float] = None


@dataclass(frozen=True)
class CrossSection:
    id: str
    pos: Position
    name: Optional[str] = None
    ocp_ref: Optional[str] = None
    section_type: Optional[str] = None


@dataclass(frozen=True)
class GeoMapping:
    id: str
    pos: Position
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None


PositionedElement = Union[
    Signal,
    Balise,
    TrainDetector,
    TrackCircuitBorder,
    Derailer,
    TrainProtectionElement,
    TrainProtectionElementGroup,
    PlatformEdge,
    SpeedChange,
    LevelCrossing,
    CrossSection,
    GeoMapping,
]


class ElementCategory(str, Enum):
    SIGNAL = "signals"
    BALISE = "balises"
    TRAIN_DETECTOR = "train_detectors"
    TRACK_CIRCUIT_BORDER = "track_circuit_borders"
    DERAILER = "derailers"
    TRAIN_PROTECTION_ELEMENT = "train_protection_elements"
    TRAIN_PROTECTION_GROUP = "train_protection_element_groups"
    PLATFORM_EDGE = "platform_edges"
    SPEED_CHANGE = "speed_changes"
    LEVEL_CROSSING = "level_crossings"
    CROSS_SECTION = "cross_sections"
    GEO_MAPPING = "geo_mappings"


ELEMENT_TYPES: Dict[ElementCategory, type] = {
    ElementCategory.SIGNAL: Signal,
    ElementCategory.BALISE: Balise,
    ElementCategory.TRAIN_DETECTOR: TrainDetector,
    ElementCategory.TRACK_CIRCUIT_BORDER: TrackCircuitBorder,
    ElementCategory.DERAILER: Derailer,
    ElementCategory.TRAIN_PROTECTION_ELEMENT: TrainProtectionElement,
    ElementCategory.TRAIN_PROTECTION_GROUP: TrainProtectionElementGroup,
    ElementCategory.PLATFORM_EDGE: PlatformEdge,
    ElementCategory.SPEED_CHANGE: SpeedChange,
    ElementCategory.LEVEL_CROSSING: LevelCrossing,
    ElementCategory.CROSS_SECTION: CrossSection,
    ElementCategory.GEO_MAPPING: GeoMapping,
}


@dataclass
class TrackObjects:
    """Positioned elements of a track or segment, one list per category."""

    signals: List[Signal] = field(default_factory=list)
    balises: List[Balise] = field(default_factory=list)
    train_detectors: List[TrainDetector] = field(default_factory=list)
    track_circuit_borders: List[TrackCircuitBorder] = field(default_factory=list)
    derailers: List[Derailer] = field(default_factory=list)
    train_protection_elements: List[TrainProtectionElement] = field(default_factory=list)
    train_protection_element_groups: List[TrainProtectionElementGroup] = field(default_factory=list)
    platform_edges: List[PlatformEdge] = field(default_factory=list)
    speed_changes: List[SpeedChange] = field(default_factory=list)
    level_crossings: List[LevelCrossing] = field(default_factory=list)
    cross_sections: List[CrossSection] = field(default_factory=list)
    geo_mappings: List[GeoMapping] = field(default_factory=list)

    def of(self, category: ElementCategory) -> List[PositionedElement]:
        return getattr(self, category.value)

    def categories(self) -> Iterator[Tuple[ElementCategory, List[PositionedElement]]]:
        for category in ElementCategory:
            yield category, self.of(category)

    def counts(self) -> Dict[ElementCategory, int]:
        return {category: len(items) for category, items in self.categories()}

    def __len__(self) -> int:
        return sum(len(items) for _, items in self.categories())


@dataclass(frozen=True)
class Track:
    id: str
    begin: Terminal
    end: Terminal
    switches: List[TrackSwitch] = field(default_factory=list)
    objects: TrackObjects = field(default_factory=TrackObjects)
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    track_type: Optional[str] = None
    main_dir: Optional[str] = None


@dataclass(frozen=True)
class TrackRef:
    ref: str
    sequence: Optional[int] = None


@dataclass(frozen=True)
class TrackGroup:
    id: str
    name: Optional[str] = None
    infrastructure_manager_ref: Optional[str] = None
    line_category: Optional[str] = None
    line_type: Optional[str] = None
    track_refs: Tuple[TrackRef, ...] = ()


@dataclass(frozen=True)
class Ocp:
    id: str
    name: Optional[str] = None
    ocp_type: Optional[str] = None


@dataclass(frozen=True)
class State:
    id: str
    disabled: Optional[bool] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class Metadata:
    dc_format: Optional[str] = None
    dc_identifier: Optional[str] = None
    dc_source: Optional[str] = None
    dc_title: Optional[str] = None
    dc_language: Optional[str] = None
    dc_creator: Optional[str] = None
    dc_description: Optional[str] = None
    dc_rights: Optional[str] = None


@dataclass(frozen=True)
class RailNetwork:
    tracks: List[Track] = field(default_factory=list)
    track_groups: List[TrackGroup] = field(default_factory=list)
    ocps: List[Ocp] = field(default_factory=list)
    states: List[State] = field(default_factory=list)
    metadata: Optional[Metadata] = None

    def element_counts(self) -> Dict[ElementCategory, int]:
        totals = {category: 0 for category in ElementCategory}
        for track in self.tracks:
            for category, count in track.objects.counts().items():
                totals[category] += count
        return totals


@dataclass(frozen=True)
class ConversionOptions:
    schema_path: Path = SCHEMA_JSON_PATH
    console_log: bool = False
    log_path: Optional[Path] = None
    log_level: int = logging.INFO
    topology_output: Optional[Path] = None
    layout_path: Optional[Path] = None
    export_path: Optional[Path] = None
