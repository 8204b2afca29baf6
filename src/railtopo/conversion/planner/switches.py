"""Resolve switch and crossing geometry from partial railML attributes."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..domain.models import ConnectionOrientation, Course, Crossing, SwitchConnection, TrackSwitch
from ..domain.topology import AB, LEFT, RIGHT, TRUNK, Port, Side, crossing_port
from ..utils.errors import (
    SwitchConnectionMissing,
    SwitchConnectionTooMany,
    SwitchCourseUnknown,
    SwitchOrientationInvalid,
)

# Sides are meaningless for a crossing; this fills the slot.
CROSSING_PLACEHOLDER_SIDE = Side.LEFT

_COURSE_PORTS = {
    Course.STRAIGHT: TRUNK,
    Course.LEFT: LEFT,
    Course.RIGHT: RIGHT,
}


@dataclass(frozen=True)
class SwitchInfo:
    switch_id: str
    reference: SwitchConnection
    deviating_side: Side
    geometry_side: Side
    direction: AB
    pos: float
    is_crossing: bool = False

    @property
    def deviating_port(self) -> Port:
        if self.is_crossing:
            return crossing_port(self.direction.opposite(), 1)
        return self.deviating_side.to_port()

    def segment_ports(self) -> Tuple[Port, Port]:
        """Ports for the closing and the opening segment end, in that order."""
        if self.is_crossing:
            ports = (crossing_port(AB.A, 0), crossing_port(AB.B, 0))
        else:
            ports = (TRUNK, self.deviating_side.opposite().to_port())
        if self.direction is AB.B:
            return ports[1], ports[0]
        return ports

    def connection_port(self, connection: SwitchConnection) -> Port:
        if self.is_crossing:
            return self.deviating_port
        if connection.course is not None:
            return _COURSE_PORTS[connection.course]
        return self.deviating_port


def course_side(course: Optional[Course]) -> Optional[Side]:
    if course is Course.LEFT:
        return Side.LEFT
    if course is Course.RIGHT:
        return Side.RIGHT
    return None


def _direction(switch_id: str, connection: SwitchConnection) -> AB:
    if connection.orientation == ConnectionOrientation.OUTGOING:
        return AB.A
    if connection.orientation == ConnectionOrientation.INCOMING:
        return AB.B
    raise SwitchOrientationInvalid(switch_id)


def _reference_course(switch: TrackSwitch) -> Tuple[SwitchConnection, Course]:
    # railML 2.5 may list trunk and deviating rail; the first sided course wins.
    for connection in switch.connections:
        if course_side(connection.course) is not None:
            return connection, connection.course
    fallback = switch.track_continue_course.opposite() if switch.track_continue_course else None
    if fallback is None:
        raise SwitchCourseUnknown(switch.id)
    return switch.connections[0], fallback


def switch_info(switch: TrackSwitch) -> SwitchInfo:
    connections: List[SwitchConnection] = list(switch.connections)
    if not connections:
        raise SwitchConnectionMissing(switch.id)

    if isinstance(switch, Crossing):
        if len(connections) > 1:
            raise SwitchConnectionTooMany(switch.id)
        connection = connections[0]
        return SwitchInfo(
            switch_id=switch.id,
            reference=connection,
            deviating_side=CROSSING_PLACEHOLDER_SIDE,
            geometry_side=CROSSING_PLACEHOLDER_SIDE,
            direction=_direction(switch.id, connection),
            pos=switch.pos.offset,
            is_crossing=True,
        )

    connection, course = _reference_course(switch)
    deviating_side = course_side(course)
    radius = connection.radius if connection.radius is not None else 0.0
    continue_radius = (
        switch.track_continue_radius if switch.track_continue_radius is not None else math.inf
    )
    # A "deviating" rail with the gentler curve is drawn on the other side.
    geometry_side = deviating_side.opposite() if radius > continue_radius else deviating_side

    return SwitchInfo(
        switch_id=switch.id,
        reference=connection,
        deviating_side=deviating_side,
        geometry_side=geometry_side,
        direction=_direction(switch.id, connection),
        pos=switch.pos.offset,
    )


def registered_connections(switch: TrackSwitch) -> List[SwitchConnection]:
    """Rail connections that publish a node-side reference."""
    if isinstance(switch, Crossing):
        return list(switch.connections[:1])
    return list(switch.connections)


__all__ = [
    "CROSSING_PLACEHOLDER_SIDE",
    "SwitchInfo",
    "course_side",
    "registered_connections",
    "switch_info",
]
