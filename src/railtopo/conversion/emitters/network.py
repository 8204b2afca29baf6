"""Reverse conversion: port graph plus layout geometry back to tracks.

Segment endpoints are grouped by the location of their polyline ends. Each
location becomes a terminal connection, a pair of reciprocal continuation
references, or one synthesized switch/crossing hosted on a single track.
Segments whose provenance records cover a whole source track are merged back
into that track; everything else is exported one track per segment.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..builder.ids import (
    ElementIdCounter,
    format_geo_coord,
    location_node_id,
    switch_conn_id,
    track_begin_id,
    track_conn_id,
    track_end_id,
    track_id,
)
from ..domain.models import (
    ConnectionOrientation,
    Course,
    Crossing,
    Position,
    RailNetwork,
    Switch,
    SwitchConnection,
    Terminal,
    TerminalConnection,
    Track,
    TrackObjects,
    TrackSwitch,
)
from ..domain.topology import (
    AB,
    NodeKind,
    Point,
    Port,
    PortKind,
    SchematicLayout,
    SegmentEnd,
    TopoNode,
    Topology,
    TrackSegment,
)
from ..planner.provenance import ProvenanceTable, SegmentProvenance, TrackProvenance
from ..utils.errors import InvalidConfigurationError
from ..utils.logging import get_logger

LOG = get_logger()

_PORT_PRIORITY = {
    PortKind.TRUNK: 0,
    PortKind.LEFT: 1,
    PortKind.RIGHT: 2,
    PortKind.CROSSING: 3,
    PortKind.CONT_A: 4,
    PortKind.CONT_B: 4,
    PortKind.SINGLE: 5,
}

_PORT_COURSES = {
    PortKind.TRUNK: Course.STRAIGHT,
    PortKind.LEFT: Course.LEFT,
    PortKind.RIGHT: Course.RIGHT,
}


def port_priority(port: Optional[Port]) -> int:
    if port is None:
        return len(_PORT_PRIORITY)
    return _PORT_PRIORITY[port.kind]


def course_from_port(port: Optional[Port]) -> Optional[Course]:
    if port is None:
        return None
    return _PORT_COURSES.get(port.kind)


def _descending(record: SegmentProvenance) -> bool:
    if record.abs_pos_begin is None or record.abs_pos_end is None:
        return False
    return record.abs_pos_end < record.abs_pos_begin


@dataclass
class _PlannedTrack:
    id: str
    begin_id: str
    end_id: str
    segments: List[int]
    records: List[Optional[SegmentProvenance]]
    scales: List[float]
    starts: List[float]
    length: float
    abs_begin: Optional[float] = None
    descending: bool = False
    source: Optional[TrackProvenance] = None
    switches: List[TrackSwitch] = field(default_factory=list)

    def mileage(self, offset: float) -> Optional[float]:
        if self.abs_begin is None:
            return None
        return self.abs_begin - offset if self.descending else self.abs_begin + offset


@dataclass(frozen=True)
class _EndEntry:
    segment: int
    side: AB
    node: Optional[int]
    port: Optional[Port]

    @property
    def key(self) -> SegmentEnd:
        return SegmentEnd(self.segment, self.side)


class _Exporter:
    def __init__(
        self,
        topology: Topology,
        layout: SchematicLayout,
        provenance: Optional[ProvenanceTable],
    ) -> None:
        if len(layout.polylines) != len(topology.segments):
            raise InvalidConfigurationError(
                f"layout has {len(layout.polylines)} polyline(s) for {len(topology.segments)} segment(s)"
            )
        self.topology = topology
        self.layout = layout
        self.provenance = provenance
        self.planned: List[_PlannedTrack] = []
        self.owner: Dict[int, Tuple[int, int]] = {}
        self.terminals: Dict[SegmentEnd, TerminalConnection] = {}

    # -- track planning -----------------------------------------------------

    def plan_tracks(self) -> None:
        segments = self.topology.segments
        records = [self._record(idx) for idx in range(len(segments))]

        by_source: Dict[str, List[int]] = {}
        for idx, record in enumerate(records):
            if record is not None:
                by_source.setdefault(record.track.id, []).append(idx)

        merged: Dict[int, List[int]] = {}
        for members in by_source.values():
            ordered = sorted(members, key=lambda idx: records[idx].sequence)
            expected = list(range(records[ordered[0]].segment_count))
            if [records[idx].sequence for idx in ordered] == expected:
                merged[ordered[0]] = ordered
            else:
                LOG.info("provenance for track %s is incomplete; exporting its segments separately",
                         records[ordered[0]].track.id)
        merged_members = {idx for ordered in merged.values() for idx in ordered}

        for idx in range(len(segments)):
            if idx in merged:
                self._add_planned(self._merged_track(merged[idx], records))
            elif idx not in merged_members:
                self._add_planned(self._single_track(idx, records[idx]))

    def _record(self, idx: int) -> Optional[SegmentProvenance]:
        if self.provenance is None:
            return None
        return self.provenance.lookup(self.layout.signature(idx))

    def _scale(self, segment: TrackSegment, record: Optional[SegmentProvenance]) -> float:
        if record is None or record.abs_pos_begin is None or record.abs_pos_end is None:
            return 1.0
        if segment.length <= 0.0:
            return 1.0
        return abs(record.abs_pos_end - record.abs_pos_begin) / segment.length

    def _layout_segments(
        self,
        indices: Sequence[int],
        records: Sequence[Optional[SegmentProvenance]],
    ) -> Tuple[List[float], List[float], float]:
        scales: List[float] = []
        starts: List[float] = []
        cursor = 0.0
        for idx, record in zip(indices, records):
            segment = self.topology.segments[idx]
            scale = self._scale(segment, record)
            scales.append(scale)
            starts.append(cursor)
            cursor += segment.length * scale
        return scales, starts, cursor

    def _merged_track(self, indices: List[int], all_records: Sequence[Optional[SegmentProvenance]]) -> _PlannedTrack:
        records = [all_records[idx] for idx in indices]
        source = records[0].track
        scales, starts, length = self._layout_segments(indices, records)
        return _PlannedTrack(
            id=source.id,
            begin_id=source.begin_id,
            end_id=source.end_id,
            segments=list(indices),
            records=list(records),
            scales=scales,
            starts=starts,
            length=length,
            abs_begin=records[0].abs_pos_begin,
            descending=_descending(records[0]),
            source=source,
        )

    def _single_track(self, idx: int, record: Optional[SegmentProvenance]) -> _PlannedTrack:
        scales, starts, length = self._layout_segments([idx], [record])
        if record is None:
            new_id = track_id(idx)
            return _PlannedTrack(
                id=new_id,
                begin_id=track_begin_id(new_id),
                end_id=track_end_id(new_id),
                segments=[idx],
                records=[None],
                scales=scales,
                starts=starts,
                length=length,
            )
        new_id = record.segment_id
        last = record.segment_count - 1
        return _PlannedTrack(
            id=new_id,
            begin_id=record.track.begin_id if record.sequence == 0 else track_begin_id(new_id),
            end_id=record.track.end_id if record.sequence == last else track_end_id(new_id),
            segments=[idx],
            records=[record],
            scales=scales,
            starts=starts,
            length=length,
            abs_begin=record.abs_pos_begin,
            descending=_descending(record),
            source=record.track,
        )

    def _add_planned(self, planned: _PlannedTrack) -> None:
        position = len(self.planned)
        self.planned.append(planned)
        for k, idx in enumerate(planned.segments):
            self.owner[idx] = (position, k)

    # -- locations ------------------------------------------------------------

    def track_connection_id(self, end: SegmentEnd) -> Optional[str]:
        """Connection id published by a track end, or None for an interior join."""
        position, k = self.owner[end.segment]
        planned = self.planned[position]
        if end.side is AB.A and k == 0:
            return track_conn_id(planned.id, AB.A)
        if end.side is AB.B and k == len(planned.segments) - 1:
            return track_conn_id(planned.id, AB.B)
        return None

    def group_locations(self) -> Dict[Point, List[_EndEntry]]:
        attached = self.topology.endpoint_index()
        groups: Dict[Point, List[_EndEntry]] = {}
        for idx in range(len(self.topology.segments)):
            for side in (AB.A, AB.B):
                node_port = attached.get(SegmentEnd(idx, side))
                entry = _EndEntry(
                    segment=idx,
                    side=side,
                    node=node_port.node if node_port else None,
                    port=node_port.port if node_port else None,
                )
                groups.setdefault(self.layout.endpoint(idx, side), []).append(entry)
        return groups

    def resolve_location(self, point: Point, entries: List[_EndEntry]) -> None:
        node = self._node_of(entries)
        kind = node.kind if node is not None else None
        if kind == NodeKind.BUFFER_STOP:
            self._assign_all(entries, TerminalConnection.buffer_stop())
        elif kind == NodeKind.MACROSCOPIC_NODE:
            self._assign_all(entries, TerminalConnection.macroscopic(node.name))
        elif kind == NodeKind.CONTINUATION and len(entries) == 2:
            self._continuation(entries)
        elif kind in (NodeKind.SWITCH, NodeKind.CROSSING):
            self._switch(point, entries, is_crossing=kind == NodeKind.CROSSING)
        else:
            if kind not in (None, NodeKind.OPEN_END, NodeKind.CONTINUATION):
                LOG.debug("location %s has unmapped node kind %s; exporting open ends", point, kind)
            self._assign_all(entries, TerminalConnection.open_end())

    def _node_of(self, entries: List[_EndEntry]) -> Optional[TopoNode]:
        for entry in entries:
            if entry.node is not None:
                return self.topology.nodes[entry.node]
        return None

    def _assign_all(self, entries: List[_EndEntry], connection: TerminalConnection) -> None:
        for entry in entries:
            self.terminals[entry.key] = connection

    def _continuation(self, entries: List[_EndEntry]) -> None:
        first, second = entries
        first_id = self.track_connection_id(first.key)
        second_id = self.track_connection_id(second.key)
        if first_id is None or second_id is None:
            LOG.warning("continuation between %s and %s lies inside a track; exporting open ends",
                        first.key, second.key)
            self._assign_all(entries, TerminalConnection.open_end())
            return
        self.terminals[first.key] = TerminalConnection.connection(first_id, second_id)
        self.terminals[second.key] = TerminalConnection.connection(second_id, first_id)

    def _interior_host(self, entries: List[_EndEntry]) -> Optional[Tuple[int, float, Set[SegmentEnd]]]:
        present = {entry.key for entry in entries}
        for entry in entries:
            if entry.side is not AB.B:
                continue
            position, k = self.owner[entry.segment]
            planned = self.planned[position]
            if k + 1 >= len(planned.segments):
                continue
            following = SegmentEnd(planned.segments[k + 1], AB.A)
            if following in present:
                return position, planned.starts[k + 1], {entry.key, following}
        return None

    def _boundary_host(self, ordered: List[_EndEntry]) -> Tuple[int, float]:
        host = next((entry for entry in ordered if entry.port is not None and entry.port.kind == PortKind.TRUNK),
                    ordered[0])
        position, k = self.owner[host.segment]
        planned = self.planned[position]
        offset = planned.starts[k]
        if host.side is AB.B:
            offset += self.topology.segments[host.segment].length * planned.scales[k]
        return position, offset

    def _switch(self, point: Point, entries: List[_EndEntry], *, is_crossing: bool) -> None:
        ordered = sorted(entries, key=lambda entry: port_priority(entry.port))
        interior = self._interior_host(ordered)
        if interior is not None:
            position, offset, host_ends = interior
            members = [entry for entry in ordered if entry.key not in host_ends]
        else:
            position, offset = self._boundary_host(ordered)
            members = ordered

        switch_id = location_node_id("crs" if is_crossing else "swi", point)
        connections: List[SwitchConnection] = []
        for entry in members:
            own_id = self.track_connection_id(entry.key)
            if own_id is None:
                LOG.debug("%s: %s is interior to another track (skip)", switch_id, entry.key)
                continue
            conn_id = switch_conn_id(switch_id, len(connections))
            self.terminals[entry.key] = TerminalConnection.connection(own_id, conn_id)
            connections.append(
                SwitchConnection(
                    id=conn_id,
                    ref=own_id,
                    orientation=ConnectionOrientation.INCOMING,
                    course=course_from_port(entry.port),
                )
            )

        planned = self.planned[position]
        pos = Position(offset=offset, mileage=planned.mileage(offset), geo_coord=format_geo_coord(point))
        if is_crossing:
            element: TrackSwitch = Crossing(id=switch_id, pos=pos, connections=connections)
        else:
            element = Switch(
                id=switch_id,
                pos=pos,
                connections=connections,
                track_continue_course=Course.STRAIGHT,
            )
        planned.switches.append(element)

    # -- tracks ---------------------------------------------------------------

    def build_track(self, planned: _PlannedTrack) -> Track:
        counter = ElementIdCounter(planned.id)
        objects = TrackObjects()
        for k, idx in enumerate(planned.segments):
            segment = self.topology.segments[idx]
            record = planned.records[k]
            for category, items in segment.objects.categories():
                bucket = objects.of(category)
                for ordinal, element in enumerate(items):
                    offset = planned.starts[k] + element.pos.offset * planned.scales[k]
                    known = record.element_id(category, ordinal) if record is not None else None
                    pos = Position(offset=offset, mileage=planned.mileage(offset), geo_coord=element.pos.geo_coord)
                    bucket.append(dataclasses.replace(element, id=known or counter.next_id(category), pos=pos))

        first = SegmentEnd(planned.segments[0], AB.A)
        last = SegmentEnd(planned.segments[-1], AB.B)
        begin = Terminal(
            id=planned.begin_id,
            pos=Position(0.0, planned.mileage(0.0), format_geo_coord(self.layout.endpoint(*first))),
            connection=self.terminals.get(first, TerminalConnection.open_end()),
        )
        end = Terminal(
            id=planned.end_id,
            pos=Position(
                planned.length,
                planned.mileage(planned.length),
                format_geo_coord(self.layout.endpoint(*last)),
            ),
            connection=self.terminals.get(last, TerminalConnection.open_end()),
        )
        source = planned.source
        return Track(
            id=planned.id,
            begin=begin,
            end=end,
            switches=sorted(planned.switches, key=lambda sw: sw.pos.offset),
            objects=objects,
            code=source.code if source else None,
            name=source.name if source else None,
            description=source.description if source else None,
            track_type=source.track_type if source else None,
            main_dir=source.main_dir if source else None,
        )


def convert_topology_to_network(
    topology: Topology,
    layout: SchematicLayout,
    provenance: Optional[ProvenanceTable] = None,
) -> RailNetwork:
    """Rebuild a track-centric network from a port graph and its drawn geometry."""

    exporter = _Exporter(topology, layout, provenance)
    exporter.plan_tracks()
    groups = exporter.group_locations()
    for point, entries in groups.items():
        exporter.resolve_location(point, entries)
    tracks = [exporter.build_track(planned) for planned in exporter.planned]
    LOG.info("exported network: tracks=%d locations=%d", len(tracks), len(groups))

    if provenance is None:
        return RailNetwork(tracks=tracks)
    return RailNetwork(
        tracks=tracks,
        track_groups=list(provenance.track_groups),
        ocps=list(provenance.ocps),
        states=list(provenance.states),
        metadata=provenance.metadata,
    )


__all__ = ["convert_topology_to_network", "course_from_port", "port_priority"]
