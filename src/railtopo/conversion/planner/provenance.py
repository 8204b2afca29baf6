"""Best-effort record of where each graph segment came from.

The table is keyed by the segment's polyline signature. Any later edit of the
polyline breaks the match and the exporter falls back to synthesized ids.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..builder.ids import segment_id
from ..domain.models import ElementCategory, Metadata, Ocp, RailNetwork, State, Track, TrackGroup
from ..domain.topology import Point, SchematicLayout, Topology, TrackSegment
from ..utils.logging import get_logger

LOG = get_logger()

Signature = Tuple[Point, ...]


@dataclass(frozen=True)
class TrackProvenance:
    id: str
    begin_id: str
    end_id: str
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    track_type: Optional[str] = None
    main_dir: Optional[str] = None
    abs_pos_begin: Optional[float] = None
    abs_pos_end: Optional[float] = None

    @classmethod
    def from_track(cls, track: Track) -> "TrackProvenance":
        return cls(
            id=track.id,
            begin_id=track.begin.id,
            end_id=track.end.id,
            code=track.code,
            name=track.name,
            description=track.description,
            track_type=track.track_type,
            main_dir=track.main_dir,
            abs_pos_begin=track.begin.pos.mileage,
            abs_pos_end=track.end.pos.mileage,
        )

    @property
    def has_absolute_position(self) -> bool:
        return self.abs_pos_begin is not None or self.abs_pos_end is not None


@dataclass(frozen=True)
class SegmentProvenance:
    segment_id: str
    track: TrackProvenance
    sequence: int
    segment_count: int
    abs_pos_begin: Optional[float] = None
    abs_pos_end: Optional[float] = None
    element_ids: Dict[ElementCategory, Tuple[str, ...]] = field(default_factory=dict)

    def element_id(self, category: ElementCategory, ordinal: int) -> Optional[str]:
        ids = self.element_ids.get(category, ())
        return ids[ordinal] if ordinal < len(ids) else None


@dataclass
class ProvenanceTable:
    segments: Dict[Signature, SegmentProvenance] = field(default_factory=dict)
    track_groups: List[TrackGroup] = field(default_factory=list)
    ocps: List[Ocp] = field(default_factory=list)
    states: List[State] = field(default_factory=list)
    metadata: Optional[Metadata] = None

    def lookup(self, signature: Signature) -> Optional[SegmentProvenance]:
        return self.segments.get(signature)


def _absolute_bounds(
    source: TrackProvenance,
    segment: TrackSegment,
    track_start: float,
    track_length: float,
) -> Tuple[Optional[float], Optional[float]]:
    """Slice of the source track's mileage span covered by ``segment``.

    With both terminal mileages known the span is spread proportionally over
    the segment lengths; with only one the segment offsets already carry it.
    """

    if source.abs_pos_begin is not None and source.abs_pos_end is not None and track_length > 0.0:
        ratio = (source.abs_pos_end - source.abs_pos_begin) / track_length
        begin = source.abs_pos_begin + (segment.offset - track_start) * ratio
        return begin, begin + segment.length * ratio
    if source.has_absolute_position:
        return segment.offset, segment.end_offset
    return None, None


def build_provenance(network: RailNetwork, topology: Topology, layout: SchematicLayout) -> ProvenanceTable:
    tracks = {track.id: TrackProvenance.from_track(track) for track in network.tracks}
    segment_counts: Dict[str, int] = {}
    extents: Dict[str, Tuple[float, float]] = {}
    for segment in topology.segments:
        segment_counts[segment.source_track] = segment_counts.get(segment.source_track, 0) + 1
        start, length = extents.get(segment.source_track, (segment.offset, 0.0))
        extents[segment.source_track] = (min(start, segment.offset), length + segment.length)

    table = ProvenanceTable(
        track_groups=list(network.track_groups),
        ocps=list(network.ocps),
        states=list(network.states),
        metadata=network.metadata,
    )
    collided: Set[Signature] = set()
    for idx, segment in enumerate(topology.segments):
        source = tracks.get(segment.source_track)
        if source is None:
            LOG.warning("segment %d refers to unknown track %s (no provenance)", idx, segment.source_track)
            continue
        count = segment_counts[segment.source_track]
        signature = layout.signature(idx)
        if signature in collided or signature in table.segments:
            LOG.warning("segment %d shares its polyline with another segment (no provenance)", idx)
            table.segments.pop(signature, None)
            collided.add(signature)
            continue
        abs_begin, abs_end = _absolute_bounds(source, segment, *extents[segment.source_track])
        table.segments[signature] = SegmentProvenance(
            segment_id=segment_id(source.id, segment.sequence, count),
            track=source,
            sequence=segment.sequence,
            segment_count=count,
            abs_pos_begin=abs_begin,
            abs_pos_end=abs_end,
            element_ids={
                category: tuple(element.id for element in items)
                for category, items in segment.objects.categories()
                if items
            },
        )
    LOG.info("provenance: %d of %d segment(s) recorded", len(table.segments), len(topology.segments))
    return table


__all__ = ["ProvenanceTable", "SegmentProvenance", "Signature", "TrackProvenance", "build_provenance"]
