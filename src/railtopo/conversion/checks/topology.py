"""Invariant checks on a freshly built port graph."""
from __future__ import annotations

from collections import Counter

from ..domain.topology import AB, SegmentEnd, Topology
from ..utils.constants import POSITION_EPSILON
from ..utils.errors import TrackEndpointConflict, TrackEndpointMissing
from ..utils.logging import get_logger

LOG = get_logger()


def validate_topology(topology: Topology) -> None:
    """Every segment must have exactly one connection at each of its two ends."""
    seen = Counter(segment_end for segment_end, _ in topology.connections)
    for idx in range(len(topology.segments)):
        for side in (AB.A, AB.B):
            count = seen[SegmentEnd(idx, side)]
            if count == 0:
                raise TrackEndpointMissing(idx, side)
            if count > 1:
                raise TrackEndpointConflict(idx, side)
    LOG.info("topology validation: PASSED (segments=%d)", len(topology.segments))


def check_segment_positions(topology: Topology) -> int:
    """Log segments with negative length or elements outside the segment; returns the issue count."""
    issues = 0
    for idx, segment in enumerate(topology.segments):
        if segment.length < -POSITION_EPSILON:
            LOG.warning("[TOPO] segment %d (%s) has negative length %.6f", idx, segment.source_track, segment.length)
            issues += 1
        length = max(segment.length, 0.0)
        for category, items in segment.objects.categories():
            for element in items:
                offset = element.pos.offset
                if offset < -POSITION_EPSILON or offset > length + POSITION_EPSILON:
                    LOG.warning(
                        "[TOPO] segment %d %s %s offset out of range: %.6f (len %.6f)",
                        idx,
                        category.value,
                        element.id,
                        offset,
                        length,
                    )
                    issues += 1
    if issues:
        LOG.warning("[TOPO] position check reported %d issue(s)", issues)
    return issues
