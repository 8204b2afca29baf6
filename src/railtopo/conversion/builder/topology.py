"""Forward conversion: track-centric network to port graph."""
from __future__ import annotations

from ..checks.topology import validate_topology
from ..domain.models import Crossing, RailNetwork, TerminalConnection, TerminalKind, Track
from ..domain.topology import AB, SINGLE, NodeKind, NodePort, SegmentEnd, TopoNode, Topology, TrackSegment
from ..planner.mileage import ElementQueue, drain_final, infer_mileage_origin
from ..planner.switches import registered_connections, switch_info
from ..utils.constants import POSITION_EPSILON
from ..utils.logging import get_logger
from .resolver import ConnectionResolver

LOG = get_logger()

_TERMINAL_NODES = {
    TerminalKind.BUFFER_STOP: NodeKind.BUFFER_STOP,
    TerminalKind.OPEN_END: NodeKind.OPEN_END,
    TerminalKind.MACROSCOPIC_NODE: NodeKind.MACROSCOPIC_NODE,
}


def convert_network_topology(network: RailNetwork) -> Topology:
    """Split every track at its switches and wire the pieces into one port graph.

    Raises a :class:`~railtopo.conversion.utils.errors.TopologyConversionError`
    subclass on the first inconsistency; nothing partial is returned.
    """

    topology = Topology()
    resolver = ConnectionResolver()
    for track in network.tracks:
        _convert_track(track, topology, resolver)

    LOG.info("[TOPO] matching named ports: node=%d track=%d", len(resolver.node_ports), len(resolver.track_ports))
    resolver.resolve(topology)
    validate_topology(topology)
    LOG.info(
        "converted topology: tracks=%d segments=%d nodes=%d connections=%d",
        len(network.tracks),
        len(topology.segments),
        len(topology.nodes),
        len(topology.connections),
    )
    return topology


def _close_to(a: float, b: float) -> bool:
    return abs(a - b) < POSITION_EPSILON


def _convert_track(track: Track, topology: Topology, resolver: ConnectionResolver) -> None:
    origin = infer_mileage_origin(track)
    begin_offset = track.begin.pos.offset
    end_offset = track.end.pos.offset
    current_offset = begin_offset

    segment = TrackSegment(source_track=track.id, sequence=0, offset=origin)
    segment_idx = topology.add_segment(segment)
    _track_end(track.begin.connection, SegmentEnd(segment_idx, AB.A), topology, resolver)

    pending = ElementQueue(track.objects)
    for switch in sorted(track.switches, key=lambda sw: sw.pos.offset):
        info = switch_info(switch)
        LOG.debug("switch info %s", info)
        pending.drain_into(segment.objects, current_offset, info.pos)

        at_end = _close_to(info.pos, end_offset)
        if at_end or _close_to(info.pos, current_offset):
            LOG.debug("[TOPO] %s at %.3f sits on a segment boundary (skip)", switch.id, info.pos)
            if at_end:
                break
            continue

        if isinstance(switch, Crossing):
            node = topology.add_node(TopoNode(NodeKind.CROSSING))
        else:
            node = topology.add_node(TopoNode.switch(info.geometry_side))
        for connection in registered_connections(switch):
            resolver.add_node_port(connection.id, connection.ref, NodePort(node, info.connection_port(connection)))

        closing_port, opening_port = info.segment_ports()
        segment.length = info.pos - current_offset
        topology.connect(SegmentEnd(segment_idx, AB.B), NodePort(node, closing_port))

        segment = TrackSegment(
            source_track=track.id,
            sequence=segment.sequence + 1,
            offset=origin + (info.pos - begin_offset),
        )
        segment_idx = topology.add_segment(segment)
        topology.connect(SegmentEnd(segment_idx, AB.A), NodePort(node, opening_port))
        current_offset = info.pos

    segment.length = end_offset - current_offset
    drain_final(pending, segment.objects, current_offset, end_offset)
    pending.discard_remaining(track.id, end_offset)
    _track_end(track.end.connection, SegmentEnd(segment_idx, AB.B), topology, resolver)
    LOG.debug("[TOPO] track %s -> %d segment(s)", track.id, segment.sequence + 1)


def _track_end(
    connection: TerminalConnection,
    segment_end: SegmentEnd,
    topology: Topology,
    resolver: ConnectionResolver,
) -> None:
    if connection.is_named:
        resolver.add_track_port(connection.own_id, connection.ref, segment_end)
        return
    node = topology.add_node(TopoNode(_TERMINAL_NODES[connection.kind], name=connection.name))
    topology.connect(segment_end, NodePort(node, SINGLE))


__all__ = ["convert_network_topology"]
