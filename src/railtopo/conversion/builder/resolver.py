"""Pair named endpoint references into port-graph connections.

Every track end and every switch rail connection publishes its own id and the
id it expects on the other side. A node-side entry ``(id, ref)`` is matched by
the track-side entry ``(ref, id)``. Track-side entries left over afterwards
must pair up among themselves and become continuation nodes.
"""
from __future__ import annotations

from typing import Dict, Set, Tuple

from ..domain.topology import CONT_A, CONT_B, NodeKind, NodePort, SegmentEnd, TopoNode, Topology
from ..utils.errors import DuplicateConnectionReference, TrackContinuationMismatch, UnmatchedConnection
from ..utils.logging import get_logger

LOG = get_logger()

RefKey = Tuple[str, str]


class ConnectionResolver:
    def __init__(self) -> None:
        self.node_ports: Dict[RefKey, NodePort] = {}
        self.track_ports: Dict[RefKey, SegmentEnd] = {}

    def add_node_port(self, own_id: str, ref: str, node_port: NodePort) -> None:
        key = (own_id, ref)
        if key in self.node_ports:
            raise DuplicateConnectionReference(own_id, ref)
        self.node_ports[key] = NodePort(*node_port)

    def add_track_port(self, own_id: str, ref: str, segment_end: SegmentEnd) -> None:
        key = (own_id, ref)
        if key in self.track_ports:
            raise DuplicateConnectionReference(own_id, ref)
        self.track_ports[key] = SegmentEnd(*segment_end)

    def resolve(self, topology: Topology) -> int:
        """Append the matched connections to ``topology``; returns the number added.

        Keys are visited in sorted order so the outcome, including which error
        is raised first, never depends on registration order.
        """
        LOG.debug("[TOPO] node ports %s", self.node_ports)
        LOG.debug("[TOPO] track ports %s", self.track_ports)
        track_ports = dict(self.track_ports)
        published = self._published_ids()
        added = 0

        for own_id, ref in sorted(self.node_ports):
            segment_end = track_ports.pop((ref, own_id), None)
            if segment_end is None:
                raise UnmatchedConnection(ref, own_id)
            topology.connect(segment_end, self.node_ports[(own_id, ref)])
            added += 1

        while track_ports:
            key = min(track_ports)
            own_id, ref = key
            first = track_ports.pop(key)
            second = track_ports.pop((ref, own_id), None)
            if second is None:
                if ref in published - {own_id}:
                    raise TrackContinuationMismatch(own_id, ref)
                raise UnmatchedConnection(ref, own_id)
            node = topology.add_node(TopoNode(NodeKind.CONTINUATION))
            topology.connect(first, NodePort(node, CONT_A))
            topology.connect(second, NodePort(node, CONT_B))
            LOG.debug("[TOPO] continuation %d joins %s and %s", node, own_id, ref)
            added += 2

        return added

    def _published_ids(self) -> Set[str]:
        return {own_id for own_id, _ in self.track_ports} | {own_id for own_id, _ in self.node_ports}


__all__ = ["ConnectionResolver", "RefKey"]
