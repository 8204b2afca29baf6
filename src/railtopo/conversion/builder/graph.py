"""Expose a port graph as a networkx multigraph."""
from __future__ import annotations

from typing import Any, Dict

import networkx as nx

from ..domain.topology import AB, SegmentEnd, Topology

GraphType = nx.MultiGraph


def node_key(index: int) -> str:
    return f"n{index}"


def topology_to_graph(topology: Topology) -> GraphType:
    """One graph node per port-graph node, one edge per track segment.

    Edge attributes carry the segment index, length, source track/sequence and
    the ``(A-port, B-port)`` labels, which is what a layout solver needs.
    """

    graph: GraphType = nx.MultiGraph()
    for idx, node in enumerate(topology.nodes):
        graph.add_node(
            node_key(idx),
            kind=node.kind.value,
            side=node.side.value if node.side else None,
            name=node.name,
        )

    ends = topology.endpoint_index()
    for idx, segment in enumerate(topology.segments):
        node_a = ends.get(SegmentEnd(idx, AB.A))
        node_b = ends.get(SegmentEnd(idx, AB.B))
        if node_a is None or node_b is None:
            continue
        graph.add_edge(
            node_key(node_a.node),
            node_key(node_b.node),
            key=idx,
            segment=idx,
            length=segment.length,
            source_track=segment.source_track,
            sequence=segment.sequence,
            ports=(node_a.port.label, node_b.port.label),
        )
    return graph


def _node_match(a: Dict[str, Any], b: Dict[str, Any]) -> bool:
    return (a["kind"], a["side"], a["name"]) == (b["kind"], b["side"], b["name"])


def _edge_signature(data: Dict[str, Any]) -> tuple:
    return (data["source_track"], data["sequence"], round(data["length"], 6), tuple(sorted(data["ports"])))


def _edge_match(a: Dict[Any, Dict[str, Any]], b: Dict[Any, Dict[str, Any]]) -> bool:
    # Multigraph matchers receive every parallel edge between the node pair.
    return sorted(map(_edge_signature, a.values())) == sorted(map(_edge_signature, b.values()))


def topologies_isomorphic(first: Topology, second: Topology) -> bool:
    return nx.is_isomorphic(
        topology_to_graph(first),
        topology_to_graph(second),
        node_match=_node_match,
        edge_match=_edge_match,
    )


__all__ = ["GraphType", "node_key", "topologies_isomorphic", "topology_to_graph"]
