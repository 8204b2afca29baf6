"""Render the port graph for the external layout solver."""
from __future__ import annotations

from typing import Any, Dict, List

from ..domain.topology import Port, Topology
from ..utils.constants import SCHEMA_VERSION


def _port(port: Port) -> Dict[str, Any]:
    body: Dict[str, Any] = {"kind": port.kind.value, "label": port.label}
    if port.end is not None:
        body["end"] = port.end.value
        body["rail"] = port.rail
    return body


def render_topology_document(topology: Topology) -> Dict[str, Any]:
    nodes: List[Dict[str, Any]] = []
    for idx, node in enumerate(topology.nodes):
        body: Dict[str, Any] = {"index": idx, "kind": node.kind.value}
        if node.side is not None:
            body["side"] = node.side.value
        if node.name is not None:
            body["name"] = node.name
        nodes.append(body)

    segments = [
        {
            "index": idx,
            "source_track": segment.source_track,
            "sequence": segment.sequence,
            "offset": segment.offset,
            "length": segment.length,
            "elements": {
                category.value: [element.id for element in items]
                for category, items in segment.objects.categories()
                if items
            },
        }
        for idx, segment in enumerate(topology.segments)
    ]

    connections = [
        {
            "segment": segment_end.segment,
            "side": segment_end.side.value,
            "node": node_port.node,
            "port": _port(node_port.port),
        }
        for segment_end, node_port in topology.connections
    ]

    return {
        "version": SCHEMA_VERSION,
        "nodes": nodes,
        "segments": segments,
        "connections": connections,
    }


__all__ = ["render_topology_document"]
