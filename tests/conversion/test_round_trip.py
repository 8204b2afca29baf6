from __future__ import annotations

from railtopo.conversion.builder.topology import convert_network_topology
from railtopo.conversion.emitters.network import convert_topology_to_network
from railtopo.conversion.emitters.network_json import render_network_document
from railtopo.conversion.parser.network_loader import load_schema_file, parse_network, validate_json_schema
from railtopo.conversion.planner.provenance import build_provenance
from railtopo.conversion.utils.constants import SCHEMA_JSON_PATH


def test_station_round_trip_keeps_tracks_and_elements(station_network, grid_layout) -> None:
    topology = convert_network_topology(station_network)
    layout = grid_layout(topology)
    provenance = build_provenance(station_network, topology, layout)

    exported = convert_topology_to_network(topology, layout, provenance)
    document = render_network_document(exported)
    validate_json_schema(document, load_schema_file(SCHEMA_JSON_PATH))
    reparsed = parse_network(document)
    again = convert_network_topology(reparsed)

    assert len(reparsed.tracks) == len(station_network.tracks) == 7
    assert [t.id for t in reparsed.tracks] == [t.id for t in station_network.tracks]
    assert reparsed.element_counts() == station_network.element_counts()
    assert len(again.segments) == len(topology.segments)
    assert len(again.nodes) == len(topology.nodes)
    assert reparsed.track_groups == station_network.track_groups
    assert reparsed.states == station_network.states


def test_round_trip_keeps_element_ids(station_network, grid_layout) -> None:
    topology = convert_network_topology(station_network)
    layout = grid_layout(topology)

    exported = convert_topology_to_network(topology, layout, build_provenance(station_network, topology, layout))

    def ids(network):
        return sorted(e.id for track in network.tracks for _, items in track.objects.categories() for e in items)

    assert ids(exported) == ids(station_network)
