from __future__ import annotations

import pytest

from railtopo.conversion.builder.ids import ElementIdCounter, format_geo_coord, location_node_id, segment_id
from railtopo.conversion.builder.topology import convert_network_topology
from railtopo.conversion.domain.models import (
    ConnectionOrientation,
    Course,
    Crossing,
    ElementCategory,
    Position,
    RailNetwork,
    Signal,
    Switch,
    TerminalConnection,
    TerminalKind,
    TrackObjects,
)
from railtopo.conversion.domain.topology import SchematicLayout
from railtopo.conversion.emitters.network import convert_topology_to_network
from railtopo.conversion.planner.provenance import build_provenance
from railtopo.conversion.utils.errors import InvalidConfigurationError


@pytest.fixture
def branch_network(make_track, make_switch) -> RailNetwork:
    main = make_track(
        "A",
        100,
        switches=[make_switch("sw", 40, ref="Bb_c", course=Course.LEFT, radius=200.0, continue_radius=0.0)],
        objects=TrackObjects(signals=[Signal("sigA", Position(60.0)), Signal("sigB", Position(10.0))]),
        begin_mileage=0.0,
    )
    branch = make_track("B", 50, begin=TerminalConnection.connection("Bb_c", "swc"))
    return RailNetwork(tracks=[main, branch])


def test_id_helpers() -> None:
    counter = ElementIdCounter("tr2")

    assert location_node_id("swi", (12.0, -3.0)) == "swi_12_m3"
    assert location_node_id("crs", (1.5, 2.25)) == "crs_1p5_2p25"
    assert format_geo_coord((10.0, 0.5)) == "10.0 0.5"
    assert segment_id("t2", 1, 3) == "t2-s2"
    assert segment_id("t2", 0, 1) == "t2"
    assert counter.next_id(ElementCategory.SIGNAL) == "tr2sig01"
    assert counter.next_id(ElementCategory.SIGNAL) == "tr2sig02"
    assert counter.next_id(ElementCategory.PLATFORM_EDGE) == "tr2pe01"


def test_export_without_provenance_synthesizes_tracks(branch_network, grid_layout) -> None:
    topology = convert_network_topology(branch_network)
    network = convert_topology_to_network(topology, grid_layout(topology))

    assert [track.id for track in network.tracks] == ["tr1", "tr2", "tr3"]
    first, second, third = network.tracks
    assert (first.begin.id, first.end.id) == ("tr1tb", "tr1te")
    assert first.begin.connection.kind == TerminalKind.BUFFER_STOP

    (switch,) = first.switches
    assert isinstance(switch, Switch)
    assert switch.id == "swi_10_0"
    assert switch.pos == Position(40.0, None, "10.0 0.0")
    assert switch.track_continue_course is Course.STRAIGHT
    assert [(c.id, c.ref, c.course) for c in switch.connections] == [
        ("swi_10_0c1", "tr1c2", Course.STRAIGHT),
        ("swi_10_0c2", "tr3c1", Course.LEFT),
        ("swi_10_0c3", "tr2c1", Course.RIGHT),
    ]
    assert all(c.orientation is ConnectionOrientation.INCOMING for c in switch.connections)
    assert first.end.connection == TerminalConnection.connection("tr1c2", "swi_10_0c1")
    assert second.begin.connection == TerminalConnection.connection("tr2c1", "swi_10_0c3")
    assert third.begin.connection == TerminalConnection.connection("tr3c1", "swi_10_0c2")

    assert [(s.id, s.pos.offset) for s in second.objects.signals] == [("tr2sig01", 20.0)]
    assert network.track_groups == []


def test_export_with_provenance_merges_source_tracks(branch_network, grid_layout) -> None:
    topology = convert_network_topology(branch_network)
    layout = grid_layout(topology)
    provenance = build_provenance(branch_network, topology, layout)

    network = convert_topology_to_network(topology, layout, provenance)

    assert [track.id for track in network.tracks] == ["A", "B"]
    main, branch = network.tracks
    assert (main.begin.id, main.end.id) == ("Ab", "Ae")
    assert main.end.pos.offset == pytest.approx(100.0)
    (switch,) = main.switches
    assert switch.pos.offset == pytest.approx(40.0)
    assert switch.pos.mileage == pytest.approx(40.0)
    assert [(c.ref, c.course) for c in switch.connections] == [("Bc1", Course.LEFT)]
    assert branch.begin.connection == TerminalConnection.connection("Bc1", switch.connections[0].id)
    assert [(s.id, s.pos.offset) for s in main.objects.signals] == [("sigB", 10.0), ("sigA", 60.0)]


def test_export_rescales_edited_segment_lengths(branch_network, grid_layout) -> None:
    topology = convert_network_topology(branch_network)
    layout = grid_layout(topology)
    provenance = build_provenance(branch_network, topology, layout)
    topology.segments[0].length = 20.0
    topology.segments[0].objects.signals[:] = [Signal("sigB", Position(5.0))]

    network = convert_topology_to_network(topology, layout, provenance)

    main = network.tracks[0]
    assert main.end.pos.offset == pytest.approx(100.0)
    assert main.objects.signals[0].pos.offset == pytest.approx(10.0)
    assert main.switches[0].pos.offset == pytest.approx(40.0)


def test_export_crossing_and_continuations(station_network, grid_layout) -> None:
    topology = convert_network_topology(station_network)
    layout = grid_layout(topology)

    network = convert_topology_to_network(topology, layout, build_provenance(station_network, topology, layout))

    tracks = {track.id: track for track in network.tracks}
    assert list(tracks) == ["t1", "t2", "t3", "t4", "t5", "t6", "t7"]
    assert tracks["t1"].begin.connection == TerminalConnection.macroscopic("Westby")
    assert tracks["t1"].end.connection == TerminalConnection.connection("t1c2", "t2c1")
    assert tracks["t2"].begin.connection == TerminalConnection.connection("t2c1", "t1c2")
    assert [sw.pos.offset for sw in tracks["t2"].switches] == [100.0, 500.0]
    (crossing,) = tracks["t6"].switches
    assert isinstance(crossing, Crossing)
    assert crossing.id.startswith("crs_")
    assert [(c.ref, c.course) for c in crossing.connections] == [("t7c1", None)]
    assert [s.id for s in tracks["t2"].objects.signals] == ["sig_t2_a", "sig_t2_b"]
    assert tracks["t2"].objects.signals[1].pos.offset == pytest.approx(550.0)
    assert network.ocps == station_network.ocps
    assert network.metadata == station_network.metadata


def test_export_rejects_mismatched_layout(branch_network) -> None:
    topology = convert_network_topology(branch_network)

    with pytest.raises(InvalidConfigurationError):
        convert_topology_to_network(topology, SchematicLayout(polylines=[]))


@pytest.mark.parametrize(
    ("begin_mileage", "end_mileage", "switch_mileage", "signal_mileage"),
    [(1000.0, 1200.0, 1080.0, 1100.0), (1200.0, 1000.0, 1120.0, 1100.0)],
)
def test_export_spreads_terminal_mileage_span(
    make_track, make_switch, grid_layout, begin_mileage, end_mileage, switch_mileage, signal_mileage
) -> None:
    main = make_track(
        "A",
        100,
        switches=[make_switch("sw", 40, ref="Bb_c")],
        objects=TrackObjects(signals=[Signal("sig", Position(50.0))]),
        begin_mileage=begin_mileage,
        end_mileage=end_mileage,
    )
    branch = make_track("B", 50, begin=TerminalConnection.connection("Bb_c", "swc"))
    source = RailNetwork(tracks=[main, branch])
    topology = convert_network_topology(source)
    layout = grid_layout(topology)

    network = convert_topology_to_network(topology, layout, build_provenance(source, topology, layout))

    exported = network.tracks[0]
    assert exported.id == "A"
    assert exported.begin.pos.mileage == pytest.approx(begin_mileage)
    assert exported.end.pos.offset == pytest.approx(200.0)
    assert exported.end.pos.mileage == pytest.approx(end_mileage)
    (switch,) = exported.switches
    assert switch.pos.offset == pytest.approx(80.0)
    assert switch.pos.mileage == pytest.approx(switch_mileage)
    (signal,) = exported.objects.signals
    assert signal.pos.offset == pytest.approx(100.0)
    assert signal.pos.mileage == pytest.approx(signal_mileage)
