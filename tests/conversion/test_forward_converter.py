from __future__ import annotations

import logging

import pytest

from railtopo.conversion.builder.topology import convert_network_topology
from railtopo.conversion.domain.models import (
    Course,
    PlatformEdge,
    Position,
    RailNetwork,
    Signal,
    TerminalConnection,
    TrackObjects,
    TrainDetector,
)
from railtopo.conversion.domain.topology import (
    AB,
    LEFT,
    RIGHT,
    SINGLE,
    TRUNK,
    NodeKind,
    NodePort,
    SegmentEnd,
    Side,
    TopoNode,
)
from railtopo.conversion.planner.mileage import infer_mileage_origin
from railtopo.conversion.utils.constants import POSITION_EPSILON
from railtopo.conversion.utils.errors import UnmatchedConnection


@pytest.fixture
def branch_network(make_track, make_switch) -> RailNetwork:
    main = make_track(
        "A",
        100,
        switches=[make_switch("sw", 40, ref="Bb_c", course=Course.LEFT, radius=200.0, continue_radius=0.0)],
        objects=TrackObjects(signals=[Signal("sigA", Position(60.0)), Signal("sigB", Position(10.0))]),
    )
    branch = make_track("B", 50, begin=TerminalConnection.connection("Bb_c", "swc"))
    return RailNetwork(tracks=[main, branch])


def test_switch_splits_track_and_links_branch(branch_network) -> None:
    topology = convert_network_topology(branch_network)

    assert [s.length for s in topology.segments_of("A")] == [40.0, 60.0]
    assert [s.sequence for s in topology.segments_of("A")] == [0, 1]
    switches = [node for node in topology.nodes if node.kind == NodeKind.SWITCH]
    assert switches == [TopoNode.switch(Side.RIGHT)]

    switch_node = topology.nodes.index(switches[0])
    ends = topology.endpoint_index()
    assert ends[SegmentEnd(0, AB.B)] == NodePort(switch_node, TRUNK)
    assert ends[SegmentEnd(1, AB.A)] == NodePort(switch_node, RIGHT)
    assert ends[SegmentEnd(2, AB.A)] == NodePort(switch_node, LEFT)
    assert ends[SegmentEnd(0, AB.A)].port == SINGLE
    assert len(topology.connections) == 2 * len(topology.segments)


def test_elements_are_moved_to_segment_local_offsets(branch_network) -> None:
    topology = convert_network_topology(branch_network)

    first, second, _ = topology.segments
    assert [s.id for s in first.objects.signals] == ["sigB"]
    assert [(s.id, s.pos.offset) for s in second.objects.signals] == [("sigA", 20.0)]
    assert second.offset == 40.0


def test_station_sample_shape(station_network) -> None:
    topology = convert_network_topology(station_network)

    assert len(topology.segments) == 11
    assert len(topology.nodes) == 12
    assert len(topology.connections) == 22
    kinds = [node.kind for node in topology.nodes]
    assert kinds.count(NodeKind.CONTINUATION) == 2
    assert kinds.count(NodeKind.CROSSING) == 1
    assert {node.name for node in topology.nodes if node.kind == NodeKind.MACROSCOPIC_NODE} == {"Westby", "Eastby"}
    switches = [node for node in topology.nodes if node.kind == NodeKind.SWITCH]
    assert [node.side for node in switches] == [Side.LEFT, Side.LEFT, Side.LEFT]


def test_segment_lengths_sum_to_track_length(station_network) -> None:
    topology = convert_network_topology(station_network)

    for track in station_network.tracks:
        total = sum(segment.length for segment in topology.segments_of(track.id))
        assert total == pytest.approx(track.end.pos.offset - track.begin.pos.offset)


def test_elements_stay_inside_their_segment(station_network) -> None:
    topology = convert_network_topology(station_network)

    placed = 0
    for segment in topology.segments:
        for _, items in segment.objects.categories():
            for element in items:
                assert -POSITION_EPSILON <= element.pos.offset <= segment.length + POSITION_EPSILON
                placed += 1
    assert placed == sum(station_network.element_counts().values())


def test_mileage_origin_sets_absolute_segment_offsets(station_network) -> None:
    topology = convert_network_topology(station_network)

    assert [s.offset for s in topology.segments_of("t1")] == [1000.0]
    assert [s.offset for s in topology.segments_of("t3")] == [1550.0]
    assert [s.offset for s in topology.segments_of("t4")] == [0.0, 150.0]


def test_mileage_origin_search_order(make_track) -> None:
    from_end = make_track("T", 500, end_mileage=1500.0)
    from_element = make_track(
        "T",
        500,
        objects=TrackObjects(
            train_detectors=[TrainDetector("d", Position(100.0, mileage=5100.0))],
            platform_edges=[PlatformEdge("p", Position(200.0, mileage=2200.0))],
        ),
    )

    assert infer_mileage_origin(make_track("T", 500, begin_mileage=10.0, end_mileage=1500.0)) == 10.0
    assert infer_mileage_origin(from_end) == 1000.0
    assert infer_mileage_origin(from_element) == 2000.0
    assert infer_mileage_origin(make_track("T", 500)) == 0.0


def test_switch_on_segment_boundary_is_skipped(make_track, make_switch) -> None:
    track = make_track(
        "A",
        100,
        switches=[
            make_switch("at_begin", 0, ref="nowhere"),
            make_switch("sw", 40, ref="Bb_c"),
            make_switch("twin", 40, ref="nowhere"),
            make_switch("at_end", 100, ref="nowhere"),
            make_switch("beyond", 100.0000001, ref="nowhere"),
        ],
    )
    branch = make_track("B", 50, begin=TerminalConnection.connection("Bb_c", "swc"))

    topology = convert_network_topology(RailNetwork(tracks=[track, branch]))

    assert [s.length for s in topology.segments_of("A")] == [40.0, 60.0]
    assert sum(node.kind == NodeKind.SWITCH for node in topology.nodes) == 1


def test_unmatched_switch_reference_fails(make_track, make_switch) -> None:
    track = make_track("A", 100, switches=[make_switch("sw", 40, ref="missing")])

    with pytest.raises(UnmatchedConnection) as excinfo:
        convert_network_topology(RailNetwork(tracks=[track]))

    assert (excinfo.value.own_id, excinfo.value.ref) == ("missing", "swc")


def test_elements_beyond_track_end_are_dropped(make_track, caplog) -> None:
    caplog.set_level(logging.WARNING, logger="railtopo")
    track = make_track(
        "A",
        100,
        objects=TrackObjects(signals=[Signal("inside", Position(100.0)), Signal("outside", Position(150.0))]),
    )

    topology = convert_network_topology(RailNetwork(tracks=[track]))

    assert [s.id for s in topology.segments[0].objects.signals] == ["inside"]
    assert "outside at offset 150.000 lies beyond track end" in caplog.text


def test_lone_terminal_connection_fails(make_track) -> None:
    track = make_track("A", 100, end=TerminalConnection.connection("a", "b"))

    with pytest.raises(UnmatchedConnection) as excinfo:
        convert_network_topology(RailNetwork(tracks=[track]))

    assert (excinfo.value.own_id, excinfo.value.ref) == ("b", "a")
