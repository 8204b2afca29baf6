from __future__ import annotations

import json
import logging
import shutil

import pytest

from railtopo.conversion.domain.models import ConversionOptions
from railtopo.conversion.pipeline import BackgroundImport, convert_and_persist, import_network
from railtopo.conversion.utils.errors import NetworkFileNotFound, UnmatchedConnection


def _write_layout(path, layout) -> None:
    path.write_text(json.dumps({"polylines": [list(map(list, line)) for line in layout.polylines]}), encoding="utf-8")


def test_import_network_reports_no_position_issues(station_path) -> None:
    result = import_network(station_path)

    assert len(result.network.tracks) == 7
    assert len(result.topology.segments) == 11
    assert result.position_issues == 0


def test_convert_and_persist_logs_pipeline_steps(tmp_path, station_path, grid_layout) -> None:
    network_path = tmp_path / "station.json"
    shutil.copy(station_path, network_path)
    layout_path = tmp_path / "layout.json"
    _write_layout(layout_path, grid_layout(import_network(network_path).topology))
    log_path = tmp_path / "logs" / "railtopo.log"

    persisted = convert_and_persist(
        network_path,
        ConversionOptions(log_path=log_path, layout_path=layout_path),
    )

    assert persisted.topology_path == tmp_path / "topology.json"
    assert persisted.export_path == tmp_path / "network.export.json"
    topology_doc = json.loads(persisted.topology_path.read_text(encoding="utf-8"))
    assert len(topology_doc["segments"]) == 11
    exported = json.loads(persisted.export_path.read_text(encoding="utf-8"))
    assert [track["id"] for track in exported["tracks"]] == ["t1", "t2", "t3", "t4", "t5", "t6", "t7"]

    log_contents = log_path.read_text(encoding="utf-8")
    assert "schema validation: PASSED" in log_contents
    assert "topology validation: PASSED (segments=11)" in log_contents
    assert "provenance: 11 of 11 segment(s) recorded" in log_contents
    assert "exported network: tracks=7" in log_contents


def test_convert_and_persist_logs_failure(tmp_path, station_document) -> None:
    station_document["tracks"][6]["begin"]["connection"]["ref"] = "nobody"
    network_path = tmp_path / "broken.json"
    network_path.write_text(json.dumps(station_document), encoding="utf-8")
    log_path = tmp_path / "railtopo.log"

    with pytest.raises(UnmatchedConnection):
        convert_and_persist(network_path, ConversionOptions(log_path=log_path))

    assert "conversion failed" in log_path.read_text(encoding="utf-8")
    assert not (tmp_path / "topology.json").exists()


def test_background_import_delivers_result(station_path) -> None:
    job = BackgroundImport(station_path).start()

    outcome = job.wait(timeout=30)

    assert outcome.ok
    assert len(outcome.result.topology.segments) == 11
    assert job.poll() is None


def test_background_import_delivers_error(tmp_path) -> None:
    outcome = BackgroundImport(tmp_path / "absent.json").start().wait(timeout=30)

    assert not outcome.ok
    assert isinstance(outcome.error, NetworkFileNotFound)
    assert outcome.result is None


def test_background_import_delivers_unexpected_error(tmp_path, monkeypatch, caplog) -> None:
    caplog.set_level(logging.ERROR, logger="railtopo")

    def explode(network_path, options):
        raise RuntimeError("layout cache corrupted")

    monkeypatch.setattr("railtopo.conversion.pipeline.import_network", explode)

    outcome = BackgroundImport(tmp_path / "network.json").start().wait(timeout=30)

    assert not outcome.ok
    assert isinstance(outcome.error, RuntimeError)
    assert outcome.result is None
    assert "background import crashed: layout cache corrupted" in caplog.text
