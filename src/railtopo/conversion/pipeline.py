"""High-level orchestration for importing and exporting track networks."""
from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .builder.topology import convert_network_topology
from .checks.topology import check_segment_positions
from .domain.models import ConversionOptions, RailNetwork
from .domain.topology import SchematicLayout, Topology
from .emitters.network import convert_topology_to_network
from .emitters.network_json import render_network_document
from .emitters.topology_json import render_topology_document
from .parser.network_loader import load_layout_file, load_network_file
from .planner.provenance import ProvenanceTable, build_provenance
from .utils.constants import EXPORT_FILE_NAME, TOPOLOGY_FILE_NAME
from .utils.errors import BuildError
from .utils.io import write_json
from .utils.logging import configure_logger, get_logger

LOG = get_logger()


@dataclass(frozen=True)
class ImportResult:
    network: RailNetwork
    topology: Topology
    position_issues: int = 0


@dataclass(frozen=True)
class PersistResult:
    result: ImportResult
    topology_path: Path
    export_path: Optional[Path] = None


def import_network(network_path: Path, options: ConversionOptions = ConversionOptions()) -> ImportResult:
    network = load_network_file(network_path, options.schema_path)
    topology = convert_network_topology(network)
    issues = check_segment_positions(topology)
    return ImportResult(network=network, topology=topology, position_issues=issues)


def export_network(
    topology: Topology,
    layout: SchematicLayout,
    provenance: Optional[ProvenanceTable] = None,
) -> RailNetwork:
    return convert_topology_to_network(topology, layout, provenance)


def convert_and_persist(network_path: Path, options: ConversionOptions = ConversionOptions()) -> PersistResult:
    """Import ``network_path``, write the port graph and optionally the re-exported network."""

    configure_logger(options.log_path, console=options.console_log, level=options.log_level)
    try:
        result = import_network(network_path, options)
        topology_path = options.topology_output or network_path.with_name(TOPOLOGY_FILE_NAME)
        write_json(topology_path, render_topology_document(result.topology))

        export_path: Optional[Path] = None
        if options.layout_path is not None:
            layout = load_layout_file(options.layout_path)
            provenance = build_provenance(result.network, result.topology, layout)
            exported = export_network(result.topology, layout, provenance)
            export_path = options.export_path or network_path.with_name(EXPORT_FILE_NAME)
            write_json(export_path, render_network_document(exported))
        elif options.export_path is not None:
            LOG.warning("export requested without a layout; skipping %s", options.export_path)
    except BuildError as exc:
        LOG.error("conversion failed: %s", exc)
        raise
    return PersistResult(result=result, topology_path=topology_path, export_path=export_path)


@dataclass(frozen=True)
class ImportOutcome:
    result: Optional[ImportResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BackgroundImport:
    """Run :func:`import_network` on a worker thread.

    The outcome is delivered once through a single-slot queue. There is no
    cancellation; a caller that loses interest simply never collects it.
    """

    def __init__(self, network_path: Path, options: ConversionOptions = ConversionOptions()) -> None:
        self.network_path = network_path
        self.options = options
        self._outcome: "queue.Queue[ImportOutcome]" = queue.Queue(maxsize=1)
        self._thread = threading.Thread(target=self._run, name="railtopo-import", daemon=True)

    def start(self) -> "BackgroundImport":
        LOG.info("background import started: %s", self.network_path)
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            outcome = ImportOutcome(result=import_network(self.network_path, self.options))
        except BuildError as exc:
            LOG.error("background import failed: %s", exc)
            outcome = ImportOutcome(error=exc)
        except Exception as exc:
            LOG.exception("background import crashed: %s", exc)
            outcome = ImportOutcome(error=exc)
        self._outcome.put(outcome)

    def poll(self) -> Optional[ImportOutcome]:
        try:
            return self._outcome.get_nowait()
        except queue.Empty:
            return None

    def wait(self, timeout: Optional[float] = None) -> ImportOutcome:
        return self._outcome.get(timeout=timeout)


__all__ = [
    "BackgroundImport",
    "ImportOutcome",
    "ImportResult",
    "PersistResult",
    "convert_and_persist",
    "export_network",
    "import_network",
]
