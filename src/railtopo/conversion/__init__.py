"""Public API for the track network / port graph conversion."""
from .builder.graph import topologies_isomorphic, topology_to_graph
from .builder.topology import convert_network_topology
from .domain.models import ConversionOptions, RailNetwork, Track
from .domain.topology import SchematicLayout, Topology
from .emitters.network import convert_topology_to_network
from .pipeline import BackgroundImport, ImportOutcome, ImportResult, convert_and_persist, export_network, import_network
from .planner.provenance import ProvenanceTable, build_provenance

__all__ = [
    "convert_network_topology",
    "convert_topology_to_network",
    "build_provenance",
    "import_network",
    "export_network",
    "convert_and_persist",
    "topology_to_graph",
    "topologies_isomorphic",
    "BackgroundImport",
    "ConversionOptions",
    "ImportOutcome",
    "ImportResult",
    "ProvenanceTable",
    "RailNetwork",
    "SchematicLayout",
    "Topology",
    "Track",
]
