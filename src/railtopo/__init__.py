"""Top-level package for railway track network conversion utilities."""
from __future__ import annotations

from . import conversion
from .conversion import (
    ConversionOptions,
    convert_and_persist,
    convert_network_topology,
    convert_topology_to_network,
    import_network,
)

__all__ = [
    "conversion",
    "ConversionOptions",
    "convert_and_persist",
    "convert_network_topology",
    "convert_topology_to_network",
    "import_network",
]
