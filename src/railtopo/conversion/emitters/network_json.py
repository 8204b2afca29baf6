"""Render a track network as a JSON document."""
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, Dict, List, Optional

from ..domain.models import (
    Crossing,
    Position,
    RailNetwork,
    SwitchConnection,
    Terminal,
    TerminalKind,
    Track,
    TrackGroup,
    TrackObjects,
    TrackSwitch,
)
from ..parser.network_loader import ELEMENT_JSON_KEYS
from ..utils.constants import SCHEMA_VERSION


def _compact(pairs: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset attributes and unwrap enum values."""
    out: Dict[str, Any] = {}
    for key, value in pairs.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        out[key] = value
    return out


def _position(pos: Position) -> Dict[str, Any]:
    return _compact({"offset": pos.offset, "mileage": pos.mileage, "geo_coord": pos.geo_coord})


def _terminal(terminal: Terminal) -> Dict[str, Any]:
    conn = terminal.connection
    if conn.kind == TerminalKind.CONNECTION:
        connection = {"kind": conn.kind.value, "id": conn.own_id, "ref": conn.ref}
    else:
        connection = _compact({"kind": conn.kind, "name": conn.name})
    return {"id": terminal.id, "pos": _position(terminal.pos), "connection": connection}


def _switch_connection(conn: SwitchConnection) -> Dict[str, Any]:
    return _compact(
        {
            "id": conn.id,
            "ref": conn.ref,
            "orientation": conn.orientation,
            "course": conn.course,
            "radius": conn.radius,
            "max_speed": conn.max_speed,
            "passable": conn.passable,
        }
    )


def _switch(switch: TrackSwitch) -> Dict[str, Any]:
    base: Dict[str, Any] = {
        "kind": "crossing" if isinstance(switch, Crossing) else "switch",
        "id": switch.id,
        "pos": _position(switch.pos),
    }
    if isinstance(switch, Crossing):
        extra = {
            "track_continue_course": switch.track_continue_course,
            "track_continue_radius": switch.track_continue_radius,
            "normal_position": switch.normal_position,
            "length": switch.length,
        }
    else:
        extra = {
            "name": switch.name,
            "description": switch.description,
            "length": switch.length,
            "track_continue_course": switch.track_continue_course,
            "track_continue_radius": switch.track_continue_radius,
        }
    base.update(_compact(extra))
    base["connections"] = [_switch_connection(conn) for conn in switch.connections]
    return base


def _element(element) -> Dict[str, Any]:
    body: Dict[str, Any] = {"id": element.id, "pos": _position(element.pos)}
    body.update(
        _compact(
            {
                ELEMENT_JSON_KEYS.get(f.name, f.name): getattr(element, f.name)
                for f in dataclasses.fields(element)
                if f.name not in ("id", "pos")
            }
        )
    )
    return body


def _objects(objects: TrackObjects) -> Dict[str, List[Dict[str, Any]]]:
    return {category.value: [_element(e) for e in items] for category, items in objects.categories() if items}


def _track(track: Track) -> Dict[str, Any]:
    body = _compact(
        {
            "id": track.id,
            "code": track.code,
            "name": track.name,
            "description": track.description,
            "type": track.track_type,
            "main_dir": track.main_dir,
        }
    )
    body["begin"] = _terminal(track.begin)
    body["end"] = _terminal(track.end)
    body["switches"] = [_switch(sw) for sw in track.switches]
    body["objects"] = _objects(track.objects)
    return body


def _track_group(group: TrackGroup) -> Dict[str, Any]:
    body = _compact(
        {
            "id": group.id,
            "name": group.name,
            "infrastructure_manager_ref": group.infrastructure_manager_ref,
            "line_category": group.line_category,
            "line_type": group.line_type,
        }
    )
    body["track_refs"] = [_compact({"ref": ref.ref, "sequence": ref.sequence}) for ref in group.track_refs]
    return body


def render_network_document(network: RailNetwork, *, version: Optional[str] = SCHEMA_VERSION) -> Dict[str, Any]:
    """Inverse of :func:`~railtopo.conversion.parser.network_loader.parse_network`."""

    document: Dict[str, Any] = {}
    if version is not None:
        document["version"] = version
    if network.metadata is not None:
        document["metadata"] = _compact(dataclasses.asdict(network.metadata))
    document["tracks"] = [_track(track) for track in network.tracks]
    document["track_groups"] = [_track_group(group) for group in network.track_groups]
    document["ocps"] = [_compact({"id": ocp.id, "name": ocp.name, "type": ocp.ocp_type}) for ocp in network.ocps]
    document["states"] = [
        _compact({"id": state.id, "disabled": state.disabled, "status": state.status}) for state in network.states
    ]
    return document


__all__ = ["render_network_document"]
