"""Load and parse track network documents."""
from __future__ import annotations

import dataclasses
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from jsonschema import Draft7Validator  # type: ignore

from ..domain.models import (
    ELEMENT_TYPES,
    ConnectionOrientation,
    Course,
    Crossing,
    ElementCategory,
    Metadata,
    Ocp,
    Position,
    RailNetwork,
    SignalFunction,
    SignalType,
    State,
    Switch,
    SwitchConnection,
    Terminal,
    TerminalConnection,
    TerminalKind,
    Track,
    TrackDirection,
    TrackGroup,
    TrackObjects,
    TrackRef,
    TrackSwitch,
)
from ..domain.topology import SchematicLayout
from ..utils.errors import (
    InvalidConfigurationError,
    NetworkFileNotFound,
    SchemaFileNotFound,
    SchemaValidationError,
)
from ..utils.io import read_json
from ..utils.logging import get_logger

LOG = get_logger()

E = TypeVar("E", bound=Enum)

# Element attributes whose document key differs from the field name.
ELEMENT_JSON_KEYS: Dict[str, str] = {
    "signal_type": "type",
    "section_type": "type",
}

_ELEMENT_CONVERTERS: Dict[str, Callable[[Any, str], Any]] = {
    "dir": lambda raw, where: _enum(TrackDirection, raw, where),
    "signal_type": lambda raw, where: _enum(SignalType, raw, where),
    "function": lambda raw, where: _enum(SignalFunction, raw, where),
    "element_refs": lambda raw, where: tuple(str(ref) for ref in raw),
}


def load_json_file(json_path: Path) -> Dict:
    if not json_path.exists():
        raise NetworkFileNotFound(f"JSON not found: {json_path}")
    document = read_json(json_path)
    LOG.info("loaded JSON: %s", json_path)
    return document


def load_schema_file(schema_path: Path) -> Dict:
    if not schema_path.exists():
        raise SchemaFileNotFound(f"Schema not found: {schema_path}")
    schema_json = read_json(schema_path)
    LOG.info("loaded Schema: %s", schema_path)
    return schema_json


def _format_json_path(path_iterable) -> str:
    parts: List[str] = ["root"]
    for p in path_iterable:
        if isinstance(p, int):
            parts[-1] = parts[-1] + f"[{p}]"
        else:
            parts.append(str(p))
    return ".".join(parts)


def validate_json_schema(document: Dict, schema_json: Dict) -> None:
    validator = Draft7Validator(schema_json)
    errors = sorted(validator.iter_errors(document), key=lambda e: (list(map(str, e.path)), list(map(str, e.schema_path))))
    if not errors:
        LOG.info("schema validation: PASSED")
        return
    LOG.error("[SCH] schema validation: FAILED (count=%d)", len(errors))
    for i, err in enumerate(errors, start=1):
        json_path = _format_json_path(err.path)
        schema_path = "/".join(map(str, err.schema_path))
        LOG.error(
            "[SCH] #%d path=%s | msg=%s | validator=%s | schema_path=%s",
            i,
            json_path,
            err.message,
            err.validator,
            schema_path,
        )
    raise SchemaValidationError(f"schema validation failed with {len(errors)} error(s)")


def _enum(enum_cls: Type[E], raw: Any, where: str) -> E:
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidConfigurationError(f"{where}: unknown value {raw!r} (expected one of: {allowed})") from None


def _optional_enum(enum_cls: Type[E], raw: Any, where: str) -> Optional[E]:
    return None if raw is None else _enum(enum_cls, raw, where)


def _optional_float(raw: Any) -> Optional[float]:
    return None if raw is None else float(raw)


def parse_position(obj: Dict) -> Position:
    return Position(
        offset=float(obj["offset"]),
        mileage=_optional_float(obj.get("mileage")),
        geo_coord=obj.get("geo_coord"),
    )


def parse_terminal_connection(obj: Dict, where: str) -> TerminalConnection:
    kind = _enum(TerminalKind, obj["kind"], f"{where}.kind")
    if kind == TerminalKind.CONNECTION:
        if "id" not in obj or "ref" not in obj:
            raise InvalidConfigurationError(f"{where}: a connection terminal needs both 'id' and 'ref'")
        return TerminalConnection.connection(str(obj["id"]), str(obj["ref"]))
    if kind == TerminalKind.MACROSCOPIC_NODE:
        return TerminalConnection.macroscopic(obj.get("name"))
    return TerminalConnection(kind)


def parse_terminal(obj: Dict, where: str) -> Terminal:
    return Terminal(
        id=str(obj["id"]),
        pos=parse_position(obj["pos"]),
        connection=parse_terminal_connection(obj["connection"], f"{where}.connection"),
    )


def parse_switch_connection(obj: Dict, where: str) -> SwitchConnection:
    passable = obj.get("passable")
    return SwitchConnection(
        id=str(obj["id"]),
        ref=str(obj["ref"]),
        orientation=_enum(ConnectionOrientation, obj["orientation"], f"{where}.orientation"),
        course=_optional_enum(Course, obj.get("course"), f"{where}.course"),
        radius=_optional_float(obj.get("radius")),
        max_speed=_optional_float(obj.get("max_speed")),
        passable=None if passable is None else bool(passable),
    )


def parse_switch(obj: Dict, where: str) -> TrackSwitch:
    connections = [
        parse_switch_connection(conn, f"{where}.connections[{i}]")
        for i, conn in enumerate(obj.get("connections", []))
    ]
    continue_course = _optional_enum(Course, obj.get("track_continue_course"), f"{where}.track_continue_course")
    continue_radius = _optional_float(obj.get("track_continue_radius"))
    kind = obj.get("kind", "switch")
    if kind == "crossing":
        return Crossing(
            id=str(obj["id"]),
            pos=parse_position(obj["pos"]),
            connections=connections,
            track_continue_course=continue_course,
            track_continue_radius=continue_radius,
            normal_position=_optional_enum(Course, obj.get("normal_position"), f"{where}.normal_position"),
            length=_optional_float(obj.get("length")),
        )
    if kind != "switch":
        raise InvalidConfigurationError(f"{where}.kind: unknown value {kind!r} (expected one of: switch, crossing)")
    return Switch(
        id=str(obj["id"]),
        pos=parse_position(obj["pos"]),
        connections=connections,
        name=obj.get("name"),
        description=obj.get("description"),
        length=_optional_float(obj.get("length")),
        track_continue_course=continue_course,
        track_continue_radius=continue_radius,
    )


def parse_element(category: ElementCategory, obj: Dict, where: str):
    element_type = ELEMENT_TYPES[category]
    kwargs: Dict[str, Any] = {"id": str(obj["id"]), "pos": parse_position(obj["pos"])}
    for f in dataclasses.fields(element_type):
        if f.name in ("id", "pos"):
            continue
        key = ELEMENT_JSON_KEYS.get(f.name, f.name)
        if obj.get(key) is None:
            continue
        convert = _ELEMENT_CONVERTERS.get(f.name)
        kwargs[f.name] = convert(obj[key], f"{where}.{key}") if convert else obj[key]
    return element_type(**kwargs)


def parse_objects(obj: Dict, where: str) -> TrackObjects:
    objects = TrackObjects()
    for category in ElementCategory:
        bucket = objects.of(category)
        for i, raw in enumerate(obj.get(category.value, [])):
            bucket.append(parse_element(category, raw, f"{where}.{category.value}[{i}]"))
    return objects


def parse_track(obj: Dict, index: int) -> Track:
    where = f"tracks[{index}]"
    track = Track(
        id=str(obj["id"]),
        begin=parse_terminal(obj["begin"], f"{where}.begin"),
        end=parse_terminal(obj["end"], f"{where}.end"),
        switches=[parse_switch(sw, f"{where}.switches[{i}]") for i, sw in enumerate(obj.get("switches", []))],
        objects=parse_objects(obj.get("objects", {}), f"{where}.objects"),
        code=obj.get("code"),
        name=obj.get("name"),
        description=obj.get("description"),
        track_type=obj.get("type"),
        main_dir=obj.get("main_dir"),
    )
    LOG.debug("track %s: switches=%d elements=%d", track.id, len(track.switches), len(track.objects))
    return track


def parse_track_group(obj: Dict) -> TrackGroup:
    return TrackGroup(
        id=str(obj["id"]),
        name=obj.get("name"),
        infrastructure_manager_ref=obj.get("infrastructure_manager_ref"),
        line_category=obj.get("line_category"),
        line_type=obj.get("line_type"),
        track_refs=tuple(
            TrackRef(ref=str(ref["ref"]), sequence=ref.get("sequence")) for ref in obj.get("track_refs", [])
        ),
    )


def parse_metadata(obj: Optional[Dict]) -> Optional[Metadata]:
    if obj is None:
        return None
    known = {f.name for f in dataclasses.fields(Metadata)}
    unknown = sorted(set(obj) - known)
    if unknown:
        LOG.warning("metadata: ignoring unknown key(s): %s", ", ".join(unknown))
    return Metadata(**{key: value for key, value in obj.items() if key in known})


def parse_network(document: Dict) -> RailNetwork:
    tracks = [parse_track(obj, i) for i, obj in enumerate(document.get("tracks", []))]
    network = RailNetwork(
        tracks=tracks,
        track_groups=[parse_track_group(obj) for obj in document.get("track_groups", [])],
        ocps=[Ocp(id=str(obj["id"]), name=obj.get("name"), ocp_type=obj.get("type")) for obj in document.get("ocps", [])],
        states=[
            State(id=str(obj["id"]), disabled=obj.get("disabled"), status=obj.get("status"))
            for obj in document.get("states", [])
        ],
        metadata=parse_metadata(document.get("metadata")),
    )
    LOG.info(
        "network: tracks=%d switches=%d elements=%d",
        len(network.tracks),
        sum(len(track.switches) for track in network.tracks),
        sum(network.element_counts().values()),
    )
    return network


def load_network_file(network_path: Path, schema_path: Path) -> RailNetwork:
    document = load_json_file(network_path)
    schema_json = load_schema_file(schema_path)
    validate_json_schema(document, schema_json)
    return parse_network(document)


def parse_layout(document: Any) -> SchematicLayout:
    if not isinstance(document, dict) or not isinstance(document.get("polylines"), list):
        raise InvalidConfigurationError("layout: expected an object with a 'polylines' list")
    polylines = []
    for i, line in enumerate(document["polylines"]):
        if not isinstance(line, list) or len(line) < 2:
            raise InvalidConfigurationError(f"layout.polylines[{i}]: expected at least two points")
        points = []
        for j, point in enumerate(line):
            if (
                not isinstance(point, (list, tuple))
                or len(point) != 2
                or not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in point)
            ):
                raise InvalidConfigurationError(f"layout.polylines[{i}][{j}]: expected an [x, y] pair of numbers")
            points.append((float(point[0]), float(point[1])))
        polylines.append(points)
    return SchematicLayout(polylines=polylines)


def load_layout_file(layout_path: Path) -> SchematicLayout:
    if not layout_path.exists():
        raise NetworkFileNotFound(f"layout not found: {layout_path}")
    layout = parse_layout(read_json(layout_path))
    LOG.info("loaded layout: %s (polylines=%d)", layout_path, len(layout.polylines))
    return layout


__all__ = [
    "ELEMENT_JSON_KEYS",
    "load_json_file",
    "load_layout_file",
    "load_network_file",
    "load_schema_file",
    "parse_layout",
    "parse_network",
    "validate_json_schema",
]
