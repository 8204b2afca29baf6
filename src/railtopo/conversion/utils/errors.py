"""Exception hierarchy shared across the conversion."""
from __future__ import annotations


class BuildError(Exception):
    """Base class for all conversion related failures."""


class NetworkFileNotFound(BuildError):
    pass


class SchemaFileNotFound(BuildError):
    pass


class SchemaValidationError(BuildError):
    pass


class InvalidConfigurationError(BuildError):
    pass


class IoError(BuildError):
    pass


class TopologyConversionError(BuildError):
    """A track network could not be turned into a consistent port graph."""


class SwitchConnectionMissing(TopologyConversionError):
    def __init__(self, switch_id: str) -> None:
        super().__init__(f"switch {switch_id!r} declares no rail connection")
        self.switch_id = switch_id


class SwitchConnectionTooMany(TopologyConversionError):
    def __init__(self, switch_id: str) -> None:
        super().__init__(f"crossing {switch_id!r} declares more than one rail connection")
        self.switch_id = switch_id


class SwitchCourseUnknown(TopologyConversionError):
    def __init__(self, switch_id: str) -> None:
        super().__init__(f"switch {switch_id!r} has no course and no track-continue course")
        self.switch_id = switch_id


class SwitchOrientationInvalid(TopologyConversionError):
    def __init__(self, switch_id: str) -> None:
        super().__init__(f"switch {switch_id!r} connection orientation is neither incoming nor outgoing")
        self.switch_id = switch_id


class UnmatchedConnection(TopologyConversionError):
    def __init__(self, own_id: str, ref: str) -> None:
        super().__init__(f"connection ({own_id!r}, {ref!r}) has no reciprocal partner")
        self.own_id = own_id
        self.ref = ref


class TrackContinuationMismatch(TopologyConversionError):
    def __init__(self, own_id: str, ref: str) -> None:
        super().__init__(f"track connection ({own_id!r}, {ref!r}) is not reciprocated by its peer")
        self.own_id = own_id
        self.ref = ref


class DuplicateConnectionReference(TopologyConversionError):
    def __init__(self, own_id: str, ref: str) -> None:
        super().__init__(f"connection ({own_id!r}, {ref!r}) is declared more than once")
        self.own_id = own_id
        self.ref = ref


class TrackEndpointMissing(TopologyConversionError):
    def __init__(self, segment: int, side: object) -> None:
        super().__init__(f"segment {segment} has no connection at side {_side_label(side)}")
        self.segment = segment
        self.side = side


class TrackEndpointConflict(TopologyConversionError):
    def __init__(self, segment: int, side: object) -> None:
        super().__init__(f"segment {segment} has several connections at side {_side_label(side)}")
        self.segment = segment
        self.side = side


def _side_label(side: object) -> str:
    return str(getattr(side, "value", side))
