"""Mileage-origin inference and positioned-element distribution."""
from __future__ import annotations

import dataclasses
from collections import deque
from typing import Deque, Dict, List

from ..domain.models import ElementCategory, PositionedElement, Track, TrackObjects
from ..utils.constants import POSITION_EPSILON
from ..utils.logging import get_logger

LOG = get_logger()

# Categories searched, in order, for an element carrying an absolute mileage.
MILEAGE_SEARCH_ORDER = (
    ElementCategory.SIGNAL,
    ElementCategory.PLATFORM_EDGE,
    ElementCategory.SPEED_CHANGE,
    ElementCategory.LEVEL_CROSSING,
    ElementCategory.TRAIN_DETECTOR,
    ElementCategory.TRACK_CIRCUIT_BORDER,
    ElementCategory.DERAILER,
    ElementCategory.TRAIN_PROTECTION_ELEMENT,
    ElementCategory.BALISE,
    ElementCategory.TRAIN_PROTECTION_GROUP,
    ElementCategory.CROSS_SECTION,
    ElementCategory.GEO_MAPPING,
)


def infer_mileage_origin(track: Track) -> float:
    """Absolute mileage at the track begin, or 0.0 when nothing carries one."""

    begin_offset = track.begin.pos.offset
    if track.begin.pos.mileage is not None:
        return track.begin.pos.mileage
    if track.end.pos.mileage is not None:
        return track.end.pos.mileage - (track.end.pos.offset - begin_offset)
    for category in MILEAGE_SEARCH_ORDER:
        for element in track.objects.of(category):
            if element.pos.mileage is not None:
                return element.pos.mileage - (element.pos.offset - begin_offset)
    return 0.0


def translate(element: PositionedElement, start: float) -> PositionedElement:
    pos = dataclasses.replace(element.pos, offset=element.pos.offset - start)
    return dataclasses.replace(element, pos=pos)


class ElementQueue:
    """Offset-sorted pending elements of one track, drained segment by segment."""

    def __init__(self, objects: TrackObjects) -> None:
        self._pending: Dict[ElementCategory, Deque[PositionedElement]] = {
            category: deque(sorted(items, key=lambda element: element.pos.offset))
            for category, items in objects.categories()
        }

    def drain_into(self, target: TrackObjects, start: float, end: float) -> int:
        """Move every element with offset <= ``end`` into ``target``, relative to ``start``."""
        moved = 0
        for category, pending in self._pending.items():
            bucket = target.of(category)
            while pending and pending[0].pos.offset <= end:
                bucket.append(translate(pending.popleft(), start))
                moved += 1
        return moved

    def remaining(self) -> List[PositionedElement]:
        return [element for pending in self._pending.values() for element in pending]

    def discard_remaining(self, track_id: str, end: float) -> int:
        leftovers = self.remaining()
        for element in leftovers:
            LOG.warning(
                "[TOPO] %s %s at offset %.3f lies beyond track end %.3f (dropped)",
                track_id,
                element.id,
                element.pos.offset,
                end,
            )
        for pending in self._pending.values():
            pending.clear()
        return len(leftovers)


def drain_final(queue: ElementQueue, target: TrackObjects, start: float, end: float) -> int:
    return queue.drain_into(target, start, end + POSITION_EPSILON)


__all__ = [
    "ElementQueue",
    "MILEAGE_SEARCH_ORDER",
    "drain_final",
    "infer_mileage_origin",
    "translate",
]
