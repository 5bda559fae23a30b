"""Projection of the record store onto the overlay for the visible slice."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from slice_annotator.annotations import AnnotationRecord, AnnotationStore
from slice_annotator.arc import Point
from slice_annotator.controller import ControllerState


def channel_label(record: AnnotationRecord) -> str:
    return f"CH-{record.original_channel} | UNI-{record.mapped_channel}"


@dataclass(frozen=True)
class OverlayMarker:
    channel: int
    x: float
    y: float
    label: str


@dataclass(frozen=True)
class OverlaySet:
    """Which channel markers are shown on ``slice`` and where."""

    slice: int
    visible: Dict[int, OverlayMarker]
    hidden: Tuple[int, ...]
    placed: Tuple[int, ...]

    def is_visible(self, channel: int) -> bool:
        return channel in self.visible


class DisplaySync:
    """Recomputes marker visibility from the full record set.

    Visibility depends on slice membership only, so every call walks all
    records rather than the most recent edits.
    """

    def __init__(self, store: AnnotationStore) -> None:
        self.store = store

    def refresh(self, active_slice: int) -> OverlaySet:
        visible: Dict[int, OverlayMarker] = {}
        hidden: List[int] = []
        placed: List[int] = []
        for record in self.store.records():
            channel = record.original_channel
            if record.is_set:
                placed.append(channel)
            position = record.position
            if record.slice == active_slice and position is not None:
                visible[channel] = OverlayMarker(channel, position[0], position[1], channel_label(record))
            else:
                hidden.append(channel)
        return OverlaySet(active_slice, visible, tuple(hidden), tuple(placed))


def arc_markers(state: ControllerState) -> Tuple[Point, ...]:
    """Points of an arc still being drawn; empty once it is placed or cancelled."""
    return state.arc_points if state.arc_active else ()
