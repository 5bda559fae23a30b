"""Click and keyboard state machine for placing channels on slices.

The controller owns no UI. Every handler takes the current
:class:`ControllerState` and returns a :class:`Transition` holding the next
state, which lets a shell (Qt, tests, scripts) drive it event by event.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Iterable, Optional, Tuple

from slice_annotator.annotations import AnnotationRecord, AnnotationStore
from slice_annotator.arc import Point, round_pixel, sample_arc
from slice_annotator.undo import UndoBuffer

LOGGER = logging.getLogger(__name__)


class ArcMode(Enum):
    IDLE = auto()
    AWAIT_END = auto()
    AWAIT_CONTROL = auto()


class KeyCommand(Enum):
    NEXT_SLICE = auto()
    PREVIOUS_SLICE = auto()
    NEXT_CHANNEL = auto()
    PREVIOUS_CHANNEL = auto()
    UNDO = auto()


KEY_BINDINGS = {
    "up": KeyCommand.NEXT_SLICE,
    "w": KeyCommand.NEXT_SLICE,
    "down": KeyCommand.PREVIOUS_SLICE,
    "s": KeyCommand.PREVIOUS_SLICE,
    "right": KeyCommand.NEXT_CHANNEL,
    "d": KeyCommand.NEXT_CHANNEL,
    "left": KeyCommand.PREVIOUS_CHANNEL,
    "a": KeyCommand.PREVIOUS_CHANNEL,
}
CTRL_KEY_BINDINGS = {
    "z": KeyCommand.UNDO,
}


def command_for_key(key: str, ctrl: bool = False) -> Optional[KeyCommand]:
    """Translate a key name (``"up"``, ``"w"``, ...) into a command."""
    table = CTRL_KEY_BINDINGS if ctrl else KEY_BINDINGS
    return table.get(key.lower())


@dataclass(frozen=True)
class ControllerState:
    selected_channel: int = 1
    slice_index: int = 1
    arc_mode: ArcMode = ArcMode.IDLE
    arc_points: Tuple[Point, ...] = ()

    @property
    def arc_active(self) -> bool:
        return self.arc_mode is not ArcMode.IDLE


@dataclass(frozen=True)
class Transition:
    """Outcome of one event.

    ``channels`` lists the channels whose records changed, ``refresh`` tells
    the shell the overlay must be re-projected.
    """

    state: ControllerState
    channels: Tuple[int, ...] = ()
    refresh: bool = False


class InteractionController:
    """Interprets pointer clicks and key commands against the record store."""

    def __init__(
        self,
        store: AnnotationStore,
        undo: UndoBuffer,
        *,
        channels_per_arc: int,
        num_slices: int,
        slice_offset: int = 0,
    ) -> None:
        if num_slices < 1:
            raise ValueError("At least one slice is required.")
        self.store = store
        self.undo = undo
        self.channels_per_arc = channels_per_arc
        self.num_slices = num_slices
        self.slice_offset = slice_offset

    @property
    def num_channels(self) -> int:
        return self.store.num_channels

    def initial_state(self) -> ControllerState:
        return ControllerState()

    def slice_id(self, state: ControllerState) -> int:
        return state.slice_index + self.slice_offset

    # Pointer handling
    def handle_click(self, state: ControllerState, x: float, y: float, shift: bool = False) -> Transition:
        if not shift:
            return self._place_single(self.cancel_arc(state), x, y)

        point = (float(x), float(y))
        if state.arc_mode is ArcMode.IDLE:
            LOGGER.debug("Arc start at %s", point)
            return Transition(replace(state, arc_mode=ArcMode.AWAIT_END, arc_points=(point,)))
        if state.arc_mode is ArcMode.AWAIT_END:
            LOGGER.debug("Arc end at %s", point)
            return Transition(
                replace(state, arc_mode=ArcMode.AWAIT_CONTROL, arc_points=state.arc_points + (point,))
            )
        return self._place_arc(state, point)

    def cancel_arc(self, state: ControllerState) -> ControllerState:
        if not state.arc_active:
            return state
        return replace(state, arc_mode=ArcMode.IDLE, arc_points=())

    def _place_single(self, state: ControllerState, x: float, y: float) -> Transition:
        channel = state.selected_channel
        slice_id = self.slice_id(state)
        px, py = round_pixel(x), round_pixel(y)
        prior = self.store.set_single(channel, slice_id, px, py)
        self.undo.record([prior])
        LOGGER.debug("Channel %d placed at (%d, %d) on slice %d", channel, px, py, slice_id)
        next_channel = channel % self.num_channels + 1
        return Transition(replace(state, selected_channel=next_channel), (channel,), refresh=True)

    def _place_arc(self, state: ControllerState, control: Point) -> Transition:
        start, end = state.arc_points
        samples = sample_arc(
            start,
            end,
            control,
            self.channels_per_arc,
            state.selected_channel,
            self.num_channels,
            self.slice_id(state),
        )
        priors = self.store.set_batch(
            [sample.channel for sample in samples],
            [sample.slice for sample in samples],
            [sample.x for sample in samples],
            [sample.y for sample in samples],
        )
        self.undo.record(priors)
        channels = tuple(sample.channel for sample in samples)
        LOGGER.debug("Arc placed channel(s) %s on slice %d", list(channels), self.slice_id(state))
        return Transition(self.cancel_arc(state), channels, refresh=True)

    # Keyboard handling
    def handle_key(self, state: ControllerState, command: KeyCommand) -> Transition:
        if command is KeyCommand.NEXT_SLICE:
            return self._goto_slice(state, state.slice_index + 1)
        if command is KeyCommand.PREVIOUS_SLICE:
            return self._goto_slice(state, state.slice_index - 1)
        if command is KeyCommand.NEXT_CHANNEL:
            return Transition(replace(state, selected_channel=state.selected_channel % self.num_channels + 1))
        if command is KeyCommand.PREVIOUS_CHANNEL:
            previous = (state.selected_channel - 2) % self.num_channels + 1
            return Transition(replace(state, selected_channel=previous))
        if command is KeyCommand.UNDO:
            channels = self.undo.pop_and_apply(self.store)
            return Transition(state, tuple(channels), refresh=True)
        raise ValueError(f"Unsupported command: {command}")

    def clamp_slice_index(self, index: int) -> int:
        return max(1, min(index, self.num_slices))

    def _goto_slice(self, state: ControllerState, index: int) -> Transition:
        clamped = self.clamp_slice_index(index)
        return Transition(replace(state, slice_index=clamped), refresh=True)

    def select_channel(self, state: ControllerState, channel: int) -> ControllerState:
        if not 1 <= channel <= self.num_channels:
            raise ValueError(f"Channel {channel} outside 1..{self.num_channels}")
        return replace(state, selected_channel=channel)

    def load_records(self, records: Iterable[AnnotationRecord]) -> Tuple[int, ...]:
        """Seed the store from a previously saved table; clears the undo buffer."""
        placed = [record for record in records if record.is_set]
        self.store.set_batch(
            [record.original_channel for record in placed],
            [record.slice for record in placed],
            [record.x for record in placed],
            [record.y for record in placed],
        )
        self.undo.clear()
        LOGGER.info("Restored %d placed channel(s)", len(placed))
        return tuple(record.original_channel for record in placed)
