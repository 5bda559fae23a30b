"""Tests for the click/keyboard state machine."""
import unittest

from slice_annotator.annotations import AnnotationRecord, AnnotationStore
from slice_annotator.channel_map import ChannelMap
from slice_annotator.controller import (
    ArcMode,
    ControllerState,
    InteractionController,
    KeyCommand,
    command_for_key,
)
from slice_annotator.undo import UndoBuffer


def make_controller(num_channels=8, channels_per_arc=8, num_slices=3, slice_offset=104, mapping=None):
    channel_map = ChannelMap(mapping) if mapping else ChannelMap.identity(num_channels)
    return InteractionController(
        AnnotationStore(channel_map),
        UndoBuffer(),
        channels_per_arc=channels_per_arc,
        num_slices=num_slices,
        slice_offset=slice_offset,
    )


class SingleClickTests(unittest.TestCase):
    def test_click_places_selected_channel_and_advances(self) -> None:
        controller = make_controller(num_channels=4, mapping=[17, 16, 15, 14])
        state = controller.initial_state()

        transition = controller.handle_click(state, 10.4, 19.6)

        self.assertEqual(controller.store.record(1), AnnotationRecord(1, 17, 105, 10, 20))
        self.assertEqual(transition.state.selected_channel, 2)
        self.assertEqual(transition.channels, (1,))
        self.assertTrue(transition.refresh)

    def test_selection_wraps_after_last_channel(self) -> None:
        controller = make_controller(num_channels=4)
        state = ControllerState(selected_channel=4)

        transition = controller.handle_click(state, 1, 1)

        self.assertEqual(transition.state.selected_channel, 1)

    def test_every_channel_keeps_identity_and_mapping(self) -> None:
        mapping = [5, 9, 2, 7]
        controller = make_controller(num_channels=4, mapping=mapping)
        state = controller.initial_state()
        for _ in range(4):
            state = controller.handle_click(state, 3, 4).state

        for channel in range(1, 5):
            record = controller.store.record(channel)
            self.assertEqual(record.original_channel, channel)
            self.assertEqual(record.mapped_channel, mapping[channel - 1])

    def test_plain_click_cancels_arc_in_progress(self) -> None:
        controller = make_controller()
        state = controller.handle_click(controller.initial_state(), 0, 0, shift=True).state
        state = controller.handle_click(state, 5, 5, shift=True).state
        self.assertEqual(state.arc_mode, ArcMode.AWAIT_CONTROL)

        transition = controller.handle_click(state, 7, 7)

        self.assertEqual(transition.state.arc_mode, ArcMode.IDLE)
        self.assertEqual(transition.state.arc_points, ())
        self.assertEqual(controller.store.placed_channels(), [1])


class ArcClickTests(unittest.TestCase):
    def test_three_shift_clicks_place_arc(self) -> None:
        controller = make_controller(num_channels=64, channels_per_arc=8)
        state = controller.select_channel(controller.initial_state(), 10)

        state = controller.handle_click(state, 0, 0, shift=True).state
        self.assertEqual(state.arc_mode, ArcMode.AWAIT_END)
        self.assertEqual(controller.store.placed_channels(), [])

        state = controller.handle_click(state, 10, 0, shift=True).state
        self.assertEqual(state.arc_mode, ArcMode.AWAIT_CONTROL)
        self.assertEqual(state.arc_points, ((0.0, 0.0), (10.0, 0.0)))

        transition = controller.handle_click(state, 5, 10, shift=True)

        self.assertEqual(transition.channels, tuple(range(10, 18)))
        self.assertEqual(transition.state.arc_mode, ArcMode.IDLE)
        self.assertEqual(transition.state.arc_points, ())
        self.assertEqual(transition.state.selected_channel, 10)
        self.assertEqual(controller.store.placed_channels(), list(range(10, 18)))
        self.assertEqual(controller.store.record(10).position, (0, 0))
        self.assertEqual(controller.store.record(17).position, (10, 0))

    def test_arc_near_last_channel_truncates(self) -> None:
        controller = make_controller(num_channels=64, channels_per_arc=8)
        state = controller.select_channel(controller.initial_state(), 62)
        for point in ((0, 0), (10, 0), (5, 10)):
            transition = controller.handle_click(state, *point, shift=True)
            state = transition.state

        self.assertEqual(transition.channels, (62, 63, 64))

    def test_undo_of_truncated_arc_restores_only_assigned_channels(self) -> None:
        controller = make_controller(num_channels=8, channels_per_arc=4)
        state = controller.select_channel(controller.initial_state(), 7)
        state = controller.handle_click(state, 1, 1).state
        before = controller.store.records()

        state = controller.select_channel(state, 6)
        for point in ((0, 0), (10, 0), (5, 10)):
            transition = controller.handle_click(state, *point, shift=True)
            state = transition.state
        self.assertEqual(transition.channels, (6, 7, 8))

        undone = controller.handle_key(state, KeyCommand.UNDO)

        self.assertEqual(undone.channels, (6, 7, 8))
        self.assertEqual(controller.store.records(), before)
        self.assertEqual(controller.store.record(7), AnnotationRecord(7, 7, 105, 1, 1))
        self.assertFalse(controller.store.is_set(6))
        self.assertFalse(controller.store.is_set(8))

    def test_arc_order_follows_channels_not_click_order(self) -> None:
        controller = make_controller(num_channels=8, channels_per_arc=3)
        state = controller.initial_state()
        for point in ((20, 0), (0, 0), (10, 10)):
            state = controller.handle_click(state, *point, shift=True).state

        self.assertEqual(controller.store.record(1).position, (20, 0))
        self.assertEqual(controller.store.record(3).position, (0, 0))


class KeyCommandTests(unittest.TestCase):
    def test_slice_navigation_clamps(self) -> None:
        controller = make_controller(num_slices=3)
        state = controller.initial_state()

        state = controller.handle_key(state, KeyCommand.PREVIOUS_SLICE).state
        self.assertEqual(state.slice_index, 1)

        for _ in range(5):
            state = controller.handle_key(state, KeyCommand.NEXT_SLICE).state
        self.assertEqual(state.slice_index, 3)
        self.assertEqual(controller.slice_id(state), 107)

    def test_channel_navigation_wraps(self) -> None:
        controller = make_controller(num_channels=8)
        state = ControllerState(selected_channel=8)

        state = controller.handle_key(state, KeyCommand.NEXT_CHANNEL).state
        self.assertEqual(state.selected_channel, 1)

        state = controller.handle_key(state, KeyCommand.PREVIOUS_CHANNEL).state
        self.assertEqual(state.selected_channel, 8)

    def test_undo_single_click(self) -> None:
        controller = make_controller()
        state = controller.handle_click(controller.initial_state(), 4, 4).state
        state = controller.handle_click(ControllerState(selected_channel=1), 9, 9).state

        transition = controller.handle_key(state, KeyCommand.UNDO)

        self.assertEqual(transition.channels, (1,))
        self.assertEqual(controller.store.record(1).position, (4, 4))
        self.assertEqual(controller.handle_key(state, KeyCommand.UNDO).channels, ())
        self.assertEqual(controller.store.record(1).position, (4, 4))

    def test_select_channel_validates_range(self) -> None:
        controller = make_controller(num_channels=4)
        with self.assertRaises(ValueError):
            controller.select_channel(controller.initial_state(), 5)

    def test_default_key_bindings(self) -> None:
        self.assertIs(command_for_key("Up"), KeyCommand.NEXT_SLICE)
        self.assertIs(command_for_key("s"), KeyCommand.PREVIOUS_SLICE)
        self.assertIs(command_for_key("d"), KeyCommand.NEXT_CHANNEL)
        self.assertIs(command_for_key("left"), KeyCommand.PREVIOUS_CHANNEL)
        self.assertIs(command_for_key("z", ctrl=True), KeyCommand.UNDO)
        self.assertIsNone(command_for_key("z"))


class EndToEndScenarioTests(unittest.TestCase):
    def test_click_arc_then_undo(self) -> None:
        controller = make_controller(num_channels=4, channels_per_arc=2, num_slices=10, slice_offset=0)
        state = controller.initial_state()
        for _ in range(4):
            state = controller.handle_key(state, KeyCommand.NEXT_SLICE).state
        self.assertEqual(controller.slice_id(state), 5)

        state = controller.handle_click(state, 10, 20).state
        self.assertEqual(controller.store.record(1), AnnotationRecord(1, 1, 5, 10, 20))
        self.assertEqual(state.selected_channel, 2)

        for point in ((0, 0), (20, 0), (10, 10)):
            state = controller.handle_click(state, *point, shift=True).state
        self.assertEqual(controller.store.record(2), AnnotationRecord(2, 2, 5, 0, 0))
        self.assertEqual(controller.store.record(3), AnnotationRecord(3, 3, 5, 20, 0))
        self.assertFalse(controller.store.is_set(4))

        controller.handle_key(state, KeyCommand.UNDO)

        self.assertEqual(controller.store.record(2).slice, 0)
        self.assertEqual(controller.store.record(3).slice, 0)
        self.assertEqual(controller.store.record(1), AnnotationRecord(1, 1, 5, 10, 20))


class LoadRecordsTests(unittest.TestCase):
    def test_load_records_seeds_store_and_clears_undo(self) -> None:
        controller = make_controller(num_channels=4)
        controller.handle_click(controller.initial_state(), 1, 1)

        loaded = controller.load_records(
            [AnnotationRecord(2, 2, 106, 5, 6), AnnotationRecord(3, 3, 0, None, None)]
        )

        self.assertEqual(loaded, (2,))
        self.assertEqual(controller.store.record(2).position, (5, 6))
        self.assertFalse(controller.undo.has_entry)


if __name__ == "__main__":
    unittest.main()
