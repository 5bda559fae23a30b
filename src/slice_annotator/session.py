"""Assembly of the annotation core for one folder of slices."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np

from slice_annotator.annotations import AnnotationStore, load_annotations
from slice_annotator.channel_map import ChannelMap
from slice_annotator.config import AnnotatorConfig, channel_colors, validate_config
from slice_annotator.controller import InteractionController
from slice_annotator.display import DisplaySync
from slice_annotator.slices import SliceStack
from slice_annotator.undo import UndoBuffer

LOGGER = logging.getLogger(__name__)


@dataclass
class AnnotationSession:
    """Everything the UI shell needs to annotate one slice folder."""

    config: AnnotatorConfig
    folder: Path
    stack: SliceStack
    controller: InteractionController
    display: DisplaySync
    colors: np.ndarray

    @property
    def store(self) -> AnnotationStore:
        return self.controller.store

    @property
    def default_output_path(self) -> Path:
        return self.folder / self.config.output_name


def open_session(
    config: AnnotatorConfig,
    folder: Path,
    resume: Optional[Path] = None,
) -> AnnotationSession:
    """Validate ``config``, scan ``folder`` and build the annotation core.

    Raises:
        ConfigError: If the configuration is inconsistent.
        NoSlicesFoundError: If ``folder`` holds no matching images.
    """
    validate_config(config)
    channel_map = ChannelMap.from_sequence(config.channel_map, config.num_channels)
    stack = SliceStack.from_folder(folder, config.image_prefix, config.image_type, config.slice_offset)

    store = AnnotationStore(channel_map)
    controller = InteractionController(
        store,
        UndoBuffer(),
        channels_per_arc=config.channels_per_arc,
        num_slices=len(stack),
        slice_offset=stack.offset,
    )
    if resume is not None:
        controller.load_records(load_annotations(resume, config.num_channels))

    LOGGER.info(
        "Annotating %d channel(s) across %d slice(s) in %s",
        config.num_channels,
        len(stack),
        folder,
    )
    return AnnotationSession(
        config=config,
        folder=folder,
        stack=stack,
        controller=controller,
        display=DisplaySync(store),
        colors=channel_colors(config),
    )
