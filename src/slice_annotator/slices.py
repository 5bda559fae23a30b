"""Discovery and reading of the image slices in a section folder."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)


class NoSlicesFoundError(FileNotFoundError):
    """Raised when a folder holds no images matching the configured pattern."""


def find_slice_images(folder: Path, prefix: str, suffix: str) -> List[Path]:
    """Return ``<prefix>*<suffix>`` files in ``folder`` sorted by name."""

    if not folder.is_dir():
        return []
    return sorted(
        (path for path in folder.glob(f"{prefix}*{suffix}") if path.is_file()),
        key=lambda path: path.name,
    )


def parse_slice_number(path: Path, prefix: str, suffix: str) -> Optional[int]:
    """Extract the number between ``prefix`` and ``suffix``, if there is one."""

    name = path.name
    if name.startswith(prefix):
        name = name[len(prefix) :]
    if suffix and name.endswith(suffix):
        name = name[: -len(suffix)]
    try:
        return int(name)
    except ValueError:
        return None


def detect_slice_offset(paths: Sequence[Path], prefix: str, suffix: str) -> int:
    """Offset such that the lowest-numbered file becomes slice ``1 + offset``."""

    numbers = [
        number
        for number in (parse_slice_number(path, prefix, suffix) for path in paths)
        if number is not None
    ]
    if not numbers:
        raise ValueError("No slice filenames end in a number; set slice_offset manually.")
    return min(numbers) - 1


@dataclass
class SliceStack:
    """Ordered slice images and the offset that turns positions into slice ids."""

    paths: List[Path]
    offset: int = 0

    @classmethod
    def from_folder(
        cls,
        folder: Path,
        prefix: str,
        suffix: str,
        offset: Optional[int] = None,
    ) -> "SliceStack":
        paths = find_slice_images(folder, prefix, suffix)
        if not paths:
            raise NoSlicesFoundError(f"No images matching {prefix}*{suffix} found in {folder}")

        if offset is None:
            offset = detect_slice_offset(paths, prefix, suffix)
            LOGGER.info(
                "Detected slice offset as %d. If that is incorrect, set it manually with slice_offset.",
                offset,
            )
        else:
            LOGGER.info("Using manual slice offset value of %d.", offset)
        # Slice id 0 marks an unplaced channel
        if offset + 1 <= 0:
            raise ValueError(
                f"Slice offset {offset} would number the first slice {offset + 1}; "
                "slice ids must start at 1 or above. Set slice_offset to 0 or more."
            )
        return cls(paths=paths, offset=offset)

    def __len__(self) -> int:
        return len(self.paths)

    def clamp_index(self, index: int) -> int:
        """Clamp a 1-based slice position to the stack."""
        if not self.paths:
            return 1
        return max(1, min(index, len(self.paths)))

    def slice_id(self, index: int) -> int:
        return index + self.offset

    def path(self, index: int) -> Path:
        return self.paths[self.clamp_index(index) - 1]

    def read(self, index: int) -> Optional[np.ndarray]:
        """Read a slice as an RGB (or grayscale) array, None when unreadable."""
        image = cv2.imread(str(self.path(index)), cv2.IMREAD_UNCHANGED)
        if image is None:
            LOGGER.warning("Unable to read slice image %s", self.path(index))
            return None
        if image.ndim == 3 and image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
        if image.ndim == 3:
            return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        return image
