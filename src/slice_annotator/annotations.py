"""Channel annotation records, the record store, and CSV persistence."""
from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from slice_annotator.channel_map import ChannelMap

LOGGER = logging.getLogger(__name__)

UNSET_SLICE = 0
EXPORT_COLUMNS = ("Original", "Mapped", "Slice", "X", "Y")


@dataclass(frozen=True)
class AnnotationRecord:
    """Placement of one channel: the slice it sits on and its pixel position."""

    original_channel: int
    mapped_channel: int
    slice: int = UNSET_SLICE
    x: Optional[float] = None
    y: Optional[float] = None

    @property
    def is_set(self) -> bool:
        return self.slice != UNSET_SLICE

    @property
    def position(self) -> Optional[Tuple[float, float]]:
        if not self.is_set or self.x is None or self.y is None:
            return None
        return self.x, self.y


@dataclass(frozen=True)
class UndoItem:
    """Values a channel held immediately before it was overwritten."""

    channel: int
    slice: int
    x: Optional[float]
    y: Optional[float]


class AnnotationStore:
    """Owns exactly one record per channel.

    Records are only changed through :meth:`set_single` and :meth:`set_batch`;
    both hand back the values they replaced so the caller can buffer an undo.
    """

    def __init__(self, channel_map: ChannelMap) -> None:
        self.channel_map = channel_map
        self._records: List[AnnotationRecord] = [
            AnnotationRecord(original_channel=channel, mapped_channel=channel_map[channel])
            for channel in range(1, len(channel_map) + 1)
        ]

    def __len__(self) -> int:
        return len(self._records)

    @property
    def num_channels(self) -> int:
        return len(self._records)

    def _check_channel(self, channel: int) -> None:
        if not 1 <= channel <= len(self._records):
            raise ValueError(f"Channel {channel} outside 1..{len(self._records)}")

    def record(self, channel: int) -> AnnotationRecord:
        self._check_channel(channel)
        return self._records[channel - 1]

    def records(self) -> Tuple[AnnotationRecord, ...]:
        return tuple(self._records)

    def is_set(self, channel: int) -> bool:
        return self.record(channel).is_set

    def placed_channels(self) -> List[int]:
        return [record.original_channel for record in self._records if record.is_set]

    def _replace(self, channel: int, slice_id: int, x: Optional[float], y: Optional[float]) -> UndoItem:
        current = self._records[channel - 1]
        prior = UndoItem(channel=channel, slice=current.slice, x=current.x, y=current.y)
        self._records[channel - 1] = AnnotationRecord(
            original_channel=channel,
            mapped_channel=self.channel_map[channel],
            slice=int(slice_id),
            x=x,
            y=y,
        )
        return prior

    def set_single(self, channel: int, slice_id: int, x: Optional[float], y: Optional[float]) -> UndoItem:
        self._check_channel(channel)
        return self._replace(channel, slice_id, x, y)

    def set_batch(
        self,
        channels: Sequence[int],
        slices: Sequence[int],
        xs: Sequence[Optional[float]],
        ys: Sequence[Optional[float]],
    ) -> List[UndoItem]:
        if not len(channels) == len(slices) == len(xs) == len(ys):
            raise ValueError("Batch assignment requires equally sized channel, slice, x and y lists.")
        for channel in channels:
            self._check_channel(channel)
        return [
            self._replace(channel, slice_id, x, y)
            for channel, slice_id, x, y in zip(channels, slices, xs, ys)
        ]


def _format_coordinate(value: Optional[float]) -> str:
    if value is None:
        return "NaN"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.6g}"


def _parse_coordinate(raw: str) -> Optional[float]:
    value = float(raw)
    return None if math.isnan(value) else value


def save_annotations(csv_path: Path, records: Iterable[AnnotationRecord]) -> None:
    """Persist one row per channel, in channel order."""

    csv_path.parent.mkdir(parents=True, exist_ok=True)
    rows = sorted(records, key=lambda record: record.original_channel)
    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(EXPORT_COLUMNS)
        for record in rows:
            writer.writerow(
                [
                    record.original_channel,
                    record.mapped_channel,
                    record.slice,
                    _format_coordinate(record.x if record.is_set else None),
                    _format_coordinate(record.y if record.is_set else None),
                ]
            )
    LOGGER.info("Saved %d annotation row(s) to %s", len(rows), csv_path)


def load_annotations(csv_path: Path, num_channels: int) -> List[AnnotationRecord]:
    """Load a previously exported table.

    Missing files return an empty list so a session can start from scratch.
    Rows for channels that were never placed are skipped.
    """

    if not csv_path.exists():
        return []

    records: List[AnnotationRecord] = []
    with csv_path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            raise ValueError("Annotation file is missing a header row.")
        missing = [column for column in EXPORT_COLUMNS if column not in reader.fieldnames]
        if missing:
            raise ValueError(f"Annotation file missing columns: {', '.join(missing)}")

        for row in reader:
            try:
                channel = int(float(row["Original"]))
                mapped = int(float(row["Mapped"]))
                slice_id = int(float(row["Slice"]))
                x = _parse_coordinate(row["X"])
                y = _parse_coordinate(row["Y"])
            except (TypeError, ValueError) as exc:
                raise ValueError("Annotations must contain numeric values in every column.") from exc

            if slice_id == UNSET_SLICE:
                continue
            if not 1 <= channel <= num_channels:
                raise ValueError(f"Channel {channel} in {csv_path.name} outside 1..{num_channels}")
            records.append(AnnotationRecord(channel, mapped, slice_id, x, y))

    return records
