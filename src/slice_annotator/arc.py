"""Quadratic Bezier sampling used to place a run of channels along a curve."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

Point = Tuple[float, float]


@dataclass(frozen=True)
class ArcSample:
    """One channel placement produced by an arc."""

    channel: int
    slice: int
    x: int
    y: int


def round_pixel(value: float) -> int:
    """Round to the nearest integer pixel, halves away from zero."""
    return int(np.sign(value) * np.floor(np.abs(value) + 0.5))


def bezier_points(p0: Point, p1: Point, pc: Point, count: int) -> np.ndarray:
    """Evaluate ``count`` evenly spaced points of the curve from ``p0`` to ``p1``.

    ``pc`` is the control point. Returns a ``(count, 2)`` float array in curve
    order.
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    t = np.linspace(0.0, 1.0, count)[:, np.newaxis]
    start = np.asarray(p0, dtype=float)
    end = np.asarray(p1, dtype=float)
    control = np.asarray(pc, dtype=float)
    return (1 - t) ** 2 * start + 2 * (1 - t) * t * control + t**2 * end


def sample_arc(
    p0: Point,
    p1: Point,
    pc: Point,
    count: int,
    start_channel: int,
    num_channels: int,
    slice_id: int,
) -> List[ArcSample]:
    """Assign curve samples to consecutive channels starting at ``start_channel``.

    Samples that would land past ``num_channels`` are dropped, so fewer than
    ``count`` placements come back near the end of the channel range.
    """
    samples: List[ArcSample] = []
    for offset, (x, y) in enumerate(bezier_points(p0, p1, pc, count)):
        channel = start_channel + offset
        if channel > num_channels:
            break
        samples.append(ArcSample(channel, slice_id, round_pixel(x), round_pixel(y)))
    return samples
