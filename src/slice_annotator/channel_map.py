"""Lookup from sequential channel index to physical channel identifier."""
from __future__ import annotations

from typing import List, Optional, Sequence

from slice_annotator.config import ConfigError


class ChannelMap:
    """1-based mapping from annotation channel to device channel."""

    def __init__(self, mapping: Sequence[int]) -> None:
        self._mapping: List[int] = [int(value) for value in mapping]

    @classmethod
    def identity(cls, num_channels: int) -> "ChannelMap":
        return cls(range(1, num_channels + 1))

    @classmethod
    def from_sequence(cls, values: Optional[Sequence[int]], num_channels: int) -> "ChannelMap":
        """Build a map from configuration, defaulting to identity.

        Raises:
            ConfigError: If ``values`` does not hold exactly ``num_channels`` entries.
        """
        if not values:
            return cls.identity(num_channels)
        if len(values) != num_channels:
            raise ConfigError(
                "Must have exactly as many elements in channel_map as requested "
                f"channels ({num_channels}), got {len(values)}."
            )
        return cls(values)

    def __len__(self) -> int:
        return len(self._mapping)

    def __getitem__(self, channel: int) -> int:
        if not 1 <= channel <= len(self._mapping):
            raise ValueError(f"Channel {channel} outside 1..{len(self._mapping)}")
        return self._mapping[channel - 1]
