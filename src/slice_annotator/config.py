"""Configuration management for the Slice Annotator."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import yaml
from platformdirs import user_config_path

LOGGER = logging.getLogger(__name__)

APP_NAME = "slice-annotator"
ENV_CONFIG_PATH = "SLICE_ANNOTATOR_CONFIG"
DEFAULT_CONFIG_FILENAME = "config.yaml"

DEFAULT_NUM_CHANNELS = 64
DEFAULT_CHANNELS_PER_ARC = 8
DEFAULT_MARKER_SIZE = 8.0
DEFAULT_IMAGE_PREFIX = "R_Forearm_Section_"
DEFAULT_IMAGE_TYPE = ".png"
DEFAULT_OUTPUT_NAME = "annotations.csv"


class ConfigError(ValueError):
    """Raised when configuration values are inconsistent."""


class ConfigNotFoundError(FileNotFoundError):
    """Raised when an explicitly requested configuration file does not exist."""


def _user_config_path() -> Path:
    return user_config_path(APP_NAME, ensure_exists=True) / DEFAULT_CONFIG_FILENAME


@dataclass
class AnnotatorConfig:
    """Runtime options for a channel annotation session."""

    num_channels: int = DEFAULT_NUM_CHANNELS
    channels_per_arc: int = DEFAULT_CHANNELS_PER_ARC
    channel_map: Optional[List[int]] = None
    marker_size: float = DEFAULT_MARKER_SIZE
    cdata: Optional[List[List[float]]] = None
    slice_offset: Optional[int] = None
    image_prefix: str = DEFAULT_IMAGE_PREFIX
    image_type: str = DEFAULT_IMAGE_TYPE
    output_name: str = DEFAULT_OUTPUT_NAME
    default_search_path: str = "~"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_channels": self.num_channels,
            "channels_per_arc": self.channels_per_arc,
            **({"channel_map": list(self.channel_map)} if self.channel_map else {}),
            "marker_size": self.marker_size,
            **({"cdata": [list(row) for row in self.cdata]} if self.cdata else {}),
            **({"slice_offset": self.slice_offset} if self.slice_offset is not None else {}),
            "image_prefix": self.image_prefix,
            "image_type": self.image_type,
            "output_name": self.output_name,
            "default_search_path": self.default_search_path,
        }

    @property
    def search_root(self) -> Path:
        return Path(self.default_search_path).expanduser()


@dataclass
class ConfigResolution:
    """Result of resolving configuration inputs."""

    config: AnnotatorConfig
    path: Optional[Path]
    source: str


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _config_from_mapping(data: Dict[str, Any], origin: str) -> AnnotatorConfig:
    try:
        channel_map = data.get("channel_map")
        cdata = data.get("cdata")
        return AnnotatorConfig(
            num_channels=int(data.get("num_channels", DEFAULT_NUM_CHANNELS)),
            channels_per_arc=int(data.get("channels_per_arc", DEFAULT_CHANNELS_PER_ARC)),
            channel_map=[int(value) for value in channel_map] if channel_map else None,
            marker_size=float(data.get("marker_size", DEFAULT_MARKER_SIZE)),
            cdata=[[float(value) for value in row] for row in cdata] if cdata else None,
            slice_offset=_optional_int(data.get("slice_offset")),
            image_prefix=str(data.get("image_prefix", DEFAULT_IMAGE_PREFIX)),
            image_type=str(data.get("image_type", DEFAULT_IMAGE_TYPE)),
            output_name=str(data.get("output_name", DEFAULT_OUTPUT_NAME)),
            default_search_path=str(data.get("default_search_path", "~")),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value in configuration from {origin}: {exc}") from exc


def _load_yaml_config(path: Path) -> AnnotatorConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file at {path} must contain a mapping")
    return _config_from_mapping(data, str(path))


def save_config(config: AnnotatorConfig, path: Optional[Path] = None) -> Path:
    target = path or _user_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config.to_dict(), handle, sort_keys=False)
    LOGGER.info("Saved configuration to %s", target)
    return target


def resolve_config(cli_config: Optional[Path] = None) -> ConfigResolution:
    """Locate the configuration, falling back to built-in defaults."""

    if cli_config:
        config_path = cli_config.expanduser()
        if not config_path.exists():
            raise ConfigNotFoundError(f"Configuration file not found: {config_path}")
        return ConfigResolution(_load_yaml_config(config_path), config_path, "cli")

    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        config_path = Path(env_path).expanduser()
        if not config_path.exists():
            raise ConfigNotFoundError(f"Configuration file not found: {config_path}")
        return ConfigResolution(_load_yaml_config(config_path), config_path, "env_config")

    user_path = _user_config_path()
    if user_path.exists():
        return ConfigResolution(_load_yaml_config(user_path), user_path, "user")

    return ConfigResolution(AnnotatorConfig(), None, "defaults")


def winter_colormap(count: int) -> np.ndarray:
    """Blue-to-green ramp used when no explicit channel colors are given."""

    if count <= 0:
        return np.zeros((0, 3))
    green = np.linspace(0.0, 1.0, count)
    return np.column_stack([np.zeros(count), green, 1.0 - 0.5 * green])


def channel_colors(config: AnnotatorConfig) -> np.ndarray:
    """Return one RGB row (0..1) per channel."""

    if config.cdata is None:
        return winter_colormap(config.num_channels)
    return np.asarray(config.cdata, dtype=float)[: config.num_channels, :3]


def validate_config(config: AnnotatorConfig) -> AnnotatorConfig:
    """Check a configuration before any annotation state is built."""

    # channel_map imports ConfigError from this module
    from slice_annotator.channel_map import ChannelMap

    if config.num_channels < 1:
        raise ConfigError("num_channels must be at least 1.")
    if config.channels_per_arc < 1:
        raise ConfigError("channels_per_arc must be at least 1.")
    if config.marker_size <= 0:
        raise ConfigError("marker_size must be positive.")
    ChannelMap.from_sequence(config.channel_map, config.num_channels)
    if config.cdata is not None:
        rows = np.asarray(config.cdata, dtype=float)
        if rows.ndim != 2 or rows.shape[1] < 3:
            raise ConfigError("cdata must be a list of RGB rows.")
        if rows.shape[0] < config.num_channels:
            raise ConfigError(
                "Must have at least as many rows in cdata as requested "
                f"channels ({config.num_channels})."
            )
    return config
