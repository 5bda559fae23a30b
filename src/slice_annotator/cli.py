"""Console entrypoint for the Slice Annotator."""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from slice_annotator import __version__
from slice_annotator.config import (
    ConfigError,
    ConfigNotFoundError,
    ConfigResolution,
    resolve_config,
    save_config,
    validate_config,
)
from slice_annotator.slices import NoSlicesFoundError

LOGGER = logging.getLogger(__name__)


def _channel_list(raw: str) -> List[int]:
    try:
        return [int(part) for part in raw.replace(" ", "").split(",") if part]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid channel map {raw!r}: {exc}") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Place numbered channels on a stack of image slices.",
    )
    parser.add_argument(
        "folder",
        nargs="?",
        type=Path,
        help="Folder containing the slice images. A folder dialog is shown when omitted.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a YAML configuration file. Overrides environment variables.",
    )
    parser.add_argument("--num-channels", type=int, help="Number of channels to annotate.")
    parser.add_argument("--channels-per-arc", type=int, help="Channels placed by one arc.")
    parser.add_argument(
        "--channel-map",
        type=_channel_list,
        help="Comma-separated physical channel ids, one per channel.",
    )
    parser.add_argument(
        "--slice-offset",
        type=int,
        help="Slice numbering offset. Detected from filenames when omitted.",
    )
    parser.add_argument(
        "--resume",
        type=Path,
        help="Previously saved annotation CSV to continue from.",
    )
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Store the effective configuration in the user config file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging for troubleshooting.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the package version and exit.",
    )
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s [%(name)s] %(message)s",
    )


def _apply_overrides(resolution: ConfigResolution, args: argparse.Namespace) -> ConfigResolution:
    overrides = {
        "num_channels": args.num_channels,
        "channels_per_arc": args.channels_per_arc,
        "channel_map": args.channel_map,
        "slice_offset": args.slice_offset,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if not overrides:
        return resolution
    LOGGER.debug("Command line overrides: %s", overrides)
    return ConfigResolution(replace(resolution.config, **overrides), resolution.path, resolution.source)


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.version:
        print(__version__)
        return 0

    try:
        resolution = _apply_overrides(resolve_config(cli_config=args.config), args)
    except ConfigNotFoundError as exc:
        LOGGER.error(str(exc))
        return 1
    except (OSError, ValueError) as exc:
        LOGGER.error("Failed to load configuration: %s", exc)
        return 1

    try:
        validate_config(resolution.config)
    except ConfigError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    if args.save_config:
        save_config(resolution.config)

    LOGGER.info(
        "Using %d channel(s), %d per arc (source: %s%s)",
        resolution.config.num_channels,
        resolution.config.channels_per_arc,
        resolution.source,
        f", path={resolution.path}" if resolution.path else "",
    )

    from slice_annotator.app import launch_app

    try:
        return launch_app(resolution.config, args.folder, resume=args.resume, argv=argv)
    except ConfigError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1
    except NoSlicesFoundError as exc:
        LOGGER.error(str(exc))
        return 1
    except ValueError as exc:
        LOGGER.error("Failed to open slices: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    sys.exit(main())
