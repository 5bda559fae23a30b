"""Manual localization of numbered channels on stacks of image slices."""

__version__ = "0.1.0"
