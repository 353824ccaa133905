"""MultiCrop - split flatbed scans of several photos into individual crops."""

__version__ = "0.1.0"
