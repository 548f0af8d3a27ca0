"""Segment-by-segment practice playback for spoken audio."""

__version__ = "0.1.0"
