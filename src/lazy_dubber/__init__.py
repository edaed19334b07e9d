"""Lazy Dubber: subtitle translation pipeline for synchronized dubbing playback."""

__version__ = "0.1.0"
