"""Batch auto-crop of images around their dominant foreground region."""

__version__ = "0.1.0"
