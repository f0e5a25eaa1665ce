"""ShotLens: native screenshots described by a local vision model."""

__version__ = "0.1.0"
