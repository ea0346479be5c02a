"""HUD Readings API: stores and serves patient sensor readings backed by MongoDB."""

__version__ = "0.1.0"
