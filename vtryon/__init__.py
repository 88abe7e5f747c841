"""Virtual try-on: image preparation and generation orchestration."""

__version__ = "0.4.0"
