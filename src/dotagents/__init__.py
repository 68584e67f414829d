"""dotagents: layered, crash-safe, file-backed store for agent artifacts."""

__version__ = "0.3.0"
