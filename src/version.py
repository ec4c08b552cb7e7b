# src/version.py - v1
"""Package version, also stamped into embedded icon metadata."""

__version__ = "0.4.0"

METADATA_VERSION = "1.0.0"
