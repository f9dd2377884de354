"""Gosh USB Creator - write disk images to removable drives and verify them.

This package provides the write-lifecycle core (state store, device
discovery, image validation, checksum verification and write
orchestration) plus a local Linux backend and CLI/web front ends.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
