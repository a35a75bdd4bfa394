"""Utility functions for herald."""

import os
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the herald data directory.

    Respects HERALD_HOME environment variable; falls back to ~/.herald.
    """
    herald_home = os.environ.get("HERALD_HOME", "").strip()
    if herald_home:
        return ensure_dir(Path(herald_home).expanduser())
    return ensure_dir(Path.home() / ".herald")
