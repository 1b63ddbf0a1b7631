"""
Project root detection utility.

Finds the ScratchTools project root by searching upward for a features/
or .scratchkit/ directory, so commands run from a feature folder still
operate on the whole project.
"""

from pathlib import Path

from scratchkit.models import FEATURES_DIR
from scratchkit.utils.config import CONFIG_DIR


def find_project_root(start: Path = None) -> Path:
    """
    Find project root by searching upward for features/ or .scratchkit/.

    Args:
        start: Starting directory (default: cwd)

    Returns:
        Path to project root

    Note:
        If neither directory is found, returns the starting directory so
        a fresh project can be scaffolded in place.
    """
    origin = (start or Path.cwd()).resolve()
    current = origin

    while True:
        if (current / FEATURES_DIR).is_dir() or (current / CONFIG_DIR).is_dir():
            return current
        if current == current.parent:
            return origin
        current = current.parent
