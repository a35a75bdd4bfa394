"""Loading of listener scripts."""

from herald.scripts.loader import BUILTIN_SCRIPTS_PATH, load_file, load_scripts

__all__ = ["BUILTIN_SCRIPTS_PATH", "load_file", "load_scripts"]
