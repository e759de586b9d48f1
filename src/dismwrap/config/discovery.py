"""Config file discovery.

The wrapper is deployed in place of ``dism.exe``, so its optional
``dismwrap.toml`` lives next to the wrapper executable rather than in the
caller's working directory.  ``DISMWRAP_CONFIG`` overrides the location.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "dismwrap.toml"
CONFIG_ENV_VAR = "DISMWRAP_CONFIG"


def executable_dir() -> Path:
    """Directory holding the running wrapper (frozen exe or console script)."""
    return Path(sys.argv[0] or sys.executable).resolve().parent


def find_config(search_dir: Path | None = None) -> Path | None:
    """Locate ``dismwrap.toml``.

    Checks ``DISMWRAP_CONFIG`` first; if it is set but names no file, no
    config is used.  Otherwise looks in *search_dir* (default: the wrapper's
    own directory).  Returns None when nothing is found.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    candidate = (search_dir or executable_dir()) / CONFIG_FILENAME
    if candidate.is_file():
        return candidate
    return None
