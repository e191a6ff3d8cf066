"""
Central path configuration for the assistant client.

All persistent files are stored under the ``Asset/`` folder that lives
alongside ``main.py`` (i.e. the project root), regardless of the current
working directory when the application is launched.  Set
``ASSISTANT_ASSET_DIR`` to keep them somewhere else.

Usage in other modules::

    from .paths import asset_path
    DB_PATH = asset_path("assistant.db")
"""

import os

# Project root = the directory that contains main.py
# This file lives in assistant_client/, so we go one level up.
_PROJECT_ROOT: str = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

#: Absolute path to the asset folder.  Created lazily by :func:`asset_path`.
ASSET_DIR: str = os.environ.get(
    "ASSISTANT_ASSET_DIR", os.path.join(_PROJECT_ROOT, "Asset"),
)


def asset_path(filename: str) -> str:
    """Return the absolute path for *filename* inside the asset folder."""
    os.makedirs(ASSET_DIR, exist_ok=True)
    return os.path.join(ASSET_DIR, filename)
