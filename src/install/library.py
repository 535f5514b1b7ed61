"""Local package libraries: what is installed, and the scoped search path."""
from __future__ import annotations

import contextlib
import logging
import os
from typing import Dict, Iterator, List, Sequence

from constants import Constants
from registry.dcf import parse_description

logger = logging.getLogger(__name__)


def ensure_library(path: str) -> str:
    """Create ``path`` if needed and return its absolute, normalised form."""
    os.makedirs(path, exist_ok=True)
    return os.path.realpath(path)


def read_installed(library_paths: Sequence[str]) -> Dict[str, str]:
    """Map package name to installed version across ``library_paths``.

    Each installed package is a directory holding a DESCRIPTION file. When a
    package appears in several libraries the earlier library wins, matching
    the search order.
    """
    installed: Dict[str, str] = {}
    for lib in library_paths:
        if not os.path.isdir(lib):
            continue
        for entry in sorted(os.listdir(lib)):
            desc_path = os.path.join(lib, entry, Constants.DESCRIPTION_FILE)
            if entry in installed or not os.path.isfile(desc_path):
                continue
            try:
                with open(desc_path, encoding="utf-8", errors="replace") as fh:
                    fields = parse_description(fh.read())
            except OSError as exc:
                logger.warning("Could not read %s: %s", desc_path, exc)
                continue
            name = fields.get("Package", entry)
            pkg_version = fields.get("Version")
            if pkg_version:
                installed.setdefault(name, pkg_version)
    return installed


@contextlib.contextmanager
def library_path_scope(library_path: str) -> Iterator[List[str]]:
    """Prepend ``library_path`` to ``R_LIBS`` for the duration of the block.

    The previous value is restored on every exit path, including errors and
    KeyboardInterrupt; an originally unset variable is unset again.

    Yields:
        The effective library search path, private library first.
    """
    var = Constants.LIBRARY_ENV_VAR
    original = os.environ.get(var)
    existing = [p for p in (original or "").split(os.pathsep) if p]
    effective = [library_path] + [p for p in existing if p != library_path]
    os.environ[var] = os.pathsep.join(effective)
    logger.debug("%s set to %s", var, os.environ[var])
    try:
        yield effective
    finally:
        if original is None:
            os.environ.pop(var, None)
        else:
            os.environ[var] = original
        logger.debug("%s restored", var)
