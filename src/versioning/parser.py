"""Dependency-field parsing and version ordering utilities."""

import logging
import re
from typing import Dict, List, Optional, Tuple

from packaging import version

from constants import Constants, DependencyFields
from .models import DependencySpec, RelationKind

logger = logging.getLogger(__name__)

# "pkg (>= 1.2.3)" -> ("pkg", ">= 1.2.3")
_ENTRY = re.compile(r"^\s*([A-Za-z0-9._]+)\s*(?:\(\s*([^)]*?)\s*\))?\s*$")
_SEPARATORS = re.compile(r"[-_]")


def tokenize_dependency_field(value: str) -> List[Tuple[str, Optional[str]]]:
    """Split a comma separated dependency field into (name, constraint) pairs.

    Entries that do not look like a package reference are skipped.
    """
    entries: List[Tuple[str, Optional[str]]] = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        match = _ENTRY.match(chunk)
        if match is None:
            logger.debug("Ignoring malformed dependency entry: %r", chunk)
            continue
        name, constraint = match.group(1), match.group(2)
        entries.append((name, constraint or None))
    return entries


def _relation_for(field_name: str) -> RelationKind:
    if field_name in DependencyFields.STRONG:
        return RelationKind.STRONG
    return RelationKind.WEAK


def parse_dependencies(fields: Dict[str, str]) -> Tuple[DependencySpec, ...]:
    """Parse the dependency declarations of one index/DESCRIPTION record.

    The interpreter pseudo-package ``R`` is dropped. A name declared in several
    fields keeps the strongest relation, first declaration wins otherwise.
    """
    by_name: Dict[str, DependencySpec] = {}
    for field_name in DependencyFields.ALL:
        raw = fields.get(field_name)
        if not raw:
            continue
        relation = _relation_for(field_name)
        for name, constraint in tokenize_dependency_field(raw):
            if name == Constants.INTERPRETER_PSEUDO_PACKAGE:
                continue
            existing = by_name.get(name)
            if existing is None or (
                existing.relation is RelationKind.WEAK and relation is RelationKind.STRONG
            ):
                by_name[name] = DependencySpec(
                    name=name, relation=relation, field=field_name, constraint=constraint
                )
    return tuple(by_name.values())


def parse_version(raw: str) -> Optional[version.Version]:
    """Parse an R style version ("1.0-2", "0.12.1.9000") into a comparable Version.

    Components are separated by ``.`` or ``-`` and compared numerically, so
    ``-`` is normalised to ``.`` before handing the string to ``packaging``.
    """
    if not raw:
        return None
    try:
        return version.Version(_SEPARATORS.sub(".", raw.strip()))
    except version.InvalidVersion:
        logger.debug("Unparseable version: %r", raw)
        return None


def is_older(installed: str, available: str) -> bool:
    """Return True when ``installed`` is strictly older than ``available``.

    Unparseable versions are never considered older.
    """
    left, right = parse_version(installed), parse_version(available)
    if left is None or right is None:
        return False
    return left < right
