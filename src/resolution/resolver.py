"""Two-tier dependency resolution.

Packages under test need their full dependency surface, optional (weak)
relations included, but the dependencies of those dependencies only need what
it takes to build and load them (strong relations).
"""
from __future__ import annotations

import logging
from typing import AbstractSet, Iterable, Mapping, Set

from versioning.models import PackageRecord, RelationKind

logger = logging.getLogger(__name__)


def direct_dependencies(
    roots: Iterable[str], snapshot: Mapping[str, PackageRecord]
) -> Set[str]:
    """One-hop expansion of ``roots`` over strong and weak relations.

    Roots found in the snapshot are included in the result; roots missing from
    it are dropped.
    """
    found: Set[str] = set()
    for name in roots:
        record = snapshot.get(name)
        if record is None:
            logger.debug("Root %s not in snapshot, dropping", name)
            continue
        found.add(name)
        found.update(record.dependency_names(RelationKind.STRONG, RelationKind.WEAK))
    return found


def strong_closure(
    start: Iterable[str], snapshot: Mapping[str, PackageRecord]
) -> Set[str]:
    """Expand ``start`` over strong relations until nothing new is added.

    Names missing from the snapshot stay in the result but are not expanded.
    """
    accumulated: Set[str] = set(start)
    frontier = list(accumulated)
    while frontier:
        name = frontier.pop()
        record = snapshot.get(name)
        if record is None:
            continue
        for dep in record.dependency_names(RelationKind.STRONG):
            if dep not in accumulated:
                accumulated.add(dep)
                frontier.append(dep)
    return accumulated


def resolve(
    roots: AbstractSet[str], snapshot: Mapping[str, PackageRecord]
) -> frozenset:
    """Return every package needed to check ``roots``."""
    direct = direct_dependencies(sorted(roots), snapshot)
    resolved = strong_closure(direct, snapshot)
    logger.debug("Resolved %d roots to %d packages (%d direct)",
                 len(roots), len(resolved), len(direct))
    return frozenset(resolved)
