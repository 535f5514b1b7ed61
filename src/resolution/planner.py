"""Decide which resolved dependencies need installing."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Mapping

from versioning.models import PackageRecord
from versioning.parser import is_older

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallPlan:
    """Partition of a resolved dependency set.

    ``to_install`` holds missing or stale packages that have an artifact for
    this platform, ``unsatisfiable`` holds those that need installing but have
    none, ``up_to_date`` holds everything else.
    """

    to_install: frozenset = frozenset()
    unsatisfiable: frozenset = frozenset()
    up_to_date: frozenset = frozenset()

    @property
    def resolved(self) -> frozenset:
        return self.to_install | self.unsatisfiable | self.up_to_date


def is_stale(name: str, installed: Mapping[str, str],
             snapshot: Mapping[str, PackageRecord]) -> bool:
    """True when ``name`` is installed with a version older than the snapshot's."""
    record = snapshot.get(name)
    if record is None or name not in installed:
        return False
    return is_older(installed[name], record.version)


def plan(
    resolved: AbstractSet[str],
    installed: Mapping[str, str],
    binary_snapshot: Mapping[str, PackageRecord],
) -> InstallPlan:
    """Split ``resolved`` into to-install, unsatisfiable and up-to-date sets.

    Installed packages are never downgraded, and an installed package that
    the snapshot does not know about (a base package, say) is left alone.
    """
    to_install, unsatisfiable, up_to_date = set(), set(), set()
    for name in resolved:
        needs_install = name not in installed or is_stale(name, installed, binary_snapshot)
        if not needs_install:
            up_to_date.add(name)
        elif name in binary_snapshot:
            to_install.add(name)
        else:
            unsatisfiable.add(name)
    result = InstallPlan(frozenset(to_install), frozenset(unsatisfiable), frozenset(up_to_date))
    logger.debug("Install plan: %d to install, %d unsatisfiable, %d up to date",
                 len(to_install), len(unsatisfiable), len(up_to_date))
    return result
