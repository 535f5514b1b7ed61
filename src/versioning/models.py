"""Data models for package metadata and dependency declarations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class RelationKind(Enum):
    """How strongly a package needs a dependency."""
    STRONG = "strong"  # needed to build or load
    WEAK = "weak"  # needed only for optional/test paths


@dataclass(frozen=True)
class DependencySpec:
    """One parsed dependency declaration."""
    name: str
    relation: RelationKind
    field: str  # DESCRIPTION field it came from, e.g. "Imports"
    constraint: Optional[str] = None  # raw version constraint, e.g. ">= 1.2"


@dataclass(frozen=True)
class PackageRecord:
    """A package entry in a repository index."""
    name: str
    version: str
    dependencies: Tuple[DependencySpec, ...] = field(default_factory=tuple)
    source_url: Optional[str] = None
    binary_url: Optional[str] = None
    repository: Optional[str] = None

    def dependency_names(self, *kinds: RelationKind) -> Tuple[str, ...]:
        """Names of dependencies of the given relation kinds (all kinds when none given)."""
        wanted = set(kinds) if kinds else set(RelationKind)
        return tuple(d.name for d in self.dependencies if d.relation in wanted)
