"""Metadata snapshot: the merged view of packages available upstream."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Dict, Iterator, Mapping, Optional, Sequence

from constants import PackageForm
from common.errors import MetadataFetchError, RevdepCheckError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from registry import cran
from versioning.models import PackageRecord

logger = logging.getLogger(__name__)

IndexFetcher = Callable[[str], str]


class MetadataSnapshot(Mapping[str, PackageRecord]):
    """Immutable mapping of package name to record for one package form."""

    def __init__(self, records: Mapping[str, PackageRecord], form: PackageForm,
                 sources: Sequence[str] = ()):
        self._records = MappingProxyType(dict(records))
        self.form = form
        self.sources = tuple(sources)

    def __getitem__(self, name: str) -> PackageRecord:
        return self._records[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"MetadataSnapshot(form={self.form.value}, packages={len(self)})"


def fetch_snapshot(
    sources: Sequence[str],
    form: PackageForm,
    *,
    platform_type: str = "source",
    r_version: Optional[str] = None,
    fetch_index: Optional[IndexFetcher] = None,
) -> MetadataSnapshot:
    """Query every source for its index and merge them.

    Sources are consulted in the given order and the first source listing a
    name wins. Unreachable sources are skipped with a warning.

    Args:
        sources: Repository base URLs, primary first.
        form: Which form of package the snapshot describes.
        platform_type: Binary flavour ("win.binary", "mac.binary...") or "source".
            Ignored for source snapshots.
        r_version: "major.minor" R version, required for binary indices.
        fetch_index: Callable returning the index text for a URL.

    Raises:
        MetadataFetchError: If no source could be read.
    """
    if not sources:
        raise MetadataFetchError("No package repositories configured")
    fetch = fetch_index or cran.default_fetch_index
    effective_type = "source" if form is PackageForm.SOURCE else platform_type

    merged: Dict[str, PackageRecord] = {}
    reached = 0
    for repository in sources:
        try:
            url = cran.index_url(repository, effective_type, r_version)
            with Timer() as t:
                text = fetch(url)
            records = cran.build_records(text, repository, form, effective_type, r_version)
        except (RevdepCheckError, ValueError, OSError) as exc:
            logger.warning("Could not read package index from %s: %s", safe_url(repository), exc)
            continue
        reached += 1
        added = 0
        for name, rec in cran.records_by_name(records).items():
            if name not in merged:
                merged[name] = rec
                added += 1
        if is_debug_enabled(logger):
            logger.debug(
                "Index merged",
                extra=extra_context(
                    event="index_merged",
                    component="snapshot",
                    target=safe_url(url),
                    form=form.value,
                    count=added,
                    duration_ms=t.duration_ms(),
                )
            )

    if reached == 0:
        raise MetadataFetchError(
            f"No {form.value} package index could be fetched from: " + ", ".join(sources)
        )
    logger.info("%d %s packages available from %d/%d repositories",
                len(merged), form.value, reached, len(sources))
    return MetadataSnapshot(merged, form, sources)
