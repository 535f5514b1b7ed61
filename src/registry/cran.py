"""CRAN-style repository layout: index locations, archive URLs, record parsing."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from constants import Constants, PackageForm
from common.http_client import get_text
from registry.dcf import iter_records
from versioning.models import PackageRecord
from versioning.parser import parse_dependencies

logger = logging.getLogger(__name__)


def platform_dir(platform_type: str) -> str:
    """Map a platform type ("win.binary", "mac.binary.big-sur-arm64") to its bin/ subdirectory."""
    for prefix, directory in Constants.BINARY_PLATFORM_DIRS.items():
        if platform_type == prefix:
            return directory
        if platform_type.startswith(prefix + "."):
            return f"{directory}/{platform_type[len(prefix) + 1:]}"
    raise ValueError(f"Unsupported platform type: {platform_type}")


def archive_extension(platform_type: str) -> str:
    """Archive file extension for ``platform_type``."""
    for prefix, ext in Constants.ARCHIVE_EXTENSIONS.items():
        if platform_type == prefix or platform_type.startswith(prefix + "."):
            return ext
    raise ValueError(f"Unsupported platform type: {platform_type}")


def contrib_url(repository: str, platform_type: str, r_version: Optional[str] = None) -> str:
    """Return the contrib directory URL holding archives of ``platform_type``."""
    base = repository.rstrip("/")
    if platform_type == "source":
        return f"{base}/{Constants.SOURCE_INDEX_PATH}"
    if not r_version:
        raise ValueError("An R version is required to locate binary packages")
    return f"{base}/bin/{platform_dir(platform_type)}/contrib/{r_version}"


def index_url(repository: str, platform_type: str, r_version: Optional[str] = None) -> str:
    """Return the PACKAGES index URL for ``repository``."""
    return f"{contrib_url(repository, platform_type, r_version)}/{Constants.INDEX_FILE}"


def default_fetch_index(url: str) -> str:
    """Fetch a repository index over HTTP."""
    return get_text(url, context="index")


def build_records(
    text: str,
    repository: str,
    form: PackageForm,
    platform_type: str,
    r_version: Optional[str] = None,
) -> List[PackageRecord]:
    """Turn PACKAGES index text into package records.

    An index entry may carry a ``Repository`` field pointing at a different
    contrib directory, and a ``Path`` field naming a subdirectory of it.
    """
    default_contrib = contrib_url(repository, platform_type, r_version)
    ext = archive_extension(platform_type)
    records: List[PackageRecord] = []
    for fields in iter_records(text):
        name = fields.get("Package")
        pkg_version = fields.get("Version")
        if not name or not pkg_version:
            continue
        contrib = fields.get("Repository") or default_contrib
        if fields.get("Path"):
            contrib = f"{contrib.rstrip('/')}/{fields['Path'].strip('/')}"
        url = f"{contrib.rstrip('/')}/{name}_{pkg_version}{ext}"
        records.append(
            PackageRecord(
                name=name,
                version=pkg_version,
                dependencies=parse_dependencies(fields),
                source_url=url if form is PackageForm.SOURCE else None,
                binary_url=url if form is PackageForm.BINARY else None,
                repository=repository,
            )
        )
    return records


def records_by_name(records: List[PackageRecord]) -> Dict[str, PackageRecord]:
    """Index records by name; within one index the first entry wins."""
    out: Dict[str, PackageRecord] = {}
    for rec in records:
        out.setdefault(rec.name, rec)
    return out
