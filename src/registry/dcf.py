"""Parser for Debian Control File (DCF) text.

Repository ``PACKAGES`` indices and installed ``DESCRIPTION`` files both use
this format: records separated by blank lines, ``Field: value`` lines, and
continuation lines that start with whitespace.
"""
from __future__ import annotations

from typing import Dict, Iterator, List


def iter_records(text: str) -> Iterator[Dict[str, str]]:
    """Yield one dict per record in ``text``."""
    record: Dict[str, str] = {}
    last_field = None
    for raw in text.splitlines():
        line = raw.rstrip()
        if not line:
            if record:
                yield record
            record = {}
            last_field = None
            continue
        if line[0] in " \t":
            # Continuation of the previous field
            if last_field is not None:
                record[last_field] = f"{record[last_field]} {line.strip()}".strip()
            continue
        if ":" not in line:
            continue
        field, value = line.split(":", 1)
        last_field = field.strip()
        record[last_field] = value.strip()
    if record:
        yield record


def parse_records(text: str) -> List[Dict[str, str]]:
    """Return every record in ``text``."""
    return list(iter_records(text))


def parse_description(text: str) -> Dict[str, str]:
    """Return the single record of a DESCRIPTION file (empty when blank)."""
    return next(iter_records(text), {})
