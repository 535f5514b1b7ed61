"""Per-package timing records and run summaries."""
from __future__ import annotations

import csv
import json
import logging
import os
from typing import Iterable, List

from constants import Constants
from check.models import CheckTask

logger = logging.getLogger(__name__)


def package_check_dir(check_dir: str, name: str) -> str:
    """Status folder of ``name`` inside ``check_dir`` (``<name>.Rcheck``)."""
    return os.path.join(check_dir, name + Constants.CHECK_DIR_SUFFIX)


def format_result(index: int, name: str, elapsed_seconds: float) -> str:
    return f"{index} {name} {elapsed_seconds:.1f}"


def write_result(check_dir: str, index: int, name: str, elapsed_seconds: float) -> str:
    """Write the timing record of one package.

    The record goes to ``<check_dir>/<name>.Rcheck/check-time.txt``, replacing
    any previous record for the same package only.

    Returns:
        Path of the written file.
    """
    folder = package_check_dir(check_dir, name)
    os.makedirs(folder, exist_ok=True)
    path = os.path.join(folder, Constants.CHECK_TIME_FILE)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(format_result(index, name, elapsed_seconds) + "\n")
    return path


def _task_rows(tasks: Iterable[CheckTask]) -> List[dict]:
    rows = []
    for t in sorted(tasks, key=lambda task: task.index):
        rows.append({
            "index": t.index,
            "packageName": t.name,
            "status": t.outcome.status.value if t.outcome else None,
            "reason": t.outcome.reason if t.outcome else None,
            "elapsedSeconds": round(t.elapsed, 1),
            "checkPath": t.check_path,
        })
    return rows


def export_json(tasks: Iterable[CheckTask], path: str) -> None:
    """Exports the task outcomes to a JSON file.

    Args:
        tasks (list): Finished check tasks.
        path (str): File path to export the JSON.
    """
    data = _task_rows(tasks)
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(data, file, ensure_ascii=False, indent=4)
        logger.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logger.error("JSON file couldn't be written to disk: %s", e)
        raise


def export_csv(tasks: Iterable[CheckTask], path: str) -> None:
    """Exports the task outcomes to a CSV file.

    Args:
        tasks (list): Finished check tasks.
        path (str): File path to export the CSV.
    """
    headers = ["Index", "Package Name", "Status", "Reason", "Elapsed Seconds", "Check Path"]
    rows = [headers]

    def _nv(v):
        return "" if v is None else v

    for row in _task_rows(tasks):
        rows.append([
            row["index"],
            row["packageName"],
            _nv(row["status"]),
            _nv(row["reason"]),
            row["elapsedSeconds"],
            _nv(row["checkPath"]),
        ])
    try:
        with open(path, 'w', newline='', encoding='utf-8') as file:
            export = csv.writer(file)
            export.writerows(rows)
        logger.info("CSV file has been successfully exported at: %s", path)
    except (OSError, csv.Error) as e:
        logger.error("CSV file couldn't be written to disk: %s", e)
        raise
