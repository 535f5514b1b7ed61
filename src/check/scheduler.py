"""Run one validation check per target package.

Every task is isolated: whatever happens while fetching or checking one
package ends up as that task's outcome and never stops the other tasks. With
``concurrency > 1`` tasks are handed, in target order, to a fixed pool of
worker threads.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence

from constants import Constants
from common.errors import CheckInvocationFailure, FetchSourceFailure, ToolchainError
from common.logging_utils import extra_context, is_debug_enabled
from check.models import NO_SOURCE_REASON, CheckOutcome, CheckRun, CheckTask
from check.report import package_check_dir, write_result
from check.source_cache import SKIPPED_NO_SOURCE, SourceCache
from toolchain import CheckResult

logger = logging.getLogger(__name__)

Checker = Callable[..., CheckResult]


def _discard_scratch(path: str) -> None:
    # Cleanup failures are logged, never raised
    try:
        shutil.rmtree(path)
    except OSError as exc:
        logger.warning("Could not remove scratch directory %s: %s", path, exc)


class CheckScheduler:
    """Checks target packages sequentially or on a bounded worker pool."""

    def __init__(
        self,
        source_cache: SourceCache,
        checker: Checker,
        check_dir: str,
        *,
        library_paths: Sequence[str] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the scheduler.

        Args:
            source_cache: Provides local source archives.
            checker: ``checker(archive, output_dir=, work_dir=, library_paths=)``
                returning a ``CheckResult``.
            check_dir: Results directory; one ``<name>.Rcheck`` folder per target.
            library_paths: Library search path handed to every check.
            clock: Monotonic clock used for elapsed times.
        """
        self.source_cache = source_cache
        self.checker = checker
        self.check_dir = check_dir
        self.library_paths = list(library_paths)
        self._clock = clock

    def _save_log(self, check_path: str, log: str) -> None:
        os.makedirs(check_path, exist_ok=True)
        with open(os.path.join(check_path, Constants.CHECK_LOG_FILE), "w", encoding="utf-8") as fh:
            fh.write(log)

    def _invoke(self, name: str, archive: str, check_path: str) -> CheckOutcome:
        logger.info("Checking %s", name)
        os.makedirs(self.check_dir, exist_ok=True)
        work_dir = tempfile.mkdtemp(prefix=f"{Constants.SCRATCH_PREFIX}{name}-", dir=self.check_dir)
        try:
            result = self.checker(
                archive,
                output_dir=self.check_dir,
                work_dir=work_dir,
                library_paths=self.library_paths,
            )
        except ToolchainError as exc:
            self._save_log(check_path, exc.output)
            raise CheckInvocationFailure(name, str(exc)) from exc
        finally:
            _discard_scratch(work_dir)
        self._save_log(check_path, result.log)
        if result.success:
            return CheckOutcome.passed()
        return CheckOutcome.failed(f"check exited with status {result.returncode}")

    def _check_one(self, task: CheckTask) -> CheckOutcome:
        try:
            source = self.source_cache.fetch_source(task.name)
        except FetchSourceFailure as exc:
            return CheckOutcome.failed(exc.reason)
        if source is SKIPPED_NO_SOURCE:
            return CheckOutcome.skipped(NO_SOURCE_REASON)
        try:
            return self._invoke(task.name, source, task.check_path)
        except CheckInvocationFailure as exc:
            return CheckOutcome.failed(exc.reason)

    def run_task(self, index: int, name: str) -> CheckTask:
        """Check one package. Never raises for per-package problems.

        Elapsed time runs from just before the source is resolved to just
        after the check returns, whatever the outcome.
        """
        task = CheckTask(index=index, name=name, check_path=package_check_dir(self.check_dir, name))
        task.start_time = self._clock()
        try:
            task.outcome = self._check_one(task)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Unexpected error checking %s: %s", name, exc, exc_info=True)
            task.outcome = CheckOutcome.failed(f"{type(exc).__name__}: {exc}")
        finally:
            task.end_time = self._clock()

        try:
            write_result(self.check_dir, index, name, task.elapsed)
        except OSError as exc:
            logger.error("Could not write result for %s: %s", name, exc)

        if is_debug_enabled(logger):
            logger.debug(
                "Task finished",
                extra=extra_context(
                    event="task_finished",
                    component="scheduler",
                    target=name,
                    outcome=task.outcome.status.value,
                    reason=task.outcome.reason,
                    duration_ms=int(task.elapsed * 1000),
                )
            )
        return task

    def run_all(self, targets: Sequence[str], concurrency: int = 1) -> CheckRun:
        """Check every target and return the finished tasks in target order.

        Raises:
            ValueError: If ``concurrency`` is not positive.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be a positive integer, got {concurrency}")
        os.makedirs(self.check_dir, exist_ok=True)
        run = CheckRun(check_dir=self.check_dir)

        if concurrency == 1:
            for i, name in enumerate(targets, start=1):
                run.tasks.append(self.run_task(i, name))
            return run

        pool = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="check")
        futures: List = []
        try:
            for i, name in enumerate(targets, start=1):
                futures.append(pool.submit(self.run_task, i, name))
            wait(futures)
        except KeyboardInterrupt:
            logger.warning("Interrupted; cancelling pending checks")
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown(wait=True)
        run.tasks.extend(f.result() for f in futures)
        return run


def run_all(
    targets: Sequence[str],
    concurrency: int,
    *,
    source_cache: SourceCache,
    checker: Checker,
    check_dir: str,
    library_paths: Optional[Sequence[str]] = None,
) -> CheckRun:
    """Convenience wrapper building a ``CheckScheduler`` for one run."""
    scheduler = CheckScheduler(
        source_cache, checker, check_dir, library_paths=library_paths or ()
    )
    return scheduler.run_all(targets, concurrency)
