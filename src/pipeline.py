"""End-to-end check run: resolve, install, then check every target package."""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from constants import Constants, PackageForm
from common.errors import MetadataFetchError, ToolchainError, UnsatisfiableDependency
from check.models import CheckRun
from check.report import export_json
from check.scheduler import Checker, CheckScheduler
from check.source_cache import SourceCache
from cli_config import RunConfig
from install.installer import InstallReport, PackageInstaller, install
from install.library import ensure_library, library_path_scope, read_installed
from registry.snapshot import IndexFetcher, fetch_snapshot
from resolution.planner import InstallPlan, plan
from resolution.resolver import resolve
import toolchain

logger = logging.getLogger(__name__)


def rule(title: str, pad: str = "-") -> None:
    """Log a section header for a pipeline phase."""
    logger.info("%s %s %s", pad * 3, title, pad * max(3, 60 - len(title)))


@dataclass
class RunSummary:
    """Everything a run produced."""

    check_dir: str
    resolved: frozenset
    install_plan: InstallPlan
    install_report: InstallReport
    check_run: CheckRun


def unique_targets(targets: Sequence[str]) -> List[str]:
    """Validate the target list and drop repeated names, keeping the first."""
    if isinstance(targets, str) or not all(isinstance(t, str) for t in targets):
        raise TypeError("targets must be a sequence of package names")
    return list(dict.fromkeys(t.strip() for t in targets if t.strip()))


def _binary_r_version(config: RunConfig) -> Optional[str]:
    if config.platform_type == "source" or config.r_version:
        return config.r_version
    try:
        return toolchain.r_version()
    except ToolchainError as exc:
        raise MetadataFetchError(
            f"Cannot locate {config.platform_type} packages without an R version: {exc}"
        ) from exc


def _installed_libraries(search_path: Sequence[str], config: RunConfig) -> List[str]:
    paths = list(search_path) + list(config.site_libraries)
    try:
        paths.extend(toolchain.system_library_paths())
    except ToolchainError as exc:
        logger.warning("Could not query R's default libraries: %s", exc)
    return list(dict.fromkeys(os.path.realpath(p) for p in paths))


def run_pipeline(  # pylint: disable=too-many-locals
    targets: Sequence[str],
    config: Optional[RunConfig] = None,
    *,
    fetch_index: Optional[IndexFetcher] = None,
    installer: Optional[PackageInstaller] = None,
    checker: Optional[Checker] = None,
    download: Optional[Callable[..., str]] = None,
    installed_reader: Callable[[Sequence[str]], Dict[str, str]] = read_installed,
) -> RunSummary:
    """Check ``targets`` and return a summary of the run.

    The collaborators default to the real R toolchain and HTTP access; tests
    replace them.

    Raises:
        MetadataFetchError: If no package metadata could be obtained at all.
    """
    config = config or RunConfig()
    pkgs = unique_targets(targets)
    if not pkgs:
        raise ValueError("No target packages given")

    check_dir = config.results_directory or tempfile.mkdtemp(prefix="check_cran")
    os.makedirs(check_dir, exist_ok=True)
    label = f" reverse dependencies of {config.revdep_of}" if config.revdep_of else ""
    rule(f"Checking {len(pkgs)} packages{label}", pad="=")
    logger.info("Results saved in %s", check_dir)

    rule("Installing dependencies")
    logger.info("Determining available packages")
    repos = config.repositories
    logger.info("Check with secondary repositories? %s", config.include_secondary_source)
    available_src = fetch_snapshot(repos, PackageForm.SOURCE, fetch_index=fetch_index)
    available_bin = fetch_snapshot(
        repos,
        PackageForm.BINARY,
        platform_type=config.platform_type,
        r_version=_binary_r_version(config),
        fetch_index=fetch_index,
    )

    libpath = ensure_library(config.library_path)
    cache_dir = ensure_library(config.effective_source_cache_path)

    with library_path_scope(libpath) as search_path:
        installed = installed_reader(_installed_libraries(search_path, config))

        resolved = resolve(set(pkgs), available_bin)
        install_plan = plan(resolved, installed, available_bin)
        if install_plan.unsatisfiable:
            logger.warning("Skipping: %s", UnsatisfiableDependency(install_plan.unsatisfiable))
        report = install(
            install_plan.to_install,
            available_bin,
            libpath,
            installer=installer or toolchain.RPackageInstaller(
                cache_dir, download=download, library_paths=search_path[1:]
            ),
        )

        rule("Checking packages")
        scheduler = CheckScheduler(
            SourceCache(available_src, cache_dir, download=download),
            checker or toolchain.RCmdCheck(timeout=config.check_timeout),
            check_dir,
            library_paths=list(search_path) + list(config.site_libraries),
        )
        check_run = scheduler.run_all(pkgs, config.concurrency)

    try:
        export_json(check_run.tasks, os.path.join(check_dir, Constants.SUMMARY_FILE))
    except OSError:
        logger.warning("Run summary was not written")

    return RunSummary(
        check_dir=check_dir,
        resolved=resolved,
        install_plan=install_plan,
        install_report=report,
        check_run=check_run,
    )


def check_packages(targets: Sequence[str], config: Optional[RunConfig] = None, **collaborators) -> str:
    """Check ``targets`` and return the results directory.

    Individual package outcomes never make this fail; they are recorded in the
    results directory.
    """
    return run_pipeline(targets, config, **collaborators).check_dir
