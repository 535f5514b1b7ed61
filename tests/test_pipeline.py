"""End-to-end tests for the check pipeline and command line entry point."""

import json
import os
from unittest.mock import patch

import pytest

import toolchain
from cli_config import RunConfig
from common.errors import HttpFetchError, MetadataFetchError, ToolchainError
from check.models import CheckOutcome, CheckRun, CheckTask, OutcomeStatus
from pipeline import RunSummary, check_packages, run_pipeline, unique_targets
from resolution.planner import InstallPlan
from install.installer import InstallReport
from revdepcheck import build_pkglist, load_pkgs_file, main
from args import parse_args
from toolchain import CheckResult

REPO = "https://cran.example.org"

INDEX = """Package: A
Version: 1.0
Imports: B
Suggests: C

Package: B
Version: 2.0

Package: C
Version: 0.5
Depends: R (>= 4.0)

Package: D
Version: 1.1
LinkingTo: X
"""


def _fetch_index(url):
    if url == f"{REPO}/src/contrib/PACKAGES":
        return INDEX
    raise HttpFetchError(url, "HTTP 404", 404)


def _download(url, dest, *, context):
    with open(dest, "w", encoding="utf-8") as fh:
        fh.write(url)
    return dest


class _Recorder:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def install(self, record, library_path):
        self.calls.append(("install", record.name, library_path, os.environ.get("R_LIBS")))

    def check(self, archive, *, output_dir, work_dir, library_paths):
        name = os.path.basename(archive).split("_", 1)[0]
        self.calls.append(("check", name, tuple(library_paths)))
        if name in self.failing:
            return CheckResult(False, 1, "ERROR")
        return CheckResult(True, 0, "OK")


@pytest.fixture
def config(tmp_path):
    return RunConfig(
        library_path=str(tmp_path / "lib"),
        results_directory=str(tmp_path / "check"),
        primary_repository=REPO,
        concurrency=2,
    )


@pytest.fixture(autouse=True)
def _no_r(monkeypatch):
    monkeypatch.setattr(toolchain, "system_library_paths", lambda: [])
    monkeypatch.delenv("R_LIBS", raising=False)


class TestRunPipeline:
    """Resolve, install and check with fake collaborators."""

    def _run(self, config, targets, recorder, installed=None):
        return run_pipeline(
            targets,
            config,
            fetch_index=_fetch_index,
            installer=recorder.install,
            checker=recorder.check,
            download=_download,
            installed_reader=lambda paths: dict(installed or {}),
        )

    def test_full_run(self, config, tmp_path):
        recorder = _Recorder(failing={"A"})
        summary = self._run(config, ["A", "D", "nosrc"], recorder)

        assert summary.check_dir == str(tmp_path / "check")
        assert summary.resolved == {"A", "B", "C", "D", "X"}
        assert summary.install_plan.unsatisfiable == {"X"}
        assert summary.install_report.installed == {"A", "B", "C", "D"}

        libpath = os.path.realpath(str(tmp_path / "lib"))
        installs = [c for c in recorder.calls if c[0] == "install"]
        assert [c[1] for c in installs] == ["A", "B", "C", "D"]
        assert all(c[2] == libpath and c[3].startswith(libpath) for c in installs)

        statuses = {t.name: t.outcome.status for t in summary.check_run.tasks}
        assert statuses == {
            "A": OutcomeStatus.FAILED,
            "D": OutcomeStatus.PASSED,
            "nosrc": OutcomeStatus.SKIPPED,
        }
        for index, name in enumerate(["A", "D", "nosrc"], start=1):
            with open(os.path.join(summary.check_dir, f"{name}.Rcheck", "check-time.txt"),
                      encoding="utf-8") as fh:
                assert fh.read().startswith(f"{index} {name} ")
        with open(os.path.join(summary.check_dir, "check-summary.json"), encoding="utf-8") as fh:
            assert len(json.load(fh)) == 3

        checks = [c for c in recorder.calls if c[0] == "check"]
        assert all(c[2][0] == libpath for c in checks)
        assert "R_LIBS" not in os.environ

    def test_up_to_date_packages_not_reinstalled(self, config):
        recorder = _Recorder()
        summary = self._run(config, ["A"], recorder, installed={"A": "1.0", "B": "2.0", "C": "0.4"})
        assert summary.install_plan.to_install == {"C"}
        assert [c[1] for c in recorder.calls if c[0] == "install"] == ["C"]

    def test_duplicate_targets_checked_once(self, config):
        recorder = _Recorder()
        summary = self._run(config, ["B", "B", "A"], recorder)
        assert [t.name for t in summary.check_run.tasks] == ["B", "A"]

    def test_existing_search_path_restored(self, config, monkeypatch):
        monkeypatch.setenv("R_LIBS", "/site")
        self._run(config, ["A"], _Recorder())
        assert os.environ["R_LIBS"] == "/site"

    def test_no_metadata(self, config):
        def offline(url):
            raise HttpFetchError(url, "connection refused")

        with pytest.raises(MetadataFetchError):
            run_pipeline(
                ["A"], config,
                fetch_index=offline,
                installer=_Recorder().install,
                checker=_Recorder().check,
                download=_download,
            )

    def test_binary_platform_needs_r_version(self, config, monkeypatch):
        config.platform_type = "win.binary"

        def no_r():
            raise ToolchainError(["Rscript"], 127, "not found")

        monkeypatch.setattr(toolchain, "r_version", no_r)
        with pytest.raises(MetadataFetchError):
            self._run(config, ["A"], _Recorder())

    def test_empty_targets(self, config):
        with pytest.raises(ValueError):
            self._run(config, [" "], _Recorder())

    def test_check_packages_returns_directory(self, config, tmp_path):
        out = check_packages(
            ["D"], config,
            fetch_index=_fetch_index,
            installer=_Recorder().install,
            checker=_Recorder().check,
            download=_download,
            installed_reader=lambda paths: {},
        )
        assert out == str(tmp_path / "check")

    def test_unique_targets(self):
        assert unique_targets(["a", " b ", "a", ""]) == ["a", "b"]
        with pytest.raises(TypeError):
            unique_targets("abc")


def _summary(tmp_path, outcomes):
    tasks = [
        CheckTask(i, name, 0.0, 1.0, outcome, str(tmp_path / f"{name}.Rcheck"))
        for i, (name, outcome) in enumerate(outcomes, start=1)
    ]
    return RunSummary(
        check_dir=str(tmp_path),
        resolved=frozenset(),
        install_plan=InstallPlan(),
        install_report=InstallReport(),
        check_run=CheckRun(str(tmp_path), tasks),
    )


class TestMain:
    """Command line exit codes."""

    def test_success_prints_check_dir(self, tmp_path, capsys):
        summary = _summary(tmp_path, [("a", CheckOutcome.passed())])
        with patch("revdepcheck.run_pipeline", return_value=summary) as run:
            with pytest.raises(SystemExit) as info:
                main(["-p", "a"])
        assert info.value.code == 0
        assert run.call_args[0][0] == ["a"]
        assert str(tmp_path) in capsys.readouterr().out

    def test_failures_with_error_flag(self, tmp_path):
        summary = _summary(tmp_path, [("a", CheckOutcome.failed("check exited with status 1"))])
        with patch("revdepcheck.run_pipeline", return_value=summary):
            with pytest.raises(SystemExit) as info:
                main(["-p", "a", "--error-on-failures"])
        assert info.value.code == 3

    def test_failures_without_flag(self, tmp_path):
        summary = _summary(tmp_path, [("a", CheckOutcome.failed("boom"))])
        with patch("revdepcheck.run_pipeline", return_value=summary):
            with pytest.raises(SystemExit) as info:
                main(["-p", "a"])
        assert info.value.code == 0

    def test_metadata_failure(self):
        with patch("revdepcheck.run_pipeline", side_effect=MetadataFetchError("offline")):
            with pytest.raises(SystemExit) as info:
                main(["-p", "a"])
        assert info.value.code == 2

    def test_interrupted(self):
        with patch("revdepcheck.run_pipeline", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as info:
                main(["-p", "a"])
        assert info.value.code == 130

    def test_bad_config(self, tmp_path):
        with pytest.raises(SystemExit) as info:
            main(["-p", "a", "-c", str(tmp_path / "missing.yml")])
        assert info.value.code == 1

    def test_non_numeric_timeout_exits_cleanly(self):
        with patch("revdepcheck.run_pipeline") as run:
            with pytest.raises(SystemExit) as info:
                main(["-p", "a", "--set", "check_timeout=abc"])
        assert info.value.code == 1
        run.assert_not_called()

    def test_csv_summary(self, tmp_path):
        summary = _summary(tmp_path, [("a", CheckOutcome.skipped("no source"))])
        out = tmp_path / "out.csv"
        with patch("revdepcheck.run_pipeline", return_value=summary):
            with pytest.raises(SystemExit):
                main(["-p", "a", "-o", str(out)])
        assert out.read_text(encoding="utf-8").startswith("Index,")

    def test_empty_list_file(self, tmp_path):
        pkgs = tmp_path / "pkgs.txt"
        pkgs.write_text("# nothing here\n\n", encoding="utf-8")
        with patch("revdepcheck.run_pipeline") as run:
            with pytest.raises(SystemExit) as info:
                main(["-l", str(pkgs)])
        assert info.value.code == 0
        run.assert_not_called()


class TestPackageList:
    """Reading target lists."""

    def test_load_pkgs_file(self, tmp_path):
        pkgs = tmp_path / "pkgs.txt"
        pkgs.write_text("alpha\n# comment\n\n beta \nalpha\n", encoding="utf-8")
        assert load_pkgs_file(str(pkgs)) == ["alpha", "beta", "alpha"]
        assert build_pkglist(parse_args(["-l", str(pkgs)])) == ["alpha", "beta"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SystemExit) as info:
            load_pkgs_file(str(tmp_path / "nope.txt"))
        assert info.value.code == 1
