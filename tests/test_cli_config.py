"""Tests for argument parsing and layered run configuration."""

import json

import pytest

from args import parse_args
from cli_config import (
    RunConfig,
    build_config,
    env_overrides,
    load_config_file,
    parse_set_overrides,
)
from common.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("REVDEPCHECK_NCPUS", raising=False)


class TestParseArgs:
    """Command line parsing."""

    def test_single_packages(self):
        args = parse_args(["-p", "alpha", "-p", "beta", "-j", "4"])
        assert args.SINGLE == ["alpha", "beta"]
        assert args.THREADS == 4
        assert args.LOG_LEVEL == "INFO"
        assert args.SECONDARY is None
        assert args.CONFIG_SET == []

    def test_list_file_and_options(self):
        args = parse_args([
            "-l", "pkgs.txt", "--libpath", "/lib", "--srcpath", "/src", "--check-dir", "/out",
            "-t", "win.binary", "--r-version", "4.4", "--secondary", "--check-timeout", "600",
            "--site-library", "/a", "--site-library", "/b", "--set", "concurrency=2",
        ])
        assert args.LIST_FROM_FILE == "pkgs.txt"
        assert args.PLATFORM_TYPE == "win.binary"
        assert args.SECONDARY is True
        assert args.CHECK_TIMEOUT == 600.0
        assert args.SITE_LIBRARIES == ["/a", "/b"]
        assert args.CONFIG_SET == ["concurrency=2"]

    def test_inputs_are_required_and_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args([])
        with pytest.raises(SystemExit):
            parse_args(["-p", "a", "-l", "list.txt"])

    @pytest.mark.parametrize("threads", ["0", "-3", "many"])
    def test_threads_must_be_positive(self, threads):
        with pytest.raises(SystemExit):
            parse_args(["-p", "a", "-j", threads])


class TestConfigLayers:
    """Defaults, environment, config file, --set and CLI precedence."""

    def test_defaults(self):
        cfg = build_config(parse_args(["-p", "a"]), environ={})
        assert cfg.concurrency == 1
        assert cfg.platform_type == "source"
        assert cfg.include_secondary_source is False
        assert cfg.repositories == [cfg.primary_repository]
        assert cfg.effective_source_cache_path == cfg.library_path
        assert cfg.check_timeout is None

    def test_ncpus_default(self, monkeypatch):
        monkeypatch.setenv("REVDEPCHECK_NCPUS", "3")
        assert RunConfig().concurrency == 3

    def test_environment_layer(self):
        cfg = build_config(parse_args(["-p", "a"]), environ={
            "REVDEPCHECK_CONCURRENCY": "6",
            "REVDEPCHECK_R_VERSION": "4.10",
            "REVDEPCHECK_SITE_LIBRARIES": "/x, /y",
        })
        assert cfg.concurrency == 6
        assert cfg.r_version == "4.10"
        assert cfg.site_libraries == ["/x", "/y"]

    def test_precedence(self, tmp_path):
        config = tmp_path / "run.yml"
        config.write_text(
            "revdepcheck:\n"
            "  concurrency: 4\n"
            "  library_path: /from/file\n"
            "  platform_type: mac.binary\n"
            "  include_secondary_source: true\n",
            encoding="utf-8",
        )
        args = parse_args([
            "-p", "a", "-c", str(config), "--set", "library_path=/from/set",
            "--set", "platform_type=win.binary", "-t", "source",
        ])
        cfg = build_config(args, environ={"REVDEPCHECK_CONCURRENCY": "9", "REVDEPCHECK_LIBRARY_PATH": "/env"})
        assert cfg.concurrency == 4
        assert cfg.library_path == "/from/set"
        assert cfg.platform_type == "source"
        assert cfg.include_secondary_source is True
        assert len(cfg.repositories) > 1

    def test_json_config_file(self, tmp_path):
        config = tmp_path / "run.json"
        config.write_text(json.dumps({"concurrency": 2, "check_timeout": 90}), encoding="utf-8")
        assert load_config_file(str(config)) == {"concurrency": 2, "check_timeout": 90}
        cfg = build_config(parse_args(["-p", "a", "-c", str(config)]), environ={})
        assert cfg.concurrency == 2
        assert cfg.check_timeout == 90

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config_file(str(tmp_path / "nope.yml"))

    def test_config_file_must_be_mapping(self, tmp_path):
        config = tmp_path / "list.yml"
        config.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config_file(str(config))

    def test_set_overrides(self):
        assert parse_set_overrides(["a=1", " b = x=y "]) == {"a": "1", "b": "x=y"}
        with pytest.raises(ConfigError):
            parse_set_overrides(["novalue"])

    def test_set_keeps_version_string(self):
        cfg = build_config(parse_args(["-p", "a", "--set", "r_version=4.10"]), environ={})
        assert cfg.r_version == "4.10"

    @pytest.mark.parametrize("value", ["0", "-2", "two", "1.5"])
    def test_invalid_concurrency(self, value):
        with pytest.raises(ConfigError):
            build_config(parse_args(["-p", "a", "--set", f"concurrency={value}"]), environ={})

    def test_invalid_timeout(self):
        with pytest.raises(ConfigError):
            build_config(parse_args(["-p", "a", "--check-timeout", "0"]), environ={})

    @pytest.mark.parametrize("value", ["abc", "true", "[1]"])
    def test_non_numeric_timeout(self, value):
        with pytest.raises(ConfigError):
            build_config(parse_args(["-p", "a", "--set", f"check_timeout={value}"]), environ={})

    def test_non_numeric_timeout_from_environment(self):
        with pytest.raises(ConfigError):
            build_config(parse_args(["-p", "a"]), environ={"REVDEPCHECK_CHECK_TIMEOUT": "soon"})

    @pytest.mark.parametrize("value", ["maybe", "2", "[]"])
    def test_secondary_flag_must_be_boolean(self, value):
        with pytest.raises(ConfigError):
            build_config(parse_args(["-p", "a"]),
                         environ={"REVDEPCHECK_INCLUDE_SECONDARY_SOURCE": value})

    @pytest.mark.parametrize("value", ["yes", "false", "on"])
    def test_secondary_flag_words(self, value):
        cfg = build_config(parse_args(["-p", "a"]),
                           environ={"REVDEPCHECK_INCLUDE_SECONDARY_SOURCE": value})
        assert cfg.include_secondary_source is (value != "false")

    def test_env_overrides_ignore_empty(self):
        assert env_overrides({"REVDEPCHECK_PLATFORM_TYPE": "", "UNRELATED": "x"}) == {}

    def test_unknown_keys_are_ignored(self):
        cfg = build_config(parse_args(["-p", "a", "--set", "bogus=1"]), environ={})
        assert not hasattr(cfg, "bogus")
