"""Run configuration: defaults, environment, config file and CLI overrides.

Precedence, highest first: CLI flags, ``--set key=value`` overrides, the
YAML/JSON config file given with ``--config``, ``REVDEPCHECK_*`` environment
variables, built-in defaults.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

import yaml

from constants import Constants
from common.errors import ConfigError

logger = logging.getLogger(__name__)


def _default_concurrency() -> int:
    raw = os.environ.get(Constants.ENV_NCPUS)
    if raw:
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer %s=%r", Constants.ENV_NCPUS, raw)
        else:
            if value >= 1:
                return value
    return 1


@dataclass
class RunConfig:  # pylint: disable=too-many-instance-attributes
    """Options recognised by a check run."""

    library_path: str = field(default_factory=lambda: os.path.join(tempfile.gettempdir(), "R-lib"))
    source_cache_path: Optional[str] = None
    include_secondary_source: bool = False
    platform_type: str = Constants.DEFAULT_PLATFORM_TYPE
    concurrency: int = field(default_factory=_default_concurrency)
    results_directory: Optional[str] = None
    primary_repository: str = Constants.PRIMARY_REPOSITORY
    secondary_repositories: List[str] = field(
        default_factory=lambda: list(Constants.SECONDARY_REPOSITORIES)
    )
    r_version: Optional[str] = None
    site_libraries: List[str] = field(default_factory=list)
    check_timeout: Optional[float] = None
    revdep_of: Optional[str] = None

    @property
    def effective_source_cache_path(self) -> str:
        return self.source_cache_path or self.library_path

    @property
    def repositories(self) -> List[str]:
        repos = [self.primary_repository]
        if self.include_secondary_source:
            repos.extend(r for r in self.secondary_repositories if r not in repos)
        return repos

    def validate(self) -> "RunConfig":
        """Check value ranges.

        Raises:
            ConfigError: On an invalid option.
        """
        if not isinstance(self.concurrency, int) or isinstance(self.concurrency, bool) \
                or self.concurrency < 1:
            raise ConfigError(f"concurrency must be a positive integer, got {self.concurrency!r}")
        if not isinstance(self.include_secondary_source, bool):
            raise ConfigError(
                f"include_secondary_source must be true or false, got {self.include_secondary_source!r}"
            )
        if self.check_timeout is not None:
            if not isinstance(self.check_timeout, (int, float)) or isinstance(self.check_timeout, bool):
                raise ConfigError(f"check_timeout must be a number of seconds, got {self.check_timeout!r}")
            if self.check_timeout <= 0:
                raise ConfigError("check_timeout must be positive when set")
        if not self.library_path:
            raise ConfigError("library_path must not be empty")
        return self


_FIELD_NAMES = {f.name for f in fields(RunConfig)}
_LIST_FIELDS = {"secondary_repositories", "site_libraries"}
_TYPED_FIELDS = {"include_secondary_source", "concurrency", "check_timeout"}


def _coerce_value(text: Any) -> Any:
    """Best-effort convert string to JSON/number/bool, else raw string."""
    if not isinstance(text, str):
        return text
    s = text.strip()
    try:
        return json.loads(s)
    except ValueError:
        sl = s.lower()
        if sl in ("true", "yes", "on"):
            return True
        if sl in ("false", "no", "off"):
            return False
        try:
            if s.isdigit() or (s.startswith("-") and s[1:].isdigit()):
                return int(s)
            return float(s)
        except ValueError:
            return s


def _normalize(key: str, value: Any) -> Any:
    """Convert raw strings (environment, --set) to the field's type."""
    if key in _LIST_FIELDS:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return list(value)
    if key in _TYPED_FIELDS:
        value = _coerce_value(value)
        if key == "concurrency" and isinstance(value, float) and value.is_integer():
            return int(value)
        return value
    # Path, URL and version fields stay strings ("4.10" must not become 4.1)
    return value if value is None else str(value)


def load_config_file(path: str) -> Dict[str, Any]:
    """Load a YAML or JSON config file; JSON is chosen by the ``.json`` extension.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping")
    # Accept either a flat mapping or one nested under "revdepcheck"
    section = data.get("revdepcheck", data)
    return dict(section) if isinstance(section, dict) else {}


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect ``REVDEPCHECK_<FIELD>`` environment variables."""
    environ = os.environ if environ is None else environ
    out: Dict[str, Any] = {}
    for name in _FIELD_NAMES:
        raw = environ.get(Constants.ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            out[name] = raw
    return out


def parse_set_overrides(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """Turn ``key=value`` strings into an override mapping."""
    overrides: Dict[str, Any] = {}
    for item in pairs or []:
        if not isinstance(item, str) or "=" not in item:
            raise ConfigError(f"Invalid override (expected KEY=VALUE): {item!r}")
        key, val = item.split("=", 1)
        overrides[key.strip()] = val.strip()
    return overrides


def _apply(cfg: RunConfig, values: Mapping[str, Any], origin: str) -> None:
    for key, value in values.items():
        if key not in _FIELD_NAMES:
            logger.warning("Ignoring unknown option %r from %s", key, origin)
            continue
        setattr(cfg, key, _normalize(key, value))


_CLI_FIELDS = {
    "LIBPATH": "library_path",
    "SRCPATH": "source_cache_path",
    "SECONDARY": "include_secondary_source",
    "PLATFORM_TYPE": "platform_type",
    "THREADS": "concurrency",
    "CHECK_DIR": "results_directory",
    "REPOSITORY": "primary_repository",
    "R_VERSION": "r_version",
    "SITE_LIBRARIES": "site_libraries",
    "CHECK_TIMEOUT": "check_timeout",
    "REVDEP_OF": "revdep_of",
}


def build_config(args: Any = None, environ: Optional[Mapping[str, str]] = None) -> RunConfig:
    """Assemble a validated ``RunConfig`` from every configuration layer."""
    cfg = RunConfig()
    _apply(cfg, env_overrides(environ), "environment")

    config_path = getattr(args, "CONFIG", None)
    if config_path:
        _apply(cfg, load_config_file(config_path), config_path)
        logger.info("Loaded config from: %s", config_path)

    _apply(cfg, parse_set_overrides(getattr(args, "CONFIG_SET", None)), "--set")

    cli_values = {}
    for attr, key in _CLI_FIELDS.items():
        value = getattr(args, attr, None)
        if value is not None:
            cli_values[key] = value
    _apply(cfg, cli_values, "command line")
    return cfg.validate()
