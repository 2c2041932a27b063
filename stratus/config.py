"""Workspace configuration for stratus synthesis runs.

Configuration is read from ``stratus.toml`` (or ``stratus.json``) in the
working directory and then overridden by ``STRATUS_*`` environment variables.

Example stratus.toml:
---------------------

    target = "tf-gcp"
    outdir = "target"
    log_level = "INFO"

    [gcp]
    project_id = "my-project"
    region = "us-central1"
    zone = "us-central1-a"
    storage_location = "US"
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from stratus.errors import ConfigurationError

CONFIG_FILENAMES = ("stratus.toml", "stratus.json")

_TOP_LEVEL_KEYS = {"target", "outdir", "log_level", "gcp", "sim"}
_GCP_KEYS = {"project_id", "region", "zone", "storage_location", "function_runtime"}
_SIM_KEYS = {"state_dir"}


@dataclass
class GcpSettings:
    """Settings consumed by the ``tf-gcp`` target."""

    project_id: str = ""
    region: str = "us-central1"
    zone: str = "us-central1-a"
    storage_location: str = "US"
    function_runtime: str = "python311"


@dataclass
class SimSettings:
    """Settings consumed by the ``sim`` target."""

    state_dir: Optional[Path] = None


@dataclass
class StratusConfig:
    """Resolved workspace configuration."""

    target: str = "sim"
    outdir: Path = Path("target")
    log_level: Optional[str] = None
    gcp: GcpSettings = field(default_factory=GcpSettings)
    sim: SimSettings = field(default_factory=SimSettings)
    source: Optional[Path] = None

    def settings_for(self, target: str) -> Any:
        """Return the settings section of the given target, if it has one."""
        if target == "tf-gcp":
            return self.gcp
        if target == "sim":
            return self.sim
        return None


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        if path.suffix == ".toml":
            with path.open("rb") as handle:
                return tomllib.load(handle)
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Failed to parse {path}: {exc}") from exc


def _check_keys(section: str, data: Mapping[str, Any], allowed: set) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in [{section}]: {', '.join(unknown)}",
            hint=f"Allowed keys: {', '.join(sorted(allowed))}",
        )


def _parse_config(data: Mapping[str, Any], root: Path) -> StratusConfig:
    _check_keys("stratus", data, _TOP_LEVEL_KEYS)
    config = StratusConfig()

    if "target" in data:
        config.target = str(data["target"])
    if "outdir" in data:
        outdir = Path(data["outdir"])
        config.outdir = outdir if outdir.is_absolute() else root / outdir
    else:
        config.outdir = root / config.outdir
    if "log_level" in data:
        config.log_level = str(data["log_level"]).upper()

    gcp_section = data.get("gcp") or {}
    _check_keys("gcp", gcp_section, _GCP_KEYS)
    for key, value in gcp_section.items():
        setattr(config.gcp, key, str(value))

    sim_section = data.get("sim") or {}
    _check_keys("sim", sim_section, _SIM_KEYS)
    if sim_section.get("state_dir"):
        state_dir = Path(sim_section["state_dir"])
        config.sim.state_dir = state_dir if state_dir.is_absolute() else root / state_dir

    return config


def _apply_env_overrides(config: StratusConfig, environ: Mapping[str, str]) -> StratusConfig:
    if environ.get("STRATUS_TARGET"):
        config.target = environ["STRATUS_TARGET"]
    if environ.get("STRATUS_OUTDIR"):
        config.outdir = Path(environ["STRATUS_OUTDIR"])
    if environ.get("STRATUS_LOG_LEVEL"):
        config.log_level = environ["STRATUS_LOG_LEVEL"].upper()
    if environ.get("STRATUS_SIM_STATE_DIR"):
        config.sim.state_dir = Path(environ["STRATUS_SIM_STATE_DIR"])

    gcp_overrides = {
        "STRATUS_GCP_PROJECT": "project_id",
        "STRATUS_GCP_REGION": "region",
        "STRATUS_GCP_ZONE": "zone",
        "STRATUS_GCP_STORAGE_LOCATION": "storage_location",
        "STRATUS_GCP_FUNCTION_RUNTIME": "function_runtime",
    }
    for env_name, attr in gcp_overrides.items():
        if environ.get(env_name):
            setattr(config.gcp, attr, environ[env_name])
    return config


def locate_config_file(root: Path, explicit: Optional[Path] = None) -> Optional[Path]:
    if explicit is not None:
        return explicit if explicit.exists() else None
    for candidate in CONFIG_FILENAMES:
        path = root / candidate
        if path.exists():
            return path
    return None


def load_config(
    root: Optional[Path] = None,
    explicit: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> StratusConfig:
    """
    Load workspace configuration.

    Args:
        root: Directory searched for ``stratus.toml``/``stratus.json``
            (default: current working directory)
        explicit: Explicit configuration file path
        environ: Environment mapping used for overrides (default: ``os.environ``)

    Returns:
        StratusConfig instance

    Raises:
        ConfigurationError: If the file cannot be parsed or has unknown keys
    """
    root = (root or Path.cwd()).resolve()
    environ = os.environ if environ is None else environ

    config_path = locate_config_file(root, explicit)
    if config_path is None:
        config = StratusConfig(outdir=root / StratusConfig.outdir)
    else:
        config = _parse_config(_read_config_file(config_path), root)
        config.source = config_path

    return _apply_env_overrides(config, environ)


_global_config: Optional[StratusConfig] = None


def get_config() -> StratusConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the cached configuration (for testing)."""
    global _global_config
    _global_config = None


__all__ = [
    "GcpSettings",
    "SimSettings",
    "StratusConfig",
    "load_config",
    "locate_config_file",
    "get_config",
    "reset_config",
]
