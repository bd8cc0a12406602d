"""
Configuration loader for distbuild.

Supports loading from:
1. YAML config file (build.config.yaml in the working directory)
2. Environment variables (override the file)
3. Command-line options (applied by the CLI on top of both)

Environment Variable Aliases (checked in order):
- GitHub token: DISTBUILD_GITHUB_TOKEN, GITHUB_TOKEN, GH_TOKEN
- Build image: DISTBUILD_IMAGE_NAME

Usage:
    from distbuild.config import get_config, load_config

    config = get_config()
    config.source_dir
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("build.config.yaml")

# Each unit depends on every unit in an earlier tier; units outside all
# tiers depend on every tier.
DEFAULT_IMPLICIT_BASE = [
    ["base-files", "lintian-profile-vyatta"],
    ["linux-vyatta"],
]

DEFAULT_BUILD_COMMAND = [
    "danos-buildpackage",
    "-src", "{source}",
    "-dest", "{dest}",
    "-pkg-dir", "{dest}",
    "-image-name", "{image}",
    "-version", "{version}",
]

DEFAULTS: Dict[str, Any] = {
    "source_dir": "src",
    "package_dir": "pkg",
    "log_dir": "log",
    "image_name": "jsouthworth/danos-buildpackage",
    "version": "debian10-bootstrap",
    "local_image": False,
    "git_ref": "",
    "github": {
        "org": "danos",
        "token": None,
    },
    "build_command": DEFAULT_BUILD_COMMAND,
    "implicit_base": DEFAULT_IMPLICIT_BASE,
}

# Order matters: first valid value found wins
ENV_VAR_ALIASES = {
    "github_token": [
        "DISTBUILD_GITHUB_TOKEN",
        "GITHUB_TOKEN",
        "GH_TOKEN",
    ],
    "image_name": [
        "DISTBUILD_IMAGE_NAME",
    ],
}


@dataclass
class BuildConfig:
    """Resolved settings for one run."""
    source_dir: Path = Path("src")
    package_dir: Path = Path("pkg")
    log_dir: Path = Path("log")
    image_name: str = "jsouthworth/danos-buildpackage"
    version: str = "debian10-bootstrap"
    local_image: bool = False
    git_ref: str = ""
    github_org: str = "danos"
    github_token: Optional[str] = None
    build_command: List[str] = field(default_factory=lambda: list(DEFAULT_BUILD_COMMAND))
    implicit_base: List[List[str]] = field(
        default_factory=lambda: [list(tier) for tier in DEFAULT_IMPLICIT_BASE]
    )


def _is_placeholder(value: Optional[str]) -> bool:
    """Check if a value is a placeholder that should be ignored."""
    if not value:
        return True
    value_lower = value.lower()
    return (
        value_lower.startswith("your_") or
        value_lower.startswith("your-") or
        value_lower == "changeme" or
        value_lower == "placeholder"
    )


def _get_env_with_aliases(alias_key: str):
    """
    Get an environment variable value, checking multiple aliases.
    Returns (value, var_name) tuple or (None, None) if not found.
    """
    for var_name in ENV_VAR_ALIASES.get(alias_key, []):
        value = os.getenv(var_name)
        if value and not _is_placeholder(value):
            return value, var_name
    return None, None


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        logger.warning(f"Config not found: {config_path}, using defaults")
        return {}

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return data


def _validate_implicit_base(tiers: Any) -> List[List[str]]:
    if not isinstance(tiers, list):
        raise ValueError("implicit_base must be a list of tiers")
    result = []
    for tier in tiers:
        if isinstance(tier, str):
            tier = [tier]
        if not isinstance(tier, list) or not all(isinstance(name, str) for name in tier):
            raise ValueError(f"implicit_base tier must be a list of unit names: {tier!r}")
        result.append([name.strip() for name in tier])
    return result


def load_config(config_path: Path = CONFIG_PATH) -> BuildConfig:
    """
    Load configuration from the YAML file and the environment.
    Environment variables take precedence over the file.
    """
    raw = _merge(DEFAULTS, _load_yaml(Path(config_path)))

    token, var_name = _get_env_with_aliases("github_token")
    if token:
        logger.debug(f"GitHub token taken from {var_name}")
        raw["github"]["token"] = token

    image_name, _ = _get_env_with_aliases("image_name")
    if image_name:
        raw["image_name"] = image_name

    build_command = raw["build_command"]
    if not isinstance(build_command, list) or not build_command:
        raise ValueError("build_command must be a non-empty list")

    return BuildConfig(
        source_dir=Path(raw["source_dir"]),
        package_dir=Path(raw["package_dir"]),
        log_dir=Path(raw["log_dir"]),
        image_name=str(raw["image_name"]),
        version=str(raw["version"]),
        local_image=bool(raw["local_image"]),
        git_ref=str(raw["git_ref"] or ""),
        github_org=str(raw["github"]["org"]),
        github_token=raw["github"]["token"],
        build_command=[str(arg) for arg in build_command],
        implicit_base=_validate_implicit_base(raw["implicit_base"]),
    )


@lru_cache(maxsize=1)
def get_config() -> BuildConfig:
    """Get the configuration from the default config path."""
    return load_config(CONFIG_PATH)
