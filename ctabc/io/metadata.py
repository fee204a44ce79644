from __future__ import annotations

import platform
import subprocess
import sys
from importlib import metadata
from typing import Dict

from ctabc.config import RunConfig


def _pkg_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return "unknown"


def build_run_metadata(cfg: RunConfig, command: str) -> Dict[str, str]:
    try:
        git_hash = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            text=True,
            stderr=subprocess.DEVNULL,
        ).strip()
    except (OSError, subprocess.CalledProcessError):
        git_hash = "unknown"
    return {
        "command": command,
        "python_version": sys.version.split()[0],
        "platform": platform.platform(),
        "numpy_version": _pkg_version("numpy"),
        "scipy_version": _pkg_version("scipy"),
        "pandas_version": _pkg_version("pandas"),
        "pydantic_version": _pkg_version("pydantic"),
        "ctabc_version": _pkg_version("ctabc"),
        "git_commit": git_hash,
        "seed": str(cfg.seed),
        "transmission": cfg.model.transmission,
        "free_params": ",".join(cfg.model.free_params),
    }
