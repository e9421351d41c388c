"""
Lightweight environment variable loader for local development.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


def load_env_if_present(candidate_paths: Iterable[Path]) -> Optional[Path]:
    """
    Load key=value pairs from the first .env-style file that exists.

    Variables already present in the environment are never overwritten.
    Returns the path that was loaded, if any.
    """
    for env_path in candidate_paths:
        if not env_path.exists() or not env_path.is_file():
            continue
        try:
            lines = env_path.read_text().splitlines()
        except OSError as exc:
            logger.warning("Could not read %s: %s", env_path, exc)
            continue
        for line in lines:
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            if stripped.startswith("export "):
                stripped = stripped[len("export ") :]
            key, value = stripped.split("=", 1)
            key = key.strip()
            value = value.strip().strip("'\"")
            if key and key not in os.environ:
                os.environ[key] = value
        logger.debug("Loaded environment from %s", env_path)
        return env_path
    return None


def load_default_env() -> Optional[Path]:
    """Load from common locations: cwd/.env and project root .env."""
    cwd = Path.cwd()
    default_candidates = [
        cwd / ".env",
        Path(__file__).resolve().parents[2] / ".env",
    ]
    return load_env_if_present(default_candidates)


def read_key(name: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the value of an env variable, or an empty string when unset."""
    env = os.environ if environ is None else environ
    value = (env.get(name) or "").strip()
    if not value:
        logger.debug("Environment variable %s is not set", name)
    return value


def env_flag(name: str, default: bool = False, environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY


__all__ = ["load_default_env", "load_env_if_present", "read_key", "env_flag"]
