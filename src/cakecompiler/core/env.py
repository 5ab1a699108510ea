"""
Environment and project-root helpers.

Hosts embed the engine from arbitrary working directories, and developers keep local knobs
(e.g. `CAKECOMPILER_LOG_LEVEL`) in a repo-local `.env`. Both need a stable anchor:
- `get_project_root()`: explicit env var, then the directory of an explicit env file,
  then the nearest parent of the CWD carrying a root marker
- `load_dotenv_if_present()`: load that `.env` once, never overriding the process env
- `resolve_project_path()`: anchor relative config paths at the project root
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT_ENV = "CAKECOMPILER_PROJECT_ROOT"
ENV_FILE_ENV = "CAKECOMPILER_ENV_FILE"


def _env_path(name: str) -> Path | None:
    value = os.getenv(name)
    if not value:
        return None
    return Path(value).expanduser().resolve()


def _is_project_root(directory: Path) -> bool:
    if (directory / ".env").is_file() or (directory / ".git").exists():
        return True
    # An installed checkout: packaging file next to the src/ tree.
    return (directory / "pyproject.toml").is_file() and (directory / "src").is_dir()


@lru_cache
def get_project_root() -> Path:
    """Return the best-guess project root directory (cached)."""
    explicit_root = _env_path(PROJECT_ROOT_ENV)
    if explicit_root is not None:
        return explicit_root

    env_file = _env_path(ENV_FILE_ENV)
    if env_file is not None:
        return env_file.parent

    cwd = Path.cwd().resolve()
    return next((d for d in (cwd, *cwd.parents) if _is_project_root(d)), cwd)


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project `.env` once; returns the loaded path, or None when there is none."""
    env_file = _env_path(ENV_FILE_ENV) or get_project_root() / ".env"
    if not env_file.is_file():
        return None
    load_dotenv(dotenv_path=env_file, override=False)
    return env_file


def resolve_project_path(path: str | Path) -> Path:
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return (get_project_root() / candidate).resolve()
