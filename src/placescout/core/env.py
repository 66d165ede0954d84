"""
Environment + project-root helpers.

The CLI, the API server and the test suite can all be started from different working
directories. Catalog and cache paths in settings are relative (`data/catalogs/...`), so
they are resolved against a detected project root. A repo-local `.env` is loaded once
(python-dotenv, never overriding variables that are already set) so `PLACESCOUT_*`
variables behave the same everywhere.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_FILES = (".env", "pyproject.toml")


def _is_project_root(path: Path) -> bool:
    if any((path / name).is_file() for name in _ROOT_FILES) or (path / ".git").exists():
        return True
    return (path / "src" / "placescout").is_dir()


def _search_up(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in (start, *start.parents):
        if _is_project_root(candidate):
            return candidate
    return None


@lru_cache
def get_project_root() -> Path:
    """Best-guess project root (cached).

    Order: `PLACESCOUT_PROJECT_ROOT`, the parent of `PLACESCOUT_ENV_FILE`, the first
    marker directory above the CWD, then above this module, then the CWD itself.
    """
    override = os.getenv("PLACESCOUT_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    env_file = os.getenv("PLACESCOUT_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    return _search_up(Path.cwd()) or _search_up(Path(__file__).parent) or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once; returns the file that was loaded, if any."""
    explicit = os.getenv("PLACESCOUT_ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
