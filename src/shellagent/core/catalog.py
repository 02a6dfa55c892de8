"""Enumerate the commands available on this host for the system prompt."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Iterable
from pathlib import Path

from shellagent.types.config import DEFAULT_CATALOG_LIMIT

logger = logging.getLogger(__name__)


def list_available_commands(limit: int = DEFAULT_CATALOG_LIMIT) -> str:
    """Return up to *limit* unique command names, sorted, space separated.

    Uses bash's ``compgen -c`` so builtins, aliases and functions are
    included; falls back to scanning ``PATH`` when bash is unavailable.
    """
    names = _compgen_commands()
    if names is None:
        logger.debug("compgen unavailable, scanning PATH for commands")
        names = _path_commands(os.environ.get("PATH", ""))
    return format_catalog(names, limit)


def format_catalog(names: Iterable[str], limit: int = DEFAULT_CATALOG_LIMIT) -> str:
    unique = sorted({n.strip() for n in names if n.strip()})
    if limit >= 0:
        unique = unique[:limit]
    return " ".join(unique)


def _compgen_commands() -> list[str] | None:
    bash = shutil.which("bash")
    if bash is None:
        return None
    try:
        proc = subprocess.run(
            [bash, "-c", "compgen -c"],
            capture_output=True,
            text=True,
            timeout=30,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.warning("Command enumeration failed: %s", exc)
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.splitlines()


def _path_commands(path_var: str) -> list[str]:
    names: list[str] = []
    for entry in path_var.split(os.pathsep):
        if not entry:
            continue
        directory = Path(entry)
        try:
            children = list(directory.iterdir())
        except OSError:
            continue
        for child in children:
            if child.is_file() and os.access(child, os.X_OK):
                names.append(child.name)
    return names
