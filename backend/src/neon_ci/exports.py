"""Persist provisioning output as a shell environment snapshot."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Iterable, Mapping


def format_exports(values: Mapping[str, str]) -> list[str]:
    """``export KEY=value`` lines, shell-quoted so any password survives sourcing."""

    return [f"export {key}={shlex.quote(value)}" for key, value in values.items()]


def write_exports(values: Mapping[str, str], path: Path) -> None:
    """Append export lines to ``path`` (e.g. CircleCI's ``$BASH_ENV``)."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        for line in format_exports(values):
            handle.write(line + "\n")


def summarize_exports(keys: Iterable[str]) -> str:
    return "Exported: " + ", ".join(keys)


__all__ = ["format_exports", "summarize_exports", "write_exports"]
