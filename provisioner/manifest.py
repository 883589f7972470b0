"""
manifest.py

Responsibility: Load an optional provisioning manifest into a typed model.

A manifest is either a markdown file starting with YAML frontmatter or a plain
YAML mapping. Recognized keys:
- name: str
- description: str
- template: str ("owner/repo")
- visibility: "public" | "private"
- include_all_branches: bool
- seed_source: str ("owner/repo")
- protect: bool

Every key is optional here; the CLI decides what is required after applying
flags and environment variables on top.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


class ManifestError(ValueError):
    pass


@dataclass(frozen=True)
class Manifest:
    name: str | None = None
    description: str | None = None
    template: str | None = None
    visibility: str | None = None
    include_all_branches: bool | None = None
    seed_source: str | None = None
    protect: bool | None = None


def _split_frontmatter(text: str) -> str:
    """
    Return the YAML part of `text`: the frontmatter block when present, else all of it.
    """
    if not text.startswith("---\n"):
        return text

    end = text.find("\n---\n", 4)
    if end == -1:
        if text.rstrip().endswith("\n---"):
            end = text.rstrip().rfind("\n---")
        else:
            raise ManifestError("YAML frontmatter starts with '---' but no closing '---' was found.")
    return text[4:end]


def _opt_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ManifestError(f"`{key}` must be a string.")
    return str(value).strip() or None


def _opt_bool(data: dict[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ManifestError(f"`{key}` must be true or false.")
    return value


def parse_manifest_text(text: str) -> Manifest:
    try:
        data = yaml.safe_load(_split_frontmatter(text)) or {}
    except yaml.YAMLError as e:
        raise ManifestError(f"Manifest is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a mapping/object at the top level.")

    visibility = _opt_str(data, "visibility")
    if visibility is not None:
        visibility = visibility.lower()
        if visibility not in {"public", "private"}:
            raise ManifestError("`visibility` must be 'public' or 'private'.")

    return Manifest(
        name=_opt_str(data, "name"),
        description=_opt_str(data, "description"),
        template=_opt_str(data, "template"),
        visibility=visibility,
        include_all_branches=_opt_bool(data, "include_all_branches"),
        seed_source=_opt_str(data, "seed_source"),
        protect=_opt_bool(data, "protect"),
    )


def load_manifest(path: str | Path) -> Manifest:
    p = Path(path)
    if not p.exists():
        raise ManifestError(f"Manifest file does not exist: {p}")
    return parse_manifest_text(p.read_text(encoding="utf-8"))
