"""
seeder.py

Responsibility: copy scaffolding files from a source repository into a new one.

Best-effort by design: each file is handled on its own and a failure is logged
and recorded, never raised. Files already present at the destination are left
untouched. Only reading the source repository and its tree is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from provisioner.errors import GitHubError
from provisioner.github_client import GitHubClient, TreeEntry

LOGGER = logging.getLogger(__name__)

SEED_COMMIT_MESSAGE = "chore: seed scaffolding from service template"


@dataclass
class SeedReport:
    copied: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def select_entries(entries: Sequence[TreeEntry], prefixes: Sequence[str]) -> list[TreeEntry]:
    """
    Plain files whose path starts with one of `prefixes`, in tree order.
    """
    return [e for e in entries if e.kind == "blob" and any(e.path.startswith(p) for p in prefixes)]


def seed_content(
    client: GitHubClient,
    source: str,
    destination: str,
    branch: str,
    prefixes: Sequence[str],
    *,
    message: str = SEED_COMMIT_MESSAGE,
) -> SeedReport:
    source_repo = client.get_repository(source)
    entries = select_entries(client.get_tree(source, source_repo.default_branch), prefixes)
    LOGGER.info(
        "seeding files",
        extra={
            "event": "seed.start",
            "source": source,
            "source_branch": source_repo.default_branch,
            "destination": destination,
            "branch": branch,
            "count": len(entries),
        },
    )

    report = SeedReport()
    for entry in entries:
        try:
            content = client.get_blob_content(source, entry.sha)
            if client.file_exists(destination, entry.path, branch):
                LOGGER.info(
                    "file already exists, skipping",
                    extra={"event": "seed.file.exists", "destination": destination, "path": entry.path},
                )
                report.existing.append(entry.path)
                continue
            client.put_file(destination, entry.path, branch, content, message)
        except GitHubError as e:
            LOGGER.warning(
                "failed to seed file",
                extra={"event": "seed.file.failed", "destination": destination, "path": entry.path, "error": str(e)},
            )
            report.failed[entry.path] = str(e)
            continue
        report.copied.append(entry.path)

    LOGGER.info(
        "seeding finished",
        extra={
            "event": "seed.completed",
            "destination": destination,
            "copied": len(report.copied),
            "existing": len(report.existing),
            "failed": len(report.failed),
        },
    )
    return report
