"""
environments.py

Responsibility: deployment environments restricted to a set of branch patterns.

Creating the environment is required; each branch pattern is added on its own and
a failure there (typically a pattern that already exists) is logged and recorded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from provisioner.errors import GitHubError
from provisioner.github_client import GitHubClient

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentSpec:
    name: str
    allowed_branch_patterns: tuple[str, ...]


SERVICE_ENVIRONMENTS: tuple[EnvironmentSpec, ...] = (
    EnvironmentSpec(name="dev", allowed_branch_patterns=("dev", "feature/*")),
    EnvironmentSpec(name="release", allowed_branch_patterns=("main", "release/*")),
)


def configure_environment(client: GitHubClient, full_name: str, env: EnvironmentSpec) -> dict[str, str]:
    """
    Apply one environment. Returns failed patterns mapped to their error text.
    """
    client.upsert_environment(full_name, env.name)

    failed: dict[str, str] = {}
    for pattern in env.allowed_branch_patterns:
        try:
            client.add_deployment_branch_policy(full_name, env.name, pattern)
        except GitHubError as e:
            LOGGER.warning(
                "failed to add deployment branch policy",
                extra={
                    "event": "environment.pattern.failed",
                    "repository": full_name,
                    "environment": env.name,
                    "pattern": pattern,
                    "error": str(e),
                },
            )
            failed[pattern] = str(e)

    LOGGER.info(
        "environment configured",
        extra={
            "event": "environment.configured",
            "repository": full_name,
            "environment": env.name,
            "patterns": list(env.allowed_branch_patterns),
            "failed_patterns": sorted(failed),
        },
    )
    return failed


def configure_environments(
    client: GitHubClient,
    full_name: str,
    envs: Sequence[EnvironmentSpec] = SERVICE_ENVIRONMENTS,
) -> dict[str, dict[str, str]]:
    failures: dict[str, dict[str, str]] = {}
    for env in envs:
        failed = configure_environment(client, full_name, env)
        if failed:
            failures[env.name] = failed
    return failures
