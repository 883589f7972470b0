"""
protection.py

Responsibility: branch protection policies and applying them.

The rule set is fixed by governance policy; callers only choose which status
check contexts are required on top of it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from provisioner.backoff import BackoffPolicy
from provisioner.github_client import GitHubClient
from provisioner.readiness import DEFAULT_READINESS_POLICY, wait_for_branch

LOGGER = logging.getLogger(__name__)

CI_CONTEXT = "ci"


@dataclass(frozen=True)
class ProtectionPolicy:
    contexts: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "required_status_checks": {
                "strict": True,
                "contexts": list(self.contexts),
            },
            "enforce_admins": True,
            "required_pull_request_reviews": {
                "required_approving_review_count": 1,
                "dismiss_stale_reviews": True,
                "require_code_owner_reviews": False,
                "require_last_push_approval": True,
            },
            "restrictions": None,
            "allow_force_pushes": False,
            "allow_deletions": False,
            "required_linear_history": True,
            "block_creations": False,
            "required_conversation_resolution": True,
            "lock_branch": False,
            "allow_fork_syncing": False,
        }


BASELINE_POLICY = ProtectionPolicy()


def checked_policy(*contexts: str) -> ProtectionPolicy:
    if not contexts:
        raise ValueError("checked policy requires at least one status check context")
    return ProtectionPolicy(contexts=tuple(contexts))


def protect_branch(
    client: GitHubClient,
    full_name: str,
    branch: str,
    policy: ProtectionPolicy = BASELINE_POLICY,
    *,
    readiness: BackoffPolicy = DEFAULT_READINESS_POLICY,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Wait for `branch` to exist, then apply `policy` to it.
    """
    wait_for_branch(client, full_name, branch, policy=readiness, sleep=sleep, clock=clock)
    client.update_branch_protection(full_name, branch, policy.to_payload())
    LOGGER.info(
        "branch protection applied",
        extra={
            "event": "protection.applied",
            "repository": full_name,
            "branch": branch,
            "contexts": list(policy.contexts),
        },
    )
