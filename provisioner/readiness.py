"""
readiness.py

Responsibility: wait until a branch of a freshly created repository is observable.

Repositories generated from a template are created asynchronously by GitHub, so
the default branch can return 404 for a short while. 401/403 fail at once since
permissions do not change with time; 404 and unexpected statuses are retried with
backoff until the deadline.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from provisioner import diagnostics
from provisioner.backoff import BackoffPolicy, PollTimeout, poll_until
from provisioner.errors import BranchNotReadyError
from provisioner.github_client import GitHubClient

LOGGER = logging.getLogger(__name__)

DEFAULT_READINESS_POLICY = BackoffPolicy(initial_delay=0.4, multiplier=2.0, max_delay=2.0, deadline=30.0)


def wait_for_branch(
    client: GitHubClient,
    full_name: str,
    branch: str,
    *,
    policy: BackoffPolicy = DEFAULT_READINESS_POLICY,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    def check() -> bool:
        r = client.get_branch(full_name, branch)
        if r.status_code == 200:
            return True
        if r.status_code in (401, 403):
            raise diagnostics.classify(r.status_code, r.text, diagnostics.GET_BRANCH)
        if r.status_code != 404:
            LOGGER.warning(
                "unexpected status while waiting for branch",
                extra={
                    "event": "readiness.unexpected_status",
                    "repository": full_name,
                    "branch": branch,
                    "status": r.status_code,
                },
            )
        return False

    try:
        attempts = poll_until(check, policy, sleep=sleep, clock=clock)
    except PollTimeout as e:
        raise BranchNotReadyError(
            f"Timed out after {e.elapsed:.1f}s waiting for branch '{branch}' in {full_name} "
            f"to become available ({e.attempts} attempts)",
            operation=diagnostics.GET_BRANCH,
        ) from e

    LOGGER.info(
        "branch is available",
        extra={"event": "readiness.ready", "repository": full_name, "branch": branch, "attempts": attempts},
    )
