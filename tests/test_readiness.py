from __future__ import annotations

import pytest

from provisioner.backoff import BackoffPolicy, PollTimeout, poll_until
from provisioner.errors import BranchNotReadyError, PermissionDeniedError
from provisioner.readiness import wait_for_branch
from tests.conftest import make_response

BRANCH = "/repos/owner/new-repo/branches/main"


def test_delays_double_and_cap() -> None:
    delays = BackoffPolicy().delays()
    assert [next(delays) for _ in range(6)] == [0.4, 0.8, 1.6, 2.0, 2.0, 2.0]


def test_poll_until_counts_attempts(clock) -> None:
    results = iter([False, False, True])

    attempts = poll_until(lambda: next(results), BackoffPolicy(), sleep=clock.sleep, clock=clock)

    assert attempts == 3
    assert clock.sleeps == [0.4, 0.8]


def test_poll_until_times_out(clock) -> None:
    with pytest.raises(PollTimeout) as exc_info:
        poll_until(lambda: False, BackoffPolicy(deadline=3.0), sleep=clock.sleep, clock=clock)

    assert exc_info.value.elapsed >= 3.0
    assert sum(clock.sleeps) >= 3.0


def test_waits_until_branch_appears(client, session, clock) -> None:
    session.add(
        "GET",
        BRANCH,
        make_response(404, {"message": "Branch not found"}),
        make_response(404, {"message": "Branch not found"}),
        make_response(200, {"name": "main"}),
    )

    wait_for_branch(client, "owner/new-repo", "main", sleep=clock.sleep, clock=clock)

    assert len(session.calls_to("GET", BRANCH)) == 3
    assert len(clock.sleeps) >= 2
    assert clock.sleeps == [0.4, 0.8]


def test_times_out_when_branch_never_appears(client, session, clock) -> None:
    session.add("GET", BRANCH, make_response(404, {"message": "Branch not found"}))

    with pytest.raises(BranchNotReadyError) as exc_info:
        wait_for_branch(client, "owner/new-repo", "main", policy=BackoffPolicy(deadline=5.0), sleep=clock.sleep, clock=clock)

    assert "Timed out" in str(exc_info.value)
    assert clock.now >= 5.0
    assert max(clock.sleeps) <= 2.0


def test_default_deadline_is_thirty_seconds(client, session, clock) -> None:
    session.add("GET", BRANCH, make_response(404, {"message": "Branch not found"}))

    with pytest.raises(BranchNotReadyError):
        wait_for_branch(client, "owner/new-repo", "main", sleep=clock.sleep, clock=clock)

    assert 30.0 <= clock.now < 32.0


@pytest.mark.parametrize("status", [401, 403])
def test_permission_errors_fail_immediately(client, session, clock, status: int) -> None:
    session.add("GET", BRANCH, make_response(status, {"message": "forbidden"}))

    with pytest.raises(Exception) as exc_info:
        wait_for_branch(client, "owner/new-repo", "main", sleep=clock.sleep, clock=clock)

    assert str(status) in str(exc_info.value)
    assert clock.sleeps == []
    assert len(session.calls) == 1
    if status == 403:
        assert isinstance(exc_info.value, PermissionDeniedError)


def test_unexpected_status_is_retried(client, session, clock, caplog) -> None:
    session.add(
        "GET",
        BRANCH,
        make_response(502, text="bad gateway"),
        make_response(200, {"name": "main"}),
    )

    with caplog.at_level("WARNING", logger="provisioner.readiness"):
        wait_for_branch(client, "owner/new-repo", "main", sleep=clock.sleep, clock=clock)

    assert clock.sleeps == [0.4]
    assert any(getattr(r, "event", None) == "readiness.unexpected_status" for r in caplog.records)
