from __future__ import annotations

import pytest

from provisioner.errors import PermissionDeniedError
from provisioner.protection import BASELINE_POLICY, checked_policy, protect_branch
from tests.conftest import make_response

PROTECTION = "/repos/me/new-repo/branches/main/protection"
BRANCH = "/repos/me/new-repo/branches/main"


def test_protects_branch_successfully(client, session, clock) -> None:
    session.add("GET", BRANCH, make_response(200, {"name": "main"}))
    session.add("PUT", PROTECTION, make_response(200, {}))

    protect_branch(client, "me/new-repo", "main", sleep=clock.sleep, clock=clock)

    (call,) = session.calls_to("PUT", PROTECTION)
    assert call.headers["Authorization"] == "Bearer testtoken"
    assert call.json == {
        "required_status_checks": {"strict": True, "contexts": []},
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


def test_waits_for_branch_before_protecting(client, session, clock) -> None:
    session.add("GET", BRANCH, make_response(404, {"message": "Branch not found"}), make_response(200, {}))
    session.add("PUT", PROTECTION, make_response(200, {}))

    protect_branch(client, "me/new-repo", "main", sleep=clock.sleep, clock=clock)

    assert [c.method for c in session.calls] == ["GET", "GET", "PUT"]


def test_forbidden_is_a_permission_diagnosis(client, session, clock) -> None:
    session.add("GET", BRANCH, make_response(200, {}))
    session.add("PUT", PROTECTION, make_response(403, text='{"message":"forbidden"}'))

    with pytest.raises(PermissionDeniedError) as exc_info:
        protect_branch(client, "me/new-repo", "main", sleep=clock.sleep, clock=clock)

    assert "Permission denied" in str(exc_info.value)
    assert "forbidden" in str(exc_info.value)


def test_checked_policy_adds_contexts(client, session, clock) -> None:
    session.add("GET", BRANCH, make_response(200, {}))
    session.add("PUT", PROTECTION, make_response(200, {}))

    protect_branch(client, "me/new-repo", "main", checked_policy("ci"), sleep=clock.sleep, clock=clock)

    assert session.calls_to("PUT", PROTECTION)[0].json["required_status_checks"] == {"strict": True, "contexts": ["ci"]}


def test_policy_variants_share_rules() -> None:
    baseline = BASELINE_POLICY.to_payload()
    checked = checked_policy("ci", "lint").to_payload()
    checked["required_status_checks"]["contexts"] = []
    assert baseline == checked


def test_checked_policy_requires_context() -> None:
    with pytest.raises(ValueError):
        checked_policy()
