"""
diagnostics.py

Responsibility: turn a failed GitHub response into a human-actionable error.

The body is decoded into one of two shapes:
- `StructuredErrorBody`: GitHub's JSON error (`message`, optional `errors`)
- `OpaqueErrorBody`: anything else, kept as text

`diagnose()` is a pure function of (status, body, operation) so it can be
tested without any HTTP mocking. `classify()` wraps the diagnosis in the
matching `GitHubError` subclass.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from provisioner.errors import (
    AuthenticationError,
    GitHubError,
    NameConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)

# Operation names used in messages and for permission hints.
GENERATE_REPOSITORY = "generate repository from template"
GET_BRANCH = "get branch"
PROTECT_BRANCH = "update branch protection"
GET_REF = "get branch ref"
CREATE_REF = "create branch ref"
GET_REPOSITORY = "get repository"
GET_TREE = "list repository tree"
GET_BLOB = "get blob"
GET_CONTENTS = "get file contents"
PUT_CONTENTS = "write file contents"
UPSERT_ENVIRONMENT = "create or update environment"
ADD_BRANCH_POLICY = "add deployment branch policy"

_PERMISSION_HINTS: dict[str, str] = {
    GENERATE_REPOSITORY: (
        "the token needs read access to the template repository and permission to create "
        "repositories for the owner (classic: 'repo' scope; fine-grained: Administration write)"
    ),
    PROTECT_BRANCH: (
        "updating branch protection requires admin on the repository "
        "(classic: 'repo' scope; fine-grained: Administration write)"
    ),
    CREATE_REF: "creating branches requires Contents write on the repository",
    PUT_CONTENTS: "writing files requires Contents write on the repository",
    UPSERT_ENVIRONMENT: "managing environments requires Administration write on the repository",
    ADD_BRANCH_POLICY: "managing environments requires Administration write on the repository",
}
_DEFAULT_PERMISSION_HINT = "check that the token has access to the repository and the required scopes"


@dataclass(frozen=True)
class StructuredErrorBody:
    message: str
    errors: tuple[Any, ...] = ()
    documentation_url: str | None = None


@dataclass(frozen=True)
class OpaqueErrorBody:
    text: str

    @property
    def message(self) -> str:
        return self.text.strip() or "<no body>"


ErrorBody = Union[StructuredErrorBody, OpaqueErrorBody]


def parse_error_body(text: str) -> ErrorBody:
    try:
        payload = json.loads(text)
    except ValueError:
        return OpaqueErrorBody(text)
    if not isinstance(payload, dict) or not isinstance(payload.get("message"), str):
        return OpaqueErrorBody(text)

    raw_errors = payload.get("errors") or []
    errors = tuple(raw_errors) if isinstance(raw_errors, list) else ()
    doc_url = payload.get("documentation_url")
    return StructuredErrorBody(
        message=payload["message"],
        errors=errors,
        documentation_url=doc_url if isinstance(doc_url, str) else None,
    )


def _error_detail(item: Any) -> str:
    if isinstance(item, dict):
        parts = [str(item[k]) for k in ("resource", "field", "code") if item.get(k)]
        if item.get("message"):
            parts.append(str(item["message"]))
        return " ".join(parts) or json.dumps(item, sort_keys=True)
    return str(item)


def is_name_collision(body: ErrorBody) -> bool:
    """
    Match GitHub's "already exists" wording. This depends on the provider's text:
    a rewording degrades to the generic 422 message rather than failing.
    """
    if not isinstance(body, StructuredErrorBody):
        return False
    if "already exists" in body.message.lower():
        return True
    for item in body.errors:
        if isinstance(item, dict):
            code = str(item.get("code") or "")
            message = str(item.get("message") or "")
        else:
            code, message = "", str(item)
        if code.lower() == "already_exists" or "already exists" in message.lower():
            return True
    return False


def _docs_suffix(body: ErrorBody) -> str:
    if isinstance(body, StructuredErrorBody) and body.documentation_url:
        return f" See {body.documentation_url}"
    return ""


def diagnose(status: int, body: ErrorBody, operation: str) -> str:
    message = body.message
    if status == 401:
        return (
            f"{operation} failed (401 Unauthorized): {message}. "
            "The token is missing, expired or revoked; issue a new token and retry."
        )
    if status == 403:
        hint = _PERMISSION_HINTS.get(operation, _DEFAULT_PERMISSION_HINT)
        return f"{operation} failed (403 Forbidden): {message}. Permission denied: {hint}.{_docs_suffix(body)}"
    if status == 404:
        return (
            f"{operation} failed (404 Not Found): the resource does not exist or is not "
            "accessible with this token. Check the owner/repository names and the token's access."
        )
    if status == 422:
        if is_name_collision(body):
            return (
                f"{operation} failed (422): a repository or ref with that name already exists. "
                "Choose a different name or remove the existing one."
            )
        details = ""
        if isinstance(body, StructuredErrorBody) and body.errors:
            details = " (" + "; ".join(_error_detail(item) for item in body.errors) + ")"
        return f"{operation} failed (422 Validation Failed): {message}{details}. Check the request values.{_docs_suffix(body)}"
    return f"{operation} failed: {status}: {message}"


def classify(status: int, text: str, operation: str) -> GitHubError:
    body = parse_error_body(text)
    message = diagnose(status, body, operation)
    if status == 401:
        cls: type[GitHubError] = AuthenticationError
    elif status == 403:
        cls = PermissionDeniedError
    elif status == 404:
        cls = NotFoundError
    elif status == 422:
        cls = NameConflictError if is_name_collision(body) else ValidationFailedError
    else:
        cls = GitHubError
    return cls(message, status=status, operation=operation)
