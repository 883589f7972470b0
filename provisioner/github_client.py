"""
github_client.py

Responsibility: Isolate all direct GitHub REST API interaction.

This module must be the only place that:
- Constructs GitHub REST endpoints
- Sends HTTP requests to the API base URL
- Hands failed responses to `diagnostics.classify`

No retries happen here; callers that know an operation is safe to repeat
(the readiness poller) decide that themselves.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

from provisioner import __version__, diagnostics
from provisioner.errors import GitHubError, TemplateRefError, TransportError

DEFAULT_API_BASE = "https://api.github.com"
API_VERSION = "2022-11-28"


@dataclass(frozen=True)
class RepoInfo:
    full_name: str
    html_url: str
    default_branch: str


@dataclass(frozen=True)
class TemplateRef:
    owner: str
    repo: str

    @classmethod
    def parse(cls, value: str) -> "TemplateRef":
        """
        Parse "owner/repo". Splits on the first '/' only; both halves must be non-empty.
        """
        owner, sep, repo = value.partition("/")
        if not sep:
            raise TemplateRefError(f"Invalid repository reference; expected 'owner/repo', got '{value}'")
        if not owner or not repo:
            raise TemplateRefError(f"Invalid repository reference; expected 'owner/repo', got '{value}'")
        return cls(owner=owner, repo=repo)

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class ProvisioningRequest:
    name: str
    description: str = ""
    private: bool = True
    include_all_branches: bool = False


@dataclass(frozen=True)
class TreeEntry:
    path: str
    kind: str
    sha: str


def _split_full_name(full_name: str) -> tuple[str, str]:
    ref = TemplateRef.parse(full_name)
    return ref.owner, ref.repo


def _repo_path(full_name: str) -> str:
    owner, repo = _split_full_name(full_name)
    return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"


class GitHubClient:
    def __init__(
        self,
        token: str,
        api_base: str = DEFAULT_API_BASE,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not token.strip():
            raise GitHubError("GitHub token is required.")
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": f"repo-provisioner/{__version__}",
        }

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> requests.Response:
        """
        Send one request and return the raw response, whatever its status.
        """
        url = f"{self._api_base}{path}"
        try:
            return self._session.request(
                method,
                url,
                headers=self._headers(),
                json=json_body,
                params=params,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"GitHub API request failed: {method} {path}: {e}") from e

    def _call(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        r = self.request(method, path, json_body=json_body, params=params)
        if r.status_code >= 300:
            raise diagnostics.classify(r.status_code, r.text, operation)
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise GitHubError(
                f"{operation}: invalid JSON in response to {method} {path}",
                status=r.status_code,
                operation=operation,
            ) from e

    def generate_from_template(self, template: TemplateRef, req: ProvisioningRequest) -> RepoInfo:
        """
        Create a new repository from a template repository (POST .../generate).
        """
        data = self._call(
            diagnostics.GENERATE_REPOSITORY,
            "POST",
            f"/repos/{quote(template.owner, safe='')}/{quote(template.repo, safe='')}/generate",
            json_body={
                "name": req.name,
                "description": req.description,
                "private": req.private,
                "include_all_branches": req.include_all_branches,
            },
        )
        if not isinstance(data, dict) or not data.get("full_name") or not data.get("html_url"):
            raise GitHubError(
                f"{diagnostics.GENERATE_REPOSITORY}: unexpected response shape (missing full_name or html_url)",
                operation=diagnostics.GENERATE_REPOSITORY,
            )
        return RepoInfo(
            full_name=str(data["full_name"]),
            html_url=str(data["html_url"]),
            default_branch=data.get("default_branch") or "main",
        )

    def get_repository(self, full_name: str) -> RepoInfo:
        data = self._call(diagnostics.GET_REPOSITORY, "GET", _repo_path(full_name)) or {}
        return RepoInfo(
            full_name=data.get("full_name") or full_name,
            html_url=data.get("html_url") or "",
            default_branch=data.get("default_branch") or "main",
        )

    def get_branch(self, full_name: str, branch: str) -> requests.Response:
        """
        Raw branch lookup; the readiness poller interprets the status itself.
        """
        return self.request("GET", f"{_repo_path(full_name)}/branches/{quote(branch, safe='')}")

    def update_branch_protection(self, full_name: str, branch: str, body: dict[str, Any]) -> None:
        self._call(
            diagnostics.PROTECT_BRANCH,
            "PUT",
            f"{_repo_path(full_name)}/branches/{quote(branch, safe='')}/protection",
            json_body=body,
        )

    def get_branch_sha(self, full_name: str, branch: str) -> str:
        data = self._call(
            diagnostics.GET_REF,
            "GET",
            f"{_repo_path(full_name)}/git/ref/heads/{quote(branch, safe='/')}",
        )
        sha = (data or {}).get("object", {}).get("sha")
        if not sha:
            raise GitHubError(f"{diagnostics.GET_REF}: response for '{branch}' has no commit sha")
        return str(sha)

    def create_ref(self, full_name: str, branch: str, sha: str) -> None:
        self._call(
            diagnostics.CREATE_REF,
            "POST",
            f"{_repo_path(full_name)}/git/refs",
            json_body={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    def get_tree(self, full_name: str, branch: str) -> list[TreeEntry]:
        data = self._call(
            diagnostics.GET_TREE,
            "GET",
            f"{_repo_path(full_name)}/git/trees/{quote(branch, safe='')}",
            params={"recursive": "1"},
        )
        entries: list[TreeEntry] = []
        for item in (data or {}).get("tree", []):
            if not isinstance(item, dict):
                continue
            path, kind, sha = item.get("path"), item.get("type"), item.get("sha")
            if isinstance(path, str) and isinstance(kind, str) and isinstance(sha, str):
                entries.append(TreeEntry(path=path, kind=kind, sha=sha))
        return entries

    def get_blob_content(self, full_name: str, sha: str) -> bytes:
        """
        Return decoded blob bytes. Only base64-encoded blobs are accepted.
        """
        data = self._call(diagnostics.GET_BLOB, "GET", f"{_repo_path(full_name)}/git/blobs/{quote(sha, safe='')}")
        encoding = (data or {}).get("encoding")
        if encoding != "base64":
            raise GitHubError(
                f"{diagnostics.GET_BLOB}: unsupported blob encoding '{encoding}' for {sha}",
                operation=diagnostics.GET_BLOB,
            )
        raw = str(data.get("content") or "").replace("\n", "")
        try:
            return base64.b64decode(raw, validate=True)
        except ValueError as e:
            raise GitHubError(
                f"{diagnostics.GET_BLOB}: blob {sha} is not valid base64",
                operation=diagnostics.GET_BLOB,
            ) from e

    def file_exists(self, full_name: str, path: str, branch: str) -> bool:
        """
        Existence check: 200 -> True, 404 -> False, anything else raises.
        """
        r = self.request(
            "GET",
            f"{_repo_path(full_name)}/contents/{quote(path, safe='/')}",
            params={"ref": branch},
        )
        if r.status_code == 200:
            return True
        if r.status_code == 404:
            return False
        raise diagnostics.classify(r.status_code, r.text, diagnostics.GET_CONTENTS)

    def put_file(self, full_name: str, path: str, branch: str, content: bytes, message: str) -> None:
        self._call(
            diagnostics.PUT_CONTENTS,
            "PUT",
            f"{_repo_path(full_name)}/contents/{quote(path, safe='/')}",
            json_body={
                "message": message,
                "content": base64.b64encode(content).decode("ascii"),
                "branch": branch,
            },
        )

    def upsert_environment(self, full_name: str, name: str) -> None:
        """
        Create or update an environment restricted to custom branch policies.
        """
        self._call(
            diagnostics.UPSERT_ENVIRONMENT,
            "PUT",
            f"{_repo_path(full_name)}/environments/{quote(name, safe='')}",
            json_body={
                "deployment_branch_policy": {
                    "protected_branches": False,
                    "custom_branch_policies": True,
                }
            },
        )

    def add_deployment_branch_policy(self, full_name: str, environment: str, pattern: str) -> None:
        self._call(
            diagnostics.ADD_BRANCH_POLICY,
            "POST",
            f"{_repo_path(full_name)}/environments/{quote(environment, safe='')}/deployment-branch-policies",
            json_body={"name": pattern},
        )
