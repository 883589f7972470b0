"""
cli.py

Responsibility: CLI entrypoint for the repository provisioner.

High-level flow (single command `create`):
1) Resolve flags / environment / optional manifest -> `AppConfig`
2) Run the provisioning workflow against the GitHub API
3) Print one JSON line describing the new repository

Any failure prints `error: <diagnosis>` on stderr and exits 1. Remote changes that
were already applied are left as they are.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

import requests

from provisioner import __version__
from provisioner.config import load_config
from provisioner.errors import ConfigError, GitHubError, TemplateRefError
from provisioner.github_client import GitHubClient
from provisioner.logging_utils import configure_logging
from provisioner.manifest import ManifestError, load_manifest
from provisioner.workflow import Provisioner

LOGGER = logging.getLogger(__name__)


def create_cmd(args: argparse.Namespace) -> int:
    manifest = load_manifest(args.manifest) if args.manifest else None
    config = load_config(args=args, env=os.environ, manifest=manifest)

    LOGGER.info(
        "cli configuration resolved",
        extra={
            "event": "cli.config.resolved",
            "template": str(config.template),
            "repo_name": config.request.name,
            "private": config.request.private,
            "include_all_branches": config.request.include_all_branches,
            "api_base": config.api_base,
            "protect": config.protect,
            "seed_source": config.seed_source,
        },
    )

    client = GitHubClient(
        config.token,
        config.api_base,
        timeout=config.timeout_seconds,
        session=requests.Session(),
    )
    result = Provisioner(client, protect=config.protect, seed_source=config.seed_source).run(
        config.template, config.request
    )

    repo = result.require_repo()
    print(json.dumps({"full_name": repo.full_name, "html_url": repo.html_url, "default_branch": repo.default_branch}))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="repo-provisioner",
        description="Create a repository from a GitHub template and apply branch governance",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--log-level", default=None, help="Log level (or set LOG_LEVEL, default: WARNING)")
    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser("create", help="Create a repository from a template and apply protections")
    c.add_argument("--manifest", default=None, help="Optional YAML/markdown manifest with repository settings")
    c.add_argument("--repo-name", default=None, help="Repository name to create (or set REPO_NAME)")
    c.add_argument("--repo-desc", default=None, help="Repository description (or set REPO_DESC)")
    c.add_argument(
        "--repo-type",
        choices=["public", "private"],
        default=None,
        help="Repository visibility (or set REPO_TYPE, default: private)",
    )
    c.add_argument("--template-name", default=None, help="Template repository 'owner/repo' (or set TEMPLATE_NAME)")
    c.add_argument(
        "--include-all-branches",
        dest="include_all_branches",
        action="store_true",
        default=None,
        help="Copy all branches of the template (or set BRANCH=true)",
    )
    c.add_argument("--api-base", default=None, help="GitHub API base URL (or set GITHUB_API_URL)")
    c.add_argument("--token", default=None, help="GitHub token (or set GITHUB_TOKEN / GH_TOKEN)")
    c.add_argument(
        "--no-protection",
        dest="protect",
        action="store_false",
        default=None,
        help="Do not apply branch protection (or set PROTECT_BRANCHES=false)",
    )
    c.add_argument(
        "--seed-source",
        default=None,
        help="Repository 'owner/repo' to seed scaffolding from (default: <template owner>/service-template)",
    )
    c.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (or set GITHUB_TIMEOUT_SECONDS, default: 30)",
    )

    c.set_defaults(func=create_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging(args.log_level or os.environ.get("LOG_LEVEL") or "WARNING")
        return int(args.func(args))
    except (ConfigError, ManifestError, TemplateRefError, GitHubError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
