"""
config.py

Responsibility: resolve CLI flags, environment variables and an optional manifest
into one `AppConfig`.

Precedence for each value: flag -> environment variable -> manifest -> default.
The token is never read from the manifest: `--token`, then GITHUB_TOKEN, then GH_TOKEN.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from provisioner.errors import ConfigError
from provisioner.github_client import DEFAULT_API_BASE, ProvisioningRequest, TemplateRef
from provisioner.manifest import Manifest

VISIBILITIES = {"public", "private"}


@dataclass(frozen=True)
class AppConfig:
    template: TemplateRef
    request: ProvisioningRequest
    api_base: str
    token: str
    protect: bool
    seed_source: str | None
    timeout_seconds: float


def load_config(args, env: Mapping[str, str], manifest: Manifest | None = None) -> AppConfig:
    manifest = manifest or Manifest()

    repo_name = _first(args.repo_name, env.get("REPO_NAME"), manifest.name)
    if not repo_name:
        raise ConfigError("Missing repository name. Use --repo-name or set REPO_NAME")

    description = _first(args.repo_desc, env.get("REPO_DESC"), manifest.description) or ""

    visibility = (_first(args.repo_type, env.get("REPO_TYPE"), manifest.visibility) or "private").lower()
    if visibility not in VISIBILITIES:
        raise ConfigError("Invalid repository type. Allowed values: public, private")

    template_raw = _first(args.template_name, env.get("TEMPLATE_NAME"), manifest.template)
    if not template_raw:
        raise ConfigError("Missing template. Use --template-name or set TEMPLATE_NAME")
    template = TemplateRef.parse(template_raw)

    include_all_branches = _first_bool(
        args.include_all_branches, env.get("BRANCH"), manifest.include_all_branches, name="BRANCH"
    )
    protect = _first_bool(args.protect, env.get("PROTECT_BRANCHES"), manifest.protect, name="PROTECT_BRANCHES")

    seed_source = _first(args.seed_source, env.get("SEED_SOURCE"), manifest.seed_source)
    if seed_source:
        seed_source = str(TemplateRef.parse(seed_source))

    api_base = _first(args.api_base, env.get("GITHUB_API_URL")) or DEFAULT_API_BASE

    token = _first(args.token, env.get("GITHUB_TOKEN"), env.get("GH_TOKEN"))
    if not token:
        raise ConfigError("Missing token. Provide via --token, GITHUB_TOKEN, or GH_TOKEN env var")

    raw_timeout = _first(str(args.timeout) if args.timeout is not None else None, env.get("GITHUB_TIMEOUT_SECONDS"))
    try:
        timeout_seconds = float(raw_timeout) if raw_timeout else 30.0
    except ValueError as e:
        raise ConfigError("GITHUB_TIMEOUT_SECONDS/--timeout must be a number") from e
    if timeout_seconds <= 0:
        raise ConfigError("GITHUB_TIMEOUT_SECONDS/--timeout must be greater than 0")

    return AppConfig(
        template=template,
        request=ProvisioningRequest(
            name=repo_name,
            description=description,
            private=visibility == "private",
            include_all_branches=bool(include_all_branches),
        ),
        api_base=api_base,
        token=token,
        protect=True if protect is None else protect,
        seed_source=seed_source,
        timeout_seconds=timeout_seconds,
    )


def _normalize_empty(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _first(*values: str | None) -> str | None:
    for value in values:
        normalized = _normalize_empty(value)
        if normalized is not None:
            return normalized
    return None


def _first_bool(flag: bool | None, env_value: str | None, manifest_value: bool | None, *, name: str) -> bool | None:
    if flag is not None:
        return flag
    raw = _normalize_empty(env_value)
    if raw is not None:
        return _parse_bool(raw, name)
    return manifest_value


def _parse_bool(value: str, name: str) -> bool:
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{name} must be a boolean (true/false)")
