"""
workflow.py

Responsibility: run the provisioning steps for one new repository.

High-level flow:
1) Generate the repository from the template
2) Pick the workflow variant from the template name
   - baseline: protect the default branch
   - service (template repo named `service-*`):
     seed scaffolding -> protect default branch with required checks ->
     create `dev` -> protect `dev` -> configure deployment environments

Steps run strictly in order and the first error stops the run. Nothing is rolled
back: whatever was already applied on GitHub stays in place.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from provisioner import diagnostics
from provisioner.backoff import BackoffPolicy
from provisioner.environments import SERVICE_ENVIRONMENTS, EnvironmentSpec, configure_environments
from provisioner.errors import GitHubError
from provisioner.github_client import GitHubClient, ProvisioningRequest, RepoInfo, TemplateRef
from provisioner.protection import BASELINE_POLICY, CI_CONTEXT, ProtectionPolicy, checked_policy, protect_branch
from provisioner.readiness import DEFAULT_READINESS_POLICY, wait_for_branch
from provisioner.seeder import SeedReport, seed_content

LOGGER = logging.getLogger(__name__)

BASELINE = "baseline"
SERVICE = "service"

SERVICE_TEMPLATE_PREFIX = "service-"
SEED_TEMPLATE_REPO = "service-template"
SEED_PATH_PREFIXES = ("helm/", "terraform/", ".github/workflows/")
SECONDARY_BRANCH = "dev"


def detect_variant(template: TemplateRef) -> str:
    return SERVICE if template.repo.startswith(SERVICE_TEMPLATE_PREFIX) else BASELINE


def resolve_seed_source(template: TemplateRef, override: str | None = None) -> str:
    if override:
        return str(TemplateRef.parse(override))
    return f"{template.owner}/{SEED_TEMPLATE_REPO}"


@dataclass
class ProvisioningResult:
    template: TemplateRef
    request: ProvisioningRequest
    variant: str
    repo: RepoInfo | None = None
    completed_steps: list[str] = field(default_factory=list)
    seed: SeedReport | None = None
    environment_failures: dict[str, dict[str, str]] = field(default_factory=dict)

    @property
    def skipped(self) -> list[str]:
        """
        Best-effort items that were not applied, as "kind:target" strings.
        """
        out: list[str] = []
        if self.seed is not None:
            out.extend(f"file:{path}" for path in sorted(self.seed.failed))
        for env_name, patterns in sorted(self.environment_failures.items()):
            out.extend(f"environment:{env_name}:{pattern}" for pattern in sorted(patterns))
        return out

    def require_repo(self) -> RepoInfo:
        if self.repo is None:
            raise GitHubError(
                f"repository from {self.template} was not created; no later step can run",
                operation=diagnostics.GENERATE_REPOSITORY,
            )
        return self.repo


Step = Callable[[ProvisioningResult], None]


class Provisioner:
    def __init__(
        self,
        client: GitHubClient,
        *,
        protect: bool = True,
        seed_source: str | None = None,
        required_context: str = CI_CONTEXT,
        environments: tuple[EnvironmentSpec, ...] = SERVICE_ENVIRONMENTS,
        readiness: BackoffPolicy = DEFAULT_READINESS_POLICY,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._protect = protect
        # Validated up front so a bad override fails before any network call.
        self._seed_source = str(TemplateRef.parse(seed_source)) if seed_source else None
        self._checked = checked_policy(required_context)
        self._environments = environments
        self._readiness = readiness
        self._sleep = sleep
        self._clock = clock

    def plan(self, variant: str) -> list[tuple[str, Step]]:
        steps: list[tuple[str, Step]] = [("create", self._create)]
        if variant == BASELINE:
            if self._protect:
                steps.append(("protect-default", self._protect_default))
            return steps

        steps.append(("seed", self._seed))
        if self._protect:
            steps.append(("protect-default", self._protect_default))
        steps.append(("create-secondary-branch", self._create_secondary_branch))
        if self._protect:
            steps.append(("protect-secondary-branch", self._protect_secondary_branch))
        steps.append(("environments", self._configure_environments))
        return steps

    def run(self, template: TemplateRef, request: ProvisioningRequest) -> ProvisioningResult:
        variant = detect_variant(template)
        result = ProvisioningResult(template=template, request=request, variant=variant)

        for name, step in self.plan(variant):
            LOGGER.info(
                "step started",
                extra={"event": "workflow.step.start", "step": name, "variant": variant},
            )
            try:
                step(result)
            except Exception as e:
                LOGGER.error(
                    "step failed",
                    extra={
                        "event": "workflow.step.failed",
                        "step": name,
                        "variant": variant,
                        "repository": result.repo.full_name if result.repo else None,
                        "error": str(e),
                    },
                )
                raise
            result.completed_steps.append(name)

        LOGGER.info(
            "provisioning completed",
            extra={
                "event": "workflow.completed",
                "variant": variant,
                "repository": result.repo.full_name if result.repo else None,
                "steps": result.completed_steps,
                "skipped": result.skipped,
            },
        )
        return result

    def _apply(self, repo: RepoInfo, branch: str, policy: ProtectionPolicy) -> None:
        protect_branch(
            self._client,
            repo.full_name,
            branch,
            policy,
            readiness=self._readiness,
            sleep=self._sleep,
            clock=self._clock,
        )

    def _create(self, result: ProvisioningResult) -> None:
        result.repo = self._client.generate_from_template(result.template, result.request)

    def _protect_default(self, result: ProvisioningResult) -> None:
        repo = result.require_repo()
        policy = BASELINE_POLICY if result.variant == BASELINE else self._checked
        self._apply(repo, repo.default_branch, policy)

    def _seed(self, result: ProvisioningResult) -> None:
        repo = result.require_repo()
        source = resolve_seed_source(result.template, self._seed_source)
        wait_for_branch(
            self._client,
            repo.full_name,
            repo.default_branch,
            policy=self._readiness,
            sleep=self._sleep,
            clock=self._clock,
        )
        result.seed = seed_content(self._client, source, repo.full_name, repo.default_branch, SEED_PATH_PREFIXES)

    def _create_secondary_branch(self, result: ProvisioningResult) -> None:
        repo = result.require_repo()
        sha = self._client.get_branch_sha(repo.full_name, repo.default_branch)
        self._client.create_ref(repo.full_name, SECONDARY_BRANCH, sha)
        LOGGER.info(
            "branch created",
            extra={"event": "workflow.branch.created", "repository": repo.full_name, "branch": SECONDARY_BRANCH, "sha": sha},
        )

    def _protect_secondary_branch(self, result: ProvisioningResult) -> None:
        self._apply(result.require_repo(), SECONDARY_BRANCH, self._checked)

    def _configure_environments(self, result: ProvisioningResult) -> None:
        result.environment_failures = configure_environments(self._client, result.require_repo().full_name, self._environments)


def provision(
    client: GitHubClient,
    template: str | TemplateRef,
    request: ProvisioningRequest,
    **options,
) -> ProvisioningResult:
    """
    Convenience wrapper: parse the template reference, then run all steps.
    """
    ref = template if isinstance(template, TemplateRef) else TemplateRef.parse(template)
    return Provisioner(client, **options).run(ref, request)
