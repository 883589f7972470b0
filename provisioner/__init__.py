"""
provisioner package

Creates a GitHub repository from a template and brings it in line with the
organization's branch-governance policy.

Key responsibilities are split across modules:
- `github_client.py`: isolated GitHub REST API interactions (one method per endpoint)
- `diagnostics.py`: turn failed responses into actionable, typed errors
- `readiness.py` / `backoff.py`: wait for a new branch to become observable
- `protection.py`: branch protection policies and how they are applied
- `seeder.py`: copy scaffolding files from a source repository
- `environments.py`: deployment environment branch policies
- `workflow.py`: ordered provisioning steps (create -> protect -> seed -> branch -> environments)
- `cli.py`: CLI entrypoint
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
