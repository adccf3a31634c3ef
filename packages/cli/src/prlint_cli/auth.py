"""Credential resolution for the CLI.

GitHub token, first match wins:
  1. GITHUB_TOKEN environment variable (Actions injects it; explicit override)
  2. `gh auth token` (local runs by developers already logged in with the GitHub CLI)

The webhook secret only comes from PRLINT_WEBHOOK_SECRET; there is no
interactive source for it.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token or None when no source has one.

    Never raises; callers turn None into a UsageError.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # No gh CLI, or it hung waiting on a keyring.
        return None

    if result.returncode == 0:
        gh_token = result.stdout.strip()
        if gh_token:
            logger.debug("Resolved GitHub token via gh CLI session.")
            return gh_token
    return None


def resolve_webhook_secret() -> str | None:
    secret = os.environ.get("PRLINT_WEBHOOK_SECRET", "").strip()
    return secret or None
