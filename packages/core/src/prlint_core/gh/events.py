"""Parsing of GitHub ``pull_request`` event payloads.

The same payload reaches prlint two ways: as the webhook request body, and as
the file at ``$GITHUB_EVENT_PATH`` inside a GitHub Actions job.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

# Actions that can change which lines are flagged.
LINTED_ACTIONS = ("opened", "synchronize", "reopened")


@dataclass(frozen=True)
class PullRequestEvent:
    repo: str  # owner/name
    pr_number: int
    action: str
    head_sha: str = ""

    @property
    def should_lint(self) -> bool:
        return self.action in LINTED_ACTIONS


def parse_pull_request_event(payload: dict) -> PullRequestEvent:
    """Extract the fields prlint needs; raises ``ValueError`` on a malformed payload."""
    if not isinstance(payload, dict):
        raise ValueError("Event payload must be a JSON object.")
    pr = payload.get("pull_request")
    repository = payload.get("repository")
    if not isinstance(pr, dict) or not isinstance(repository, dict):
        raise ValueError("Not a pull_request event: missing 'pull_request' or 'repository'.")

    number = pr.get("number", payload.get("number"))
    full_name = repository.get("full_name")
    if not isinstance(number, int) or not isinstance(full_name, str) or "/" not in full_name:
        raise ValueError("Event payload has no PR number or repository full_name.")

    head = pr.get("head") or {}
    return PullRequestEvent(
        repo=full_name,
        pr_number=number,
        action=payload.get("action", ""),
        head_sha=head.get("sha", "") if isinstance(head, dict) else "",
    )


def load_event_file(path: str) -> PullRequestEvent:
    with open(path, encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Event file {path} is not valid JSON: {e}") from e
    return parse_pull_request_event(payload)
