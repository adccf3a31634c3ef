from __future__ import annotations

import logging
from dataclasses import dataclass

from github import Github, GithubException

from prlint_core.errors import ApiUnavailable
from prlint_core.findings import Comment
from prlint_core.reconciler import ReviewAction, ReviewRecord

logger = logging.getLogger(__name__)

ACTIONS_BOT_LOGIN = "github-actions[bot]"


@dataclass(frozen=True)
class PullRequestMetadata:
    base_sha: str
    head_sha: str
    body: str


def get_repo(repo_name: str, token: str):
    try:
        return Github(token).get_repo(repo_name)
    except GithubException as e:
        raise ApiUnavailable(f"Could not open repository {repo_name}: {e}") from e


def get_pull(repo, pr_number: int):
    try:
        return repo.get_pull(pr_number)
    except GithubException as e:
        raise ApiUnavailable(f"Could not fetch PR #{pr_number}: {e}") from e


def get_pull_requests(repo, state: str = "open") -> list:
    try:
        return list(repo.get_pulls(state=state))
    except GithubException as e:
        raise ApiUnavailable(f"Could not list pull requests: {e}") from e


def get_authenticated_login(token: str) -> str:
    """Return the login the token posts reviews as.

    Installation tokens (the Actions ``GITHUB_TOKEN``) are refused by the
    ``/user`` endpoint with 403; those post as ``github-actions[bot]``.
    """
    try:
        return Github(token).get_user().login
    except GithubException as e:
        if e.status == 403:
            logger.debug("Token cannot read /user; assuming %s", ACTIONS_BOT_LOGIN)
            return ACTIONS_BOT_LOGIN
        raise ApiUnavailable(f"Could not resolve the authenticated user: {e}") from e


def get_pull_metadata(pr) -> PullRequestMetadata:
    return PullRequestMetadata(base_sha=pr.base.sha, head_sha=pr.head.sha, body=pr.body or "")


def list_reviews(pr) -> list[ReviewRecord]:
    """Return every review on the PR in timeline order."""
    try:
        reviews = list(pr.get_reviews())
    except GithubException as e:
        raise ApiUnavailable(f"Could not list reviews: {e}") from e
    return [
        ReviewRecord(
            author=r.user.login if r.user else None,
            body=r.body or "",
            state=r.state or "",
            submitted_at=r.submitted_at.isoformat() if r.submitted_at else None,
        )
        for r in reviews
    ]


def list_review_comments(pr, author: str | None = None) -> list[tuple[str | None, Comment]]:
    """Return ``(author_login, Comment)`` pairs for the PR's inline review comments.

    When ``author`` is given only that user's comments are returned.
    """
    try:
        raw = list(pr.get_review_comments())
    except GithubException as e:
        raise ApiUnavailable(f"Could not list review comments: {e}") from e

    pairs = []
    for c in raw:
        login = c.user.login if c.user else None
        if author is not None and login != author:
            continue
        # c.line is None for comments whose line no longer exists in the current diff
        # (e.g. after a force-push). Fall back to original_line in that case.
        line = c.line if c.line is not None else getattr(c, "original_line", None)
        if line is None:
            continue
        pairs.append((login, Comment(path=c.path, line=line, body=c.body or "")))
    return pairs


def get_commentable_patches(pr) -> dict[str, str | None]:
    """Return ``{filename: patch}`` for every file in the PR's diff."""
    try:
        return {f.filename: f.patch for f in pr.get_files()}
    except GithubException as e:
        raise ApiUnavailable(f"Could not list PR files: {e}") from e


def create_review(pr, action: ReviewAction) -> None:
    kwargs = {"body": action.body, "event": action.event}
    if action.comments:
        kwargs["comments"] = [c.as_api_dict() for c in action.comments]
    try:
        pr.create_review(**kwargs)
    except GithubException as e:
        raise ApiUnavailable(f"Could not post review: {e}") from e
    logger.info("Posted %s review with %d comment(s)", action.event, len(action.comments))
