"""Lint-review pipeline for one pull request event."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

from rich.console import Console

from prlint_core.checkout import install_dependencies, temporary_checkout
from prlint_core.diff import CompareApiDiffProvider, GitDiffProvider, filter_to_diff, select_changed_files, strip_prefix
from prlint_core.findings import Comment, normalize
from prlint_core.gh.pull_request import (
    create_review,
    get_authenticated_login,
    get_commentable_patches,
    get_pull,
    get_pull_metadata,
    get_repo,
    list_review_comments,
    list_reviews,
)
from prlint_core.linter import run_linter
from prlint_core.reconciler import (
    Decision,
    ReconciliationInput,
    ReviewPolicy,
    ReviewState,
    has_prior_system_review,
    is_opted_out,
    reconcile,
    system_comments,
)

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class LintSummary:
    """Outcome of one run, for the CLI and webhook responses."""

    repo: str
    pr_number: int
    head_sha: str
    state: ReviewState
    event: str | None = None  # "COMMENT" | "REQUEST_CHANGES" | None when nothing was decided
    linted_files: list[str] = field(default_factory=list)
    total_comments: int = 0
    new_comments: list[Comment] = field(default_factory=list)
    posted: bool = False
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def as_dict(self) -> dict:
        return {
            "repo": self.repo,
            "pr_number": self.pr_number,
            "head_sha": self.head_sha,
            "state": self.state.value,
            "event": self.event,
            "linted_files": list(self.linted_files),
            "total_comments": self.total_comments,
            "new_comments": [c.as_api_dict() for c in self.new_comments],
            "posted": self.posted,
            "reviewed_at": self.reviewed_at,
        }


def _get_diff_provider(config: dict, repo, workdir: str):
    source = config.get("diff_source", "git")
    if source == "git":
        return GitDiffProvider(cwd=workdir)
    if source == "api":
        return CompareApiDiffProvider(repo)
    raise ValueError(f"Unknown diff_source: {source!r}. Choose 'git' or 'api'.")


def lint_changed_files(config: dict, repo, base_sha: str, head_sha: str, workdir: str) -> tuple[list[str], list[Comment]]:
    """Select the changed JS/TS files, lint them and return ``(files, comments)``."""
    prefix = config.get("prefix", "")
    provider = _get_diff_provider(config, repo, workdir)
    files = select_changed_files(provider, base_sha, head_sha, prefix, config.get("extensions"))
    if not files:
        return [], []

    # ESLint runs inside the prefix directory and reports real (symlink-free) paths.
    linter_cwd = os.path.realpath(os.path.join(workdir, prefix))
    results = run_linter(
        strip_prefix(files, prefix),
        command=config["linter_command"],
        cwd=linter_cwd,
        timeout=config.get("linter_timeout"),
        ok_exit_codes=tuple(config.get("linter_ok_exit_codes", (0, 1))),
    )
    comments = normalize(results, prefix=prefix, cwd=linter_cwd, label_style=config.get("rule_label_style", "link"))
    return files, comments


def print_shadow_decision(decision: Decision) -> None:
    """Print the decided review to the terminal without posting to GitHub."""
    console.print(f"\n[bold]Shadow run, state: {decision.state.value}[/bold]")
    action = decision.action
    if action is None:
        console.print("[yellow]Shadow mode: no review would be posted.[/yellow]")
        return
    console.print(f"Would post a [bold]{action.event}[/bold] review: {action.body}")
    for c in action.comments:
        console.print(f"  [bold cyan]{c.path}[/bold cyan]  line [bold]{c.line}[/bold]")
        console.print(f"    {c.body}")


def run_lint_review(
    repo: str,
    pr_number: int,
    config: dict,
    repo_obj=None,
    shadow: bool = False,
    workdir: str | None = None,
    checkout: bool = False,
) -> LintSummary:
    """Lint one pull request and post at most one review.

    ``workdir`` is an existing checkout of the PR head (default: the current
    directory). With ``checkout=True`` a temporary clone is made instead.
    Any ``PrlintError`` propagates before a review is posted.
    """
    this_repo = repo_obj if repo_obj is not None else get_repo(repo, token=config["github_token"])
    this_pr = get_pull(this_repo, pr_number)
    meta = get_pull_metadata(this_pr)

    if is_opted_out(meta.body, config.get("opt_out_markers", [])):
        console.print("[yellow]Opt-out marker found in the PR description. Skipping lint.[/yellow]")
        logger.info("%s#%d opted out of linting", repo, pr_number)
        return LintSummary(repo=repo, pr_number=pr_number, head_sha=meta.head_sha, state=ReviewState.SKIPPED)

    if checkout:
        with temporary_checkout(
            repo, pr_number, meta.head_sha, config.get("github_token"), config.get("checkout_dir")
        ) as clone_dir:
            install_dependencies(
                config.get("install_command"),
                cwd=os.path.join(clone_dir, config.get("prefix", "")),
                timeout=config.get("linter_timeout"),
            )
            files, comments = lint_changed_files(config, this_repo, meta.base_sha, meta.head_sha, clone_dir)
    else:
        files, comments = lint_changed_files(config, this_repo, meta.base_sha, meta.head_sha, workdir or ".")

    console.print(f"Linted {len(files)} file(s): {len(comments)} finding(s).")

    if comments and config.get("diff_lines_only", True):
        comments = filter_to_diff(comments, get_commentable_patches(this_pr))

    policy = ReviewPolicy.from_config(
        {**config, "bot_login": config.get("bot_login") or get_authenticated_login(config["github_token"])}
    )
    reviews = list_reviews(this_pr)
    prior_comments = system_comments(list_review_comments(this_pr, author=policy.bot_login), policy)
    decision = reconcile(
        ReconciliationInput(
            comments=comments,
            prior_system_comments=prior_comments,
            has_prior_system_review=has_prior_system_review(reviews, policy),
        ),
        policy,
    )
    logger.info("%s#%d reconciled to %s", repo, pr_number, decision.state.value)

    summary = LintSummary(
        repo=repo,
        pr_number=pr_number,
        head_sha=meta.head_sha,
        state=decision.state,
        event=decision.action.event if decision.action else None,
        linted_files=files,
        total_comments=len(comments),
        new_comments=decision.new_comments,
    )

    if shadow:
        print_shadow_decision(decision)
        return summary

    if decision.action is None:
        console.print(f"[green]Nothing to post ({decision.state.value}).[/green]")
        return summary

    create_review(this_pr, decision.action)
    summary.posted = True
    console.print(
        f"\n[green]Review posted: {decision.action.event}. "
        f"{len(decision.action.comments)} new comment(s).[/green]"
    )
    return summary
