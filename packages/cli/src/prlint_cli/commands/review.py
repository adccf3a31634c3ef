"""review command: lint a pull request and reconcile the bot's review."""

from __future__ import annotations

import logging

import click
from rich.console import Console

from prlint_core.errors import PrlintError
from prlint_core.gh.events import load_event_file
from prlint_core.gh.pull_request import get_pull_requests, get_repo
from prlint_core.runner import run_lint_review

console = Console()
logger = logging.getLogger(__name__)


@click.command("review")
@click.option("--repo", default=None, help="GitHub repository in owner/name format.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Omit to list open PRs interactively.",
)
@click.option(
    "--event-path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    envvar="GITHUB_EVENT_PATH",
    help="pull_request event payload (GitHub Actions sets GITHUB_EVENT_PATH).",
)
@click.option("--prefix", default=None, help="Directory ESLint runs in. Overrides config file.")
@click.option(
    "--blocking/--advisory",
    default=None,
    help="Request changes (blocking) or only comment (advisory). Overrides config file.",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the decided review without posting to GitHub.",
)
@click.option(
    "--workdir",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Checkout of the PR head to lint.",
)
@click.option("--checkout", is_flag=True, help="Clone the PR head into a temporary directory instead of --workdir.")
@click.pass_context
def review_cmd(
    ctx,
    repo: str | None,
    pr_number: int | None,
    event_path: str | None,
    prefix: str | None,
    blocking: bool | None,
    shadow: bool,
    workdir: str,
    checkout: bool,
):
    """Lint the changed JS/TS files of a pull request with ESLint.

    New findings are posted as one review; findings already posted are never
    repeated, and a closing review thanks the author once everything is fixed.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or use gh CLI)
    """
    config = dict(ctx.obj["config"])
    for key, value in (("prefix", prefix), ("blocking", blocking)):
        if value is not None:
            config[key] = value
    config["prefix"] = (config.get("prefix") or "").strip("/")

    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )

    if repo is None or pr_number is None:
        if event_path:
            try:
                event = load_event_file(event_path)
            except ValueError as e:
                raise click.UsageError(str(e))
            repo = repo or event.repo
            pr_number = pr_number or event.pr_number
        elif repo is None:
            raise click.UsageError("Pass --repo (and --pr), or --event-path.")

    try:
        this_repo = get_repo(repo, token=token)

        if pr_number is None:
            prs = get_pull_requests(this_repo)
            if not prs:
                console.print("[yellow]No open pull requests found.[/yellow]")
                return
            console.print("\nOpen pull requests:")
            for pr in prs:
                console.print(f"  [bold]#{pr.number}[/bold]  {pr.title}")
            pr_number = click.prompt("\nEnter the pull request number", type=int)

        summary = run_lint_review(
            repo=repo,
            pr_number=pr_number,
            config=config,
            repo_obj=this_repo,
            shadow=shadow,
            workdir=workdir,
            checkout=checkout,
        )
    except PrlintError as e:
        logger.error("Lint review of %s#%s failed: %s", repo, pr_number, e)
        stderr = getattr(e, "stderr", "")
        if stderr:
            console.print(f"[dim]{stderr}[/dim]")
        raise click.ClickException(f"{type(e).__name__}: {e}")

    console.print(f"[bold]{summary.repo}#{summary.pr_number}[/bold]: {summary.state.value}")
